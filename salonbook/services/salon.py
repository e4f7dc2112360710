from typing import Optional

from salonbook.models.results import AggregateStats, BookingFinancials, MemberStats
from salonbook.services import reconciliation
from salonbook.services.app_state import AppState
from salonbook.services.booking_service import BookingManager, StatusFilter
from salonbook.services.catalog_service import CatalogStore
from salonbook.services.db_service import SupabaseRecordStore
from salonbook.services.details_service import BookingDetailsService
from salonbook.services.local_cache import LocalCache
from salonbook.services.member_service import MemberLedger
from salonbook.services.record_store import RecordStore
from salonbook.services.scheduler import StatusScheduler


class Salon:
    """All managers over one shared AppState."""

    def __init__(self, state: AppState, sweep_interval: int = None):
        self.state = state
        self.catalog = CatalogStore(state)
        self.bookings = BookingManager(state)
        self.members = MemberLedger(state)
        self.details = BookingDetailsService(state)
        self.scheduler = StatusScheduler(self.bookings, sweep_interval)

    async def load(self) -> str:
        return await self.state.load()

    def stats(self, status: StatusFilter = StatusFilter.ALL) -> AggregateStats:
        return reconciliation.compute_aggregate_stats(self.bookings.list_bookings(status), self.state.workers)

    def financials(self, booking_id: str) -> BookingFinancials:
        booking = self.bookings.get_booking(booking_id)
        return reconciliation.compute_booking_financials(booking, self.state.workers)

    def member_stats(self, booking_id: str) -> MemberStats:
        return reconciliation.compute_member_stats(self.members.list_members(booking_id))


def build_salon(
    store: Optional[RecordStore] = None,
    cache: Optional[LocalCache] = None,
    **state_options,
) -> Salon:
    state = AppState(store or SupabaseRecordStore(), cache or LocalCache(), **state_options)
    return Salon(state)
