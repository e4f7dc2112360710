from datetime import datetime
from typing import Any, Dict, Optional

from salonbook.core.errors import NotFoundError
from salonbook.core.logger import logger
from salonbook.models.domain import BookingDetails, validate_model
from salonbook.models.results import WriteOutcome, WriteResult
from salonbook.services.app_state import AppState
from salonbook.services.record_store import BOOKING_DETAILS


class BookingDetailsService:
    """Payment, rating and completion metadata, one record per booking."""

    def __init__(self, state: AppState):
        self.state = state

    def _require_booking(self, booking_id: str) -> None:
        if not self.state.find_booking(booking_id):
            raise NotFoundError("Booking", booking_id)

    def get_details(self, booking_id: str) -> BookingDetails:
        """Stored details, or the empty default when none were saved."""
        self._require_booking(booking_id)
        return self.state.details.get(booking_id) or BookingDetails(booking_id=booking_id)

    async def save_details(
        self, booking_id: str, details: Dict[str, Any], allow_local_only: Optional[bool] = None
    ) -> WriteResult:
        """Upsert the whole record; last write wins."""
        self._require_booking(booking_id)
        record = validate_model(BookingDetails, {**details, "booking_id": booking_id, "updated_at": datetime.now()})

        async def upsert():
            payload = record.to_record()
            existing = await self.state.store.query(BOOKING_DETAILS, filters={"id": booking_id})
            if existing:
                return await self.state.store_update(BOOKING_DETAILS, booking_id, payload)
            return await self.state.store.insert(BOOKING_DETAILS, payload)

        async with self.state.lock:
            persisted = await self.state.persist(
                upsert, allow_local_only=allow_local_only, description=f"save details of booking {booking_id}",
            )
            if not persisted.failed:
                self.state.put_details(record)
                logger.info(f"🧾 Details saved for booking {booking_id} (payment: {record.payment_status.value})")
            return persisted.to_result(record)

    async def delete_details(self, booking_id: str, allow_local_only: Optional[bool] = None) -> WriteResult:
        self._require_booking(booking_id)
        async with self.state.lock:
            current = self.state.details.get(booking_id)
            if current is None:
                return WriteResult(outcome=WriteOutcome.UNCHANGED)

            persisted = await self.state.persist(
                lambda: self.state.store.delete(BOOKING_DETAILS, booking_id),
                allow_local_only=allow_local_only, description=f"delete details of booking {booking_id}",
            )
            if not persisted.failed:
                self.state.drop_details(booking_id)
            return persisted.to_result(current)
