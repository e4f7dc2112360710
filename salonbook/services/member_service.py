from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from salonbook.core.errors import NotFoundError, StorageError, ValidationError
from salonbook.core.logger import logger
from salonbook.models.domain import Booking, BookingMember, BookingStatus, validate_model
from salonbook.models.results import WriteOutcome, WriteResult
from salonbook.services import reconciliation
from salonbook.services.app_state import AppState, Persisted
from salonbook.services.record_store import BOOKING_MEMBERS, BOOKINGS

MEMBER_FIELDS = {
    "member_name", "relation", "service", "worker_id", "occasion",
    "cost", "satisfaction", "duration_minutes", "notes",
}


class MemberLedger:
    """
    People actually served within a completed booking.

    Every add/edit/remove resyncs the owning booking's total_amount to the
    sum of its member costs.
    """

    def __init__(self, state: AppState):
        self.state = state

    def list_members(self, booking_id: str) -> List[BookingMember]:
        booking = self.state.find_booking(booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return list(booking.members)

    def get_member(self, member_id: str) -> BookingMember:
        _, member = self.state.find_member(member_id)
        if not member:
            raise NotFoundError("Member", member_id)
        return member

    def _resolve_service(self, service: Optional[str]) -> Tuple[Optional[str], str, Optional[Decimal]]:
        """
        A known service id gives (id, name, price).
        Anything else is kept as a free-text service name without a price.
        """
        known = self.state.find_service(service) if service else None
        if known:
            return known.id, known.name, known.client_price
        if not service or not str(service).strip():
            raise ValidationError("Service provided must not be blank")
        return None, str(service).strip(), None

    def _check_worker(self, worker_id: Optional[str]) -> None:
        if worker_id and not self.state.find_worker(worker_id):
            raise NotFoundError("Worker", worker_id)

    async def add_member(
        self,
        booking_id: str,
        member_name: str,
        service: str,
        worker_id: Optional[str] = None,
        occasion: Optional[str] = None,
        cost: Optional[Decimal] = None,
        relation: Optional[str] = None,
        satisfaction: Optional[int] = None,
        duration_minutes: Optional[int] = None,
        notes: Optional[str] = None,
        allow_local_only: Optional[bool] = None,
    ) -> WriteResult:
        """
        Add a member to a completed booking.
        When cost is omitted or zero and the service is a known id, cost defaults to its client price.
        """
        if not member_name or not member_name.strip():
            raise ValidationError("Member name must not be blank")
        service_id, service_name, price = self._resolve_service(service)
        self._check_worker(worker_id)
        if not cost and price is not None:
            cost = price

        async with self.state.lock:
            booking = self._completed_booking(booking_id)
            member = validate_model(BookingMember, {
                "booking_id": booking.id,
                "member_name": member_name,
                "relation": relation or "",
                "service_id": service_id,
                "service_name": service_name,
                "worker_id": worker_id or None,
                "occasion": occasion or "",
                "cost": cost or 0,
                "satisfaction": satisfaction,
                "duration_minutes": duration_minutes,
                "notes": notes or "",
            })

            persisted = await self.state.persist(
                lambda: self.state.store.insert(BOOKING_MEMBERS, member.model_dump(mode="json")),
                create=True, allow_local_only=allow_local_only,
                description=f"add member '{member.member_name}' to booking {booking.id}",
            )
            if persisted.failed:
                return persisted.to_result()

            outcome, error = await self._sync_total(booking, booking.members + [member], persisted)
            logger.info(f"👤 Member added: {member.member_name} ({member.service_name}, {member.cost})")
            return WriteResult(outcome=outcome, data=member, error=error)

    async def update_member(
        self, member_id: str, fields: Dict[str, Any], allow_local_only: Optional[bool] = None
    ) -> WriteResult:
        """
        Edit a member. Changing the service suggests its price as the cost,
        unless cost is supplied in the same update.
        """
        unknown = set(fields) - MEMBER_FIELDS
        if unknown:
            raise ValidationError(f"Cannot edit member fields: {', '.join(sorted(unknown))}")

        async with self.state.lock:
            booking, current = self.state.find_member(member_id)
            if not current:
                raise NotFoundError("Member", member_id)

            changes = {k: v for k, v in fields.items() if k != "service"}
            if "service" in fields:
                service_id, service_name, price = self._resolve_service(fields["service"])
                changes.update(service_id=service_id, service_name=service_name)
                service_changed = (service_id, service_name) != (current.service_id, current.service_name)
                if service_changed and "cost" not in fields and price is not None:
                    changes["cost"] = price
            if "worker_id" in changes:
                changes["worker_id"] = changes["worker_id"] or None
                self._check_worker(changes["worker_id"])

            updated = validate_model(BookingMember, {**current.model_dump(), **changes})
            record_changes = updated.model_dump(mode="json", include=set(changes))

            persisted = await self.state.persist(
                lambda: self.state.store_update(BOOKING_MEMBERS, member_id, record_changes),
                allow_local_only=allow_local_only, description=f"update member {member_id}",
            )
            if persisted.failed:
                return persisted.to_result()

            members = [updated if m.id == member_id else m for m in booking.members]
            outcome, error = await self._sync_total(booking, members, persisted)
            logger.info(f"✏️ Member updated: {updated.member_name}")
            return WriteResult(outcome=outcome, data=updated, error=error)

    async def remove_member(self, member_id: str, allow_local_only: Optional[bool] = None) -> WriteResult:
        async with self.state.lock:
            booking, current = self.state.find_member(member_id)
            if not current:
                raise NotFoundError("Member", member_id)

            persisted = await self.state.persist(
                lambda: self.state.store.delete(BOOKING_MEMBERS, member_id),
                allow_local_only=allow_local_only, description=f"remove member {member_id}",
            )
            if persisted.failed:
                return persisted.to_result()

            members = [m for m in booking.members if m.id != member_id]
            outcome, error = await self._sync_total(booking, members, persisted)
            logger.info(f"🗑️ Member removed: {current.member_name}")
            return WriteResult(outcome=outcome, data=current, error=error)

    def _completed_booking(self, booking_id: str) -> Booking:
        booking = self.state.find_booking(booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        if booking.status != BookingStatus.COMPLETED:
            raise ValidationError("Members can only be added to completed bookings")
        return booking

    async def _sync_total(
        self, booking: Booking, members: List[BookingMember], member_write: Persisted
    ) -> Tuple[WriteOutcome, Optional[StorageError]]:
        """
        Swap in the new member list and recompute total_amount.
        The total is derived data and is recomputed on every load, so a failed
        total write never blocks the member change; it downgrades the outcome instead.
        """
        total = reconciliation.compute_booking_total(members)
        updated = booking.model_copy(update={"members": members, "total_amount": total})

        outcome, error = member_write.outcome, member_write.error
        if outcome == WriteOutcome.REMOTE and total != booking.total_amount:
            total_fields = updated.model_dump(mode="json", include={"total_amount"})
            synced = await self.state.persist(
                lambda: self.state.store_update(BOOKINGS, booking.id, total_fields),
                allow_local_only=True, description=f"sync total of booking {booking.id}",
            )
            outcome, error = synced.outcome, synced.error

        self.state.put_booking(updated)
        return outcome, error
