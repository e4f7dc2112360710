from datetime import date as Date, datetime, time as Time
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

from pyuca import Collator

from salonbook.core.errors import NotFoundError, StorageError, ValidationError
from salonbook.core.logger import logger
from salonbook.models.domain import Booking, BookingStatus, validate_model
from salonbook.models.results import WriteOutcome, WriteResult
from salonbook.services.app_state import AppState
from salonbook.services.record_store import BOOKING_DETAILS, BOOKING_MEMBERS, BOOKINGS

EDITABLE_FIELDS = {"client_name", "client_phone", "date", "time", "estimated_people", "notes"}


class StatusFilter(str, Enum):
    ALL = "all"
    UPCOMING = "upcoming"
    COMPLETED = "completed"


class BookingSort(str, Enum):
    DATE_ASC = "date_asc"
    DATE_DESC = "date_desc"
    AMOUNT_ASC = "amount_asc"
    AMOUNT_DESC = "amount_desc"
    CLIENT_NAME = "client_name"


@lru_cache(maxsize=1)
def _collator() -> Collator:
    return Collator()


def name_sort_key(name: str):
    """Unicode collation key; accents and case sort next to their base letter."""
    return _collator().sort_key(name.casefold())


def _coerce(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"'{value}' is not one of: {choices}")


class BookingManager:
    """
    Booking records and their status lifecycle.

    Status only moves forward (upcoming -> completed). The transition is a
    compare-and-set so the scheduler and a manual completion cannot race.
    """

    def __init__(self, state: AppState):
        self.state = state

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.state.find_booking(booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    async def create_booking(
        self,
        client_name: str,
        date: Union[str, Date],
        time: Union[str, Time],
        primary_service_id: str,
        estimated_people: int = 1,
        client_phone: Optional[str] = None,
        notes: Optional[str] = None,
        allow_local_only: Optional[bool] = None,
    ) -> WriteResult:
        """
        Create an upcoming booking.
        The primary service price is copied into total_amount at this instant.
        """
        service = self.state.find_service(primary_service_id) if primary_service_id else None
        if not service or not service.is_active:
            raise ValidationError(f"Unknown service '{primary_service_id}'")

        booking = validate_model(Booking, {
            "client_name": client_name,
            "client_phone": client_phone or "",
            "date": date,
            "time": time,
            "primary_service_id": service.id,
            "estimated_people": estimated_people,
            "notes": notes or "",
            "total_amount": service.client_price,
        })

        async with self.state.lock:
            persisted = await self.state.persist(
                lambda: self.state.store.insert(BOOKINGS, booking.to_record()),
                create=True, allow_local_only=allow_local_only,
                description=f"create booking for '{booking.client_name}'",
            )
            if not persisted.failed:
                self.state.put_booking(booking)
                logger.info(f"📅 Booking created: {booking.client_name} on {booking.date} {booking.time} "
                            f"({service.name}, {booking.total_amount})")
            return persisted.to_result(booking)

    def list_bookings(
        self,
        status: Union[str, StatusFilter] = StatusFilter.ALL,
        sort: Union[str, BookingSort] = BookingSort.DATE_DESC,
    ) -> List[Booking]:
        """Filtered, stably sorted view; equal keys keep insertion order."""
        status = _coerce(StatusFilter, status)
        sort = _coerce(BookingSort, sort)

        bookings = list(self.state.bookings)
        if status != StatusFilter.ALL:
            bookings = [b for b in bookings if b.status.value == status.value]

        tz = self.state.tz
        if sort in (BookingSort.DATE_ASC, BookingSort.DATE_DESC):
            return sorted(bookings, key=lambda b: b.starts_at(tz), reverse=sort == BookingSort.DATE_DESC)
        if sort in (BookingSort.AMOUNT_ASC, BookingSort.AMOUNT_DESC):
            return sorted(bookings, key=lambda b: b.total_amount, reverse=sort == BookingSort.AMOUNT_DESC)
        return sorted(bookings, key=lambda b: name_sort_key(b.client_name))

    def upcoming_bookings(self) -> List[Booking]:
        return self.list_bookings(StatusFilter.UPCOMING, BookingSort.DATE_ASC)

    def completed_bookings(self) -> List[Booking]:
        return self.list_bookings(StatusFilter.COMPLETED, BookingSort.DATE_DESC)

    def bookings_for_date(self, day: Union[str, Date]) -> List[Booking]:
        if isinstance(day, str):
            try:
                day = datetime.strptime(day, "%Y-%m-%d").date()
            except ValueError:
                raise ValidationError(f"Invalid date '{day}', expected YYYY-MM-DD")
        return sorted((b for b in self.state.bookings if b.date == day), key=lambda b: b.time)

    async def update_booking(
        self, booking_id: str, fields: Dict[str, Any], allow_local_only: Optional[bool] = None
    ) -> WriteResult:
        """Edit client and schedule fields. Status, totals and members are not editable here."""
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot edit booking fields: {', '.join(sorted(unknown))}")

        async with self.state.lock:
            current = self.get_booking(booking_id)
            updated = validate_model(Booking, {**current.model_dump(), **fields})
            changes = updated.model_dump(mode="json", include=set(fields))

            persisted = await self.state.persist(
                lambda: self.state.store_update(BOOKINGS, booking_id, changes),
                allow_local_only=allow_local_only, description=f"update booking {booking_id}",
            )
            if not persisted.failed:
                self.state.put_booking(updated)
                logger.info(f"✏️ Booking updated: {updated.client_name} ({', '.join(sorted(fields))})")
            return persisted.to_result(updated)

    async def delete_booking(self, booking_id: str, allow_local_only: Optional[bool] = None) -> WriteResult:
        """Delete a booking with its members and details record."""
        async with self.state.lock:
            current = self.get_booking(booking_id)

            async def cascade():
                for member in current.members:
                    await self.state.store.delete(BOOKING_MEMBERS, member.id)
                await self.state.store.delete(BOOKING_DETAILS, booking_id)
                await self.state.store.delete(BOOKINGS, booking_id)

            persisted = await self.state.persist(
                cascade, allow_local_only=allow_local_only, description=f"delete booking {booking_id}",
            )
            if not persisted.failed:
                self.state.drop_booking(booking_id)
                logger.info(f"🗑️ Booking deleted: {current.client_name} ({len(current.members)} members)")
            return persisted.to_result(current)

    # --- Status transitions ---

    async def mark_completed(self, booking_id: str, allow_local_only: Optional[bool] = None) -> WriteResult:
        """Complete a booking. Completing an already completed booking is a no-op."""
        async with self.state.lock:
            return await self._complete(self.get_booking(booking_id), allow_local_only)

    async def promote_if_due(
        self, booking_id: str, now: datetime, allow_local_only: Optional[bool] = None
    ) -> WriteResult:
        """Complete the booking only if it is still upcoming and its start is strictly before `now`."""
        async with self.state.lock:
            booking = self.get_booking(booking_id)
            if booking.status != BookingStatus.UPCOMING or not booking.starts_at(self.state.tz) < now:
                return WriteResult(outcome=WriteOutcome.UNCHANGED, data=booking)
            return await self._complete(booking, allow_local_only)

    async def _complete(self, booking: Booking, allow_local_only: Optional[bool]) -> WriteResult:
        if booking.status == BookingStatus.COMPLETED:
            return WriteResult(outcome=WriteOutcome.UNCHANGED, data=booking)

        async def compare_and_set():
            record = await self.state.store.update(
                BOOKINGS, booking.id,
                {"status": BookingStatus.COMPLETED.value},
                expected={"status": BookingStatus.UPCOMING.value},
            )
            if record is None:
                # Either already completed remotely or never reached the store
                existing = await self.state.store.query(BOOKINGS, filters={"id": booking.id})
                if not existing:
                    raise StorageError(f"bookings {booking.id} missing from Record Store")
                record = existing[0]
            return record

        persisted = await self.state.persist(
            compare_and_set, allow_local_only=allow_local_only, description=f"complete booking {booking.id}",
        )
        completed = booking.model_copy(update={"status": BookingStatus.COMPLETED})
        if not persisted.failed:
            self.state.put_booking(completed)
            logger.info(f"✅ Booking completed: {booking.client_name} ({booking.date} {booking.time})")
        return persisted.to_result(completed)
