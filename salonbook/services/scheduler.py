"""
Status sweep: promotes upcoming bookings whose start instant has passed.

The predicate is time-absolute, so a missed sweep is caught up by the next one.
"""
import asyncio
from datetime import datetime, tzinfo
from typing import Iterable, List, Optional

from salonbook.core.config import settings
from salonbook.core.logger import logger
from salonbook.models.domain import Booking, BookingStatus
from salonbook.models.results import WriteOutcome
from salonbook.services.booking_service import BookingManager


def is_due(booking: Booking, now: datetime, tz: tzinfo) -> bool:
    return booking.status == BookingStatus.UPCOMING and booking.starts_at(tz) < now


def due_for_completion(now: datetime, bookings: Iterable[Booking], tz: tzinfo) -> List[Booking]:
    return [b for b in bookings if is_due(b, now, tz)]


def sweep(now: datetime, bookings: Iterable[Booking], tz: tzinfo) -> List[Booking]:
    """Pure sweep: the same bookings, with every due one promoted to completed."""
    return [
        b.model_copy(update={"status": BookingStatus.COMPLETED}) if is_due(b, now, tz) else b
        for b in bookings
    ]


class StatusScheduler:
    def __init__(self, bookings: BookingManager, interval_seconds: int = None):
        self.bookings = bookings
        self.interval = interval_seconds or settings.SWEEP_INTERVAL_SECONDS
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, now: datetime = None) -> List[str]:
        """
        One sweep over the live state. Per-booking failures are logged and skipped.
        Returns: ids of bookings promoted in this sweep.
        """
        tz = self.bookings.state.tz
        now = now or datetime.now(tz)
        if now.tzinfo is None:
            now = now.replace(tzinfo=tz)

        promoted = []
        for booking in due_for_completion(now, self.bookings.state.bookings, tz):
            try:
                result = await self.bookings.promote_if_due(booking.id, now)
            except Exception as e:
                logger.error(f"❌ Sweep failed for booking {booking.id}: {e}")
                continue
            if result.outcome == WriteOutcome.FAILED:
                logger.error(f"❌ Sweep could not complete booking {booking.id}: {result.error}")
            elif result.outcome != WriteOutcome.UNCHANGED:
                promoted.append(booking.id)

        if promoted:
            logger.info(f"⏰ Sweep promoted {len(promoted)} booking(s) to completed")
        return promoted

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"❌ Status sweep crashed: {e}")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"⏰ Status scheduler started (every {self.interval}s)")

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("🛑 Status scheduler stopped")
