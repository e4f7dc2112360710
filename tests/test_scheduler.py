import asyncio
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from salonbook.models.domain import Booking, BookingStatus
from salonbook.services.record_store import BOOKINGS
from salonbook.services.scheduler import StatusScheduler, due_for_completion, sweep

from conftest import service_named

TZ = ZoneInfo("Asia/Kolkata")
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=TZ)


def make_booking(day, at, status=BookingStatus.UPCOMING):
    return Booking(client_name="Client", date=day, time=at, primary_service_id="s1", status=status)


def test_sweep_promotes_only_past_upcoming_bookings():
    past = make_booking(date(2024, 6, 1), time(11, 59))
    exact = make_booking(date(2024, 6, 1), time(12, 0))
    future = make_booking(date(2024, 6, 2), time(9, 0))
    done = make_booking(date(2024, 5, 1), time(9, 0), BookingStatus.COMPLETED)

    result = sweep(NOW, [past, exact, future, done], TZ)

    assert [b.status for b in result] == [
        BookingStatus.COMPLETED, BookingStatus.UPCOMING, BookingStatus.UPCOMING, BookingStatus.COMPLETED,
    ]
    assert past.status == BookingStatus.UPCOMING
    assert due_for_completion(NOW, [past, exact, future, done], TZ) == [past]


def test_sweep_is_idempotent():
    bookings = [make_booking(date(2024, 6, 1), time(8, 0)), make_booking(date(2024, 7, 1), time(8, 0))]
    once = sweep(NOW, bookings, TZ)
    assert sweep(NOW, once, TZ) == once


def test_sweep_compares_in_business_timezone():
    # 12:30 in Kolkata is 07:00 UTC, so it is still in the future at 06:45 UTC
    booking = make_booking(date(2024, 6, 1), time(12, 30))
    now_utc = datetime(2024, 6, 1, 6, 45, tzinfo=ZoneInfo("UTC"))
    assert sweep(now_utc, [booking], TZ)[0].status == BookingStatus.UPCOMING


async def _book(salon, day, at):
    service = service_named(salon, "Bridal Makeup")
    return (await salon.bookings.create_booking("Client", day, at, service.id)).data


async def test_run_once_promotes_and_persists(salon, store):
    past = await _book(salon, "2024-06-01", "09:00")
    future = await _book(salon, "2024-06-05", "09:00")

    promoted = await salon.scheduler.run_once(NOW)
    again = await salon.scheduler.run_once(NOW)

    assert promoted == [past.id]
    assert again == []
    assert salon.bookings.get_booking(past.id).status == BookingStatus.COMPLETED
    assert salon.bookings.get_booking(future.id).status == BookingStatus.UPCOMING
    assert store.tables[BOOKINGS][past.id]["status"] == "completed"


async def test_run_once_accepts_naive_now(salon):
    past = await _book(salon, "2024-06-01", "09:00")
    assert await salon.scheduler.run_once(datetime(2024, 6, 1, 12, 0)) == [past.id]


async def test_remote_already_completed_is_accepted(salon, store):
    booking = await _book(salon, "2024-06-01", "09:00")
    store.tables[BOOKINGS][booking.id]["status"] = "completed"

    promoted = await salon.scheduler.run_once(NOW)

    assert promoted == [booking.id]
    assert salon.bookings.get_booking(booking.id).status == BookingStatus.COMPLETED


async def test_one_bad_booking_does_not_stop_the_sweep(salon, store):
    bad = await _book(salon, "2024-06-01", "08:00")
    good = await _book(salon, "2024-06-01", "09:00")
    original_update = store.update

    async def flaky_update(collection, record_id, fields, expected=None):
        if record_id == bad.id:
            raise RuntimeError("corrupt row")
        return await original_update(collection, record_id, fields, expected)

    store.update = flaky_update

    promoted = await salon.scheduler.run_once(NOW)

    assert promoted == [good.id]
    assert salon.bookings.get_booking(bad.id).status == BookingStatus.UPCOMING
    assert salon.bookings.get_booking(good.id).status == BookingStatus.COMPLETED


async def test_completed_booking_never_reverts(salon):
    booking = await _book(salon, "2030-06-01", "09:00")
    await salon.bookings.mark_completed(booking.id)

    await salon.scheduler.run_once(NOW)
    await salon.bookings.mark_completed(booking.id)

    assert salon.bookings.get_booking(booking.id).status == BookingStatus.COMPLETED


async def test_scheduler_start_and_stop(salon):
    past = await _book(salon, "2024-06-01", "09:00")
    scheduler = StatusScheduler(salon.bookings, interval_seconds=3600)

    scheduler.start()
    assert scheduler.running
    for _ in range(50):
        if salon.bookings.get_booking(past.id).status == BookingStatus.COMPLETED:
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert not scheduler.running
    assert salon.bookings.get_booking(past.id).status == BookingStatus.COMPLETED
