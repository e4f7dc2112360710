from decimal import Decimal

import pytest

from salonbook.core.errors import NotFoundError, ValidationError
from salonbook.models.results import WriteOutcome
from salonbook.services import reconciliation
from salonbook.services.record_store import BOOKING_MEMBERS, BOOKINGS

from conftest import completed_booking, service_named, worker_named


async def test_members_require_completed_booking(salon):
    service = service_named(salon, "Bridal Makeup")
    booking = (await salon.bookings.create_booking("Priya", "2030-05-01", "10:00", service.id)).data

    with pytest.raises(ValidationError):
        await salon.members.add_member(booking.id, "Bride", service.id)
    assert salon.bookings.get_booking(booking.id).members == []


async def test_add_member_to_unknown_booking(salon):
    with pytest.raises(NotFoundError):
        await salon.members.add_member("missing", "Bride", "Saree Draping")


async def test_cost_defaults_to_service_price(salon, store):
    booking = await completed_booking(salon)
    saree = service_named(salon, "Saree Draping")

    result = await salon.members.add_member(booking.id, "Sister", saree.id)

    member = result.data
    assert result.outcome == WriteOutcome.REMOTE
    assert member.cost == 1200
    assert member.service_id == saree.id
    assert member.service_name == "Saree Draping"
    assert Decimal(store.tables[BOOKING_MEMBERS][member.id]["cost"]) == 1200


async def test_zero_cost_with_known_service_uses_price(salon):
    booking = await completed_booking(salon)
    saree = service_named(salon, "Saree Draping")

    member = (await salon.members.add_member(booking.id, "Sister", saree.id, cost=0)).data

    assert member.cost == 1200


async def test_explicit_cost_is_kept(salon):
    booking = await completed_booking(salon)
    saree = service_named(salon, "Saree Draping")

    member = (await salon.members.add_member(booking.id, "Sister", saree.id, cost=900)).data

    assert member.cost == 900


async def test_free_text_service_has_no_price(salon):
    booking = await completed_booking(salon)

    member = (await salon.members.add_member(booking.id, "Cousin", "Mehendi touch-up")).data

    assert member.service_id is None
    assert member.service_name == "Mehendi touch-up"
    assert member.cost == 0


@pytest.mark.parametrize("name, service", [("", "Saree Draping"), ("  ", "Saree Draping"), ("Sister", ""), ("Sister", "   ")])
async def test_blank_member_or_service_rejected(salon, name, service):
    booking = await completed_booking(salon)
    with pytest.raises(ValidationError):
        await salon.members.add_member(booking.id, name, service)


async def test_unknown_worker_rejected(salon):
    booking = await completed_booking(salon)
    with pytest.raises(NotFoundError):
        await salon.members.add_member(booking.id, "Sister", "Saree Draping", worker_id="missing")


async def test_total_resyncs_on_every_member_change(salon, store):
    booking = await completed_booking(salon)
    saree = service_named(salon, "Saree Draping")

    a = (await salon.members.add_member(booking.id, "Bride", saree.id, cost=2000)).data
    b = (await salon.members.add_member(booking.id, "Mother", saree.id)).data
    assert salon.bookings.get_booking(booking.id).total_amount == 3200
    assert Decimal(store.tables[BOOKINGS][booking.id]["total_amount"]) == 3200

    await salon.members.update_member(a.id, {"cost": 2500})
    assert salon.bookings.get_booking(booking.id).total_amount == 3700

    await salon.members.remove_member(b.id)
    current = salon.bookings.get_booking(booking.id)
    assert current.total_amount == 2500
    assert current.total_amount == reconciliation.compute_booking_total(current.members)
    assert Decimal(store.tables[BOOKINGS][booking.id]["total_amount"]) == 2500
    assert b.id not in store.tables[BOOKING_MEMBERS]


async def test_changing_service_suggests_its_price(salon):
    booking = await completed_booking(salon)
    bridal = service_named(salon, "Bridal Makeup")
    saree = service_named(salon, "Saree Draping")
    member = (await salon.members.add_member(booking.id, "Bride", saree.id)).data

    result = await salon.members.update_member(member.id, {"service": bridal.id})

    assert result.data.cost == 3500
    assert result.data.service_name == "Bridal Makeup"


async def test_changing_service_keeps_cost_supplied_in_same_update(salon):
    booking = await completed_booking(salon)
    bridal = service_named(salon, "Bridal Makeup")
    saree = service_named(salon, "Saree Draping")
    member = (await salon.members.add_member(booking.id, "Bride", saree.id)).data

    result = await salon.members.update_member(member.id, {"service": bridal.id, "cost": 3000})

    assert result.data.cost == 3000


async def test_editing_other_fields_keeps_cost(salon):
    booking = await completed_booking(salon)
    saree = service_named(salon, "Saree Draping")
    member = (await salon.members.add_member(booking.id, "Bride", saree.id, cost=999)).data

    result = await salon.members.update_member(member.id, {"occasion": "Sangeet", "service": saree.id})

    assert result.data.cost == 999
    assert result.data.occasion == "Sangeet"


async def test_update_and_remove_unknown_member(salon):
    with pytest.raises(NotFoundError):
        await salon.members.update_member("missing", {"cost": 1})
    with pytest.raises(NotFoundError):
        await salon.members.remove_member("missing")


async def test_bridal_example_reconciles(salon):
    booking = await completed_booking(salon, "Bridal Makeup")
    assert booking.total_amount == 3500
    assistant = worker_named(salon, "Assistant")
    owner = salon.catalog.get_owner()
    bridal = service_named(salon, "Bridal Makeup")

    await salon.members.add_member(booking.id, "Member A", bridal.id, worker_id=assistant.id, cost=2000)
    await salon.members.add_member(booking.id, "Member B", bridal.id, worker_id=owner.id, cost=1500)

    financials = salon.financials(booking.id)
    assert salon.bookings.get_booking(booking.id).total_amount == 3500
    assert financials.total == 3500
    assert financials.worker_payout == 800
    assert financials.net_profit == 2700
    assert financials.worker_breakdown == {assistant.id: 800}


async def test_member_stats(salon):
    booking = await completed_booking(salon)
    saree = service_named(salon, "Saree Draping")
    await salon.members.add_member(booking.id, "A", saree.id, satisfaction=5, duration_minutes=40)
    await salon.members.add_member(booking.id, "B", saree.id, satisfaction=3, duration_minutes=20)
    await salon.members.add_member(booking.id, "C", saree.id)

    stats = salon.member_stats(booking.id)

    assert stats.total_members == 3
    assert stats.total_revenue == 3600
    assert stats.average_satisfaction == 4
    assert stats.total_duration == 60


async def test_fractional_costs_sum_exactly(salon, store):
    booking = await completed_booking(salon)
    assistant = worker_named(salon, "Assistant")

    await salon.members.add_member(booking.id, "Guest A", "Threading", cost=100.10, worker_id=assistant.id)
    await salon.members.add_member(booking.id, "Guest B", "Threading", cost="200.20")

    current = salon.bookings.get_booking(booking.id)
    assert current.total_amount == Decimal("300.30")
    assert Decimal(store.tables[BOOKINGS][booking.id]["total_amount"]) == Decimal("300.30")
    assert salon.financials(booking.id).net_profit == Decimal("-499.70")
