from datetime import date, time

from salonbook.models.domain import Booking, BookingMember, BookingStatus, Worker
from salonbook.services import reconciliation

OWNER = Worker(id="w-owner", name="Owner", payment_rate=0, is_owner=True)
ASSISTANT = Worker(id="w-asst", name="Assistant", payment_rate=800)
STYLIST = Worker(id="w-style", name="Stylist", payment_rate=500)
WORKERS = [OWNER, ASSISTANT, STYLIST]


def member(cost, worker_id=None, **extra):
    return BookingMember(booking_id="b1", member_name="Guest", service_name="Makeup", cost=cost, worker_id=worker_id, **extra)


def booking(status, members=(), total=None):
    members = list(members)
    return Booking(
        client_name="Client",
        date=date(2024, 1, 1),
        time=time(10, 0),
        primary_service_id="s1",
        status=status,
        members=members,
        total_amount=reconciliation.compute_booking_total(members) if total is None else total,
    )


def test_booking_total_is_sum_of_costs():
    members = [member(2000), member(1500), member(0)]
    assert reconciliation.compute_booking_total(members) == 3500
    assert reconciliation.compute_booking_total(members) == reconciliation.compute_booking_total(members)
    assert reconciliation.compute_booking_total([]) == 0


def test_owner_contributes_nothing_to_payout():
    members = [member(99999, OWNER.id), member(1, OWNER.id)]
    assert reconciliation.compute_worker_payout(members, WORKERS) == 0


def test_payout_is_rate_based_not_cost_based():
    members = [member(5000, ASSISTANT.id), member(100, ASSISTANT.id), member(700, STYLIST.id)]
    assert reconciliation.compute_worker_payout(members, WORKERS) == 800 + 800 + 500


def test_unassigned_and_unknown_workers_cost_nothing():
    members = [member(1000), member(1000, "gone")]
    assert reconciliation.compute_worker_payout(members, WORKERS) == 0


def test_net_profit_is_total_minus_payout():
    b = booking(BookingStatus.COMPLETED, [member(2000, ASSISTANT.id), member(1500, OWNER.id)])
    assert reconciliation.compute_net_profit(b, WORKERS) == 2700
    assert reconciliation.compute_net_profit(b, WORKERS) == (
        reconciliation.compute_booking_total(b.members) - reconciliation.compute_worker_payout(b.members, WORKERS)
    )


def test_worker_breakdown():
    members = [member(1, ASSISTANT.id), member(1, ASSISTANT.id), member(1, STYLIST.id), member(1, OWNER.id)]
    assert reconciliation.compute_worker_breakdown(members, WORKERS) == {ASSISTANT.id: 1600, STYLIST.id: 500}


def test_aggregate_stats_of_nothing():
    stats = reconciliation.compute_aggregate_stats([], WORKERS)
    assert stats.total_bookings == 0
    assert stats.total_revenue == 0
    assert stats.average_booking_value == 0
    assert stats.net_profit == 0


def test_aggregate_stats_counts_only_completed_revenue():
    bookings = [
        booking(BookingStatus.COMPLETED, [member(2000, ASSISTANT.id), member(1500, OWNER.id)]),
        booking(BookingStatus.COMPLETED, [member(1200, STYLIST.id)]),
        booking(BookingStatus.UPCOMING, total=3500),
    ]

    stats = reconciliation.compute_aggregate_stats(bookings, WORKERS)

    assert stats.total_bookings == 3
    assert stats.completed_count == 2
    assert stats.upcoming_count == 1
    assert stats.total_revenue == 4700
    assert stats.total_worker_payments == 1300
    assert stats.net_profit == 3400
    assert stats.average_booking_value == 2350


def test_aggregate_stats_with_only_upcoming_bookings():
    stats = reconciliation.compute_aggregate_stats([booking(BookingStatus.UPCOMING, total=3500)], WORKERS)
    assert stats.completed_count == 0
    assert stats.average_booking_value == 0


def test_member_stats_ignores_unrated_members():
    members = [member(100, satisfaction=4), member(200), member(300, satisfaction=2, duration_minutes=30)]

    stats = reconciliation.compute_member_stats(members)

    assert stats.total_members == 3
    assert stats.total_revenue == 600
    assert stats.average_satisfaction == 3
    assert stats.total_duration == 30


def test_member_stats_of_nothing():
    stats = reconciliation.compute_member_stats([])
    assert stats.total_members == 0
    assert stats.average_satisfaction == 0
