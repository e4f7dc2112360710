"""
Financial derivations for bookings.

Member cost is always client-side revenue. Worker payout is the worker's fixed
per-service rate, independent of what the client was charged; the owner draws
no per-service fee.
"""
from decimal import Decimal
from typing import Dict, Iterable, List

from salonbook.models.domain import Booking, BookingMember, BookingStatus, Worker
from salonbook.models.results import AggregateStats, BookingFinancials, MemberStats


def _index(workers: Iterable[Worker]) -> Dict[str, Worker]:
    return {w.id: w for w in workers}


def compute_booking_total(members: Iterable[BookingMember]) -> Decimal:
    return sum((m.cost for m in members), Decimal(0))


def member_payout(member: BookingMember, workers_by_id: Dict[str, Worker]) -> Decimal:
    """Fixed rate of the assigned worker; 0 for the owner, unassigned or unknown workers."""
    worker = workers_by_id.get(member.worker_id) if member.worker_id else None
    if worker is None or worker.is_owner:
        return Decimal(0)
    return worker.payment_rate


def compute_worker_payout(members: Iterable[BookingMember], workers: Iterable[Worker]) -> Decimal:
    workers_by_id = _index(workers)
    return sum((member_payout(m, workers_by_id) for m in members), Decimal(0))


def compute_worker_breakdown(members: Iterable[BookingMember], workers: Iterable[Worker]) -> Dict[str, Decimal]:
    """Payout owed per worker id. Owner and unknown workers are omitted."""
    workers_by_id = _index(workers)
    breakdown: Dict[str, Decimal] = {}
    for member in members:
        worker = workers_by_id.get(member.worker_id)
        if worker is None or worker.is_owner:
            continue
        breakdown[worker.id] = breakdown.get(worker.id, Decimal(0)) + worker.payment_rate
    return breakdown


def compute_net_profit(booking: Booking, workers: Iterable[Worker]) -> Decimal:
    workers = list(workers)
    return compute_booking_total(booking.members) - compute_worker_payout(booking.members, workers)


def compute_booking_financials(booking: Booking, workers: Iterable[Worker]) -> BookingFinancials:
    workers = list(workers)
    total = compute_booking_total(booking.members)
    payout = compute_worker_payout(booking.members, workers)
    return BookingFinancials(
        booking_id=booking.id,
        total=total,
        worker_payout=payout,
        net_profit=total - payout,
        worker_breakdown=compute_worker_breakdown(booking.members, workers),
    )


def compute_aggregate_stats(bookings: Iterable[Booking], workers: Iterable[Worker]) -> AggregateStats:
    """
    Totals across a collection of bookings.
    Revenue and payouts count completed bookings only.
    """
    bookings = list(bookings)
    workers_by_id = _index(workers)
    completed = [b for b in bookings if b.status == BookingStatus.COMPLETED]
    upcoming_count = sum(1 for b in bookings if b.status == BookingStatus.UPCOMING)

    total_revenue = sum((b.total_amount for b in completed), Decimal(0))
    total_worker_payments = sum(
        (member_payout(m, workers_by_id) for b in completed for m in b.members), Decimal(0)
    )
    average = total_revenue / len(completed) if completed else Decimal(0)

    return AggregateStats(
        total_bookings=len(bookings),
        completed_count=len(completed),
        upcoming_count=upcoming_count,
        total_revenue=total_revenue,
        total_worker_payments=total_worker_payments,
        net_profit=total_revenue - total_worker_payments,
        average_booking_value=average,
    )


def compute_member_stats(members: List[BookingMember]) -> MemberStats:
    rated = [m.satisfaction for m in members if m.satisfaction]
    return MemberStats(
        total_members=len(members),
        total_revenue=compute_booking_total(members),
        average_satisfaction=sum(rated) / len(rated) if rated else 0,
        total_duration=sum(m.duration_minutes or 0 for m in members),
    )

