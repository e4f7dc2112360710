from fastapi import APIRouter, Depends

from salonbook.api.deps import get_salon
from salonbook.models.results import AggregateStats, BookingFinancials, MemberStats
from salonbook.services.salon import Salon

router = APIRouter()

@router.get("/reports/stats", response_model=AggregateStats)
async def aggregate_stats(status: str = "all", salon: Salon = Depends(get_salon)):
    return salon.stats(status)

@router.get("/reports/bookings/{booking_id}/financials", response_model=BookingFinancials)
async def booking_financials(booking_id: str, salon: Salon = Depends(get_salon)):
    return salon.financials(booking_id)

@router.get("/reports/bookings/{booking_id}/members", response_model=MemberStats)
async def member_stats(booking_id: str, salon: Salon = Depends(get_salon)):
    return salon.member_stats(booking_id)
