from typing import List

from fastapi import APIRouter, Depends

from salonbook.api.deps import get_salon, write_response
from salonbook.models.api_models import (
    BookingCreate, BookingUpdate, DetailsUpsert, MemberCreate, MemberUpdate, WriteResponse,
)
from salonbook.models.domain import Booking, BookingDetails, BookingMember
from salonbook.services.salon import Salon

router = APIRouter()

# --- Bookings ---

@router.get("/bookings", response_model=List[Booking])
async def list_bookings(status: str = "all", sort: str = "date_desc", salon: Salon = Depends(get_salon)):
    return salon.bookings.list_bookings(status, sort)

@router.get("/bookings/date/{day}", response_model=List[Booking])
async def bookings_for_date(day: str, salon: Salon = Depends(get_salon)):
    return salon.bookings.bookings_for_date(day)

@router.post("/bookings/sweep")
async def run_sweep(salon: Salon = Depends(get_salon)):
    promoted = await salon.scheduler.run_once()
    return {"promoted": promoted}

@router.get("/bookings/{booking_id}", response_model=Booking)
async def get_booking(booking_id: str, salon: Salon = Depends(get_salon)):
    return salon.bookings.get_booking(booking_id)

@router.post("/bookings", response_model=WriteResponse)
async def create_booking(req: BookingCreate, salon: Salon = Depends(get_salon)):
    result = await salon.bookings.create_booking(
        client_name=req.client_name,
        client_phone=req.client_phone,
        date=req.date,
        time=req.time,
        primary_service_id=req.primary_service_id,
        estimated_people=req.estimated_people,
        notes=req.notes,
    )
    return write_response(result)

@router.patch("/bookings/{booking_id}", response_model=WriteResponse)
async def update_booking(booking_id: str, req: BookingUpdate, salon: Salon = Depends(get_salon)):
    result = await salon.bookings.update_booking(booking_id, req.model_dump(exclude_unset=True))
    return write_response(result)

@router.delete("/bookings/{booking_id}", response_model=WriteResponse)
async def delete_booking(booking_id: str, salon: Salon = Depends(get_salon)):
    return write_response(await salon.bookings.delete_booking(booking_id))

@router.post("/bookings/{booking_id}/complete", response_model=WriteResponse)
async def mark_completed(booking_id: str, salon: Salon = Depends(get_salon)):
    return write_response(await salon.bookings.mark_completed(booking_id))

# --- Members ---

@router.get("/bookings/{booking_id}/members", response_model=List[BookingMember])
async def list_members(booking_id: str, salon: Salon = Depends(get_salon)):
    return salon.members.list_members(booking_id)

@router.post("/bookings/{booking_id}/members", response_model=WriteResponse)
async def add_member(booking_id: str, req: MemberCreate, salon: Salon = Depends(get_salon)):
    result = await salon.members.add_member(booking_id, **req.model_dump())
    return write_response(result)

@router.patch("/members/{member_id}", response_model=WriteResponse)
async def update_member(member_id: str, req: MemberUpdate, salon: Salon = Depends(get_salon)):
    result = await salon.members.update_member(member_id, req.model_dump(exclude_unset=True))
    return write_response(result)

@router.delete("/members/{member_id}", response_model=WriteResponse)
async def remove_member(member_id: str, salon: Salon = Depends(get_salon)):
    return write_response(await salon.members.remove_member(member_id))

# --- Details ---

@router.get("/bookings/{booking_id}/details", response_model=BookingDetails)
async def get_details(booking_id: str, salon: Salon = Depends(get_salon)):
    return salon.details.get_details(booking_id)

@router.put("/bookings/{booking_id}/details", response_model=WriteResponse)
async def save_details(booking_id: str, req: DetailsUpsert, salon: Salon = Depends(get_salon)):
    return write_response(await salon.details.save_details(booking_id, req.model_dump()))

@router.delete("/bookings/{booking_id}/details", response_model=WriteResponse)
async def delete_details(booking_id: str, salon: Salon = Depends(get_salon)):
    return write_response(await salon.details.delete_details(booking_id))
