from datetime import date as Date, time as Time
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel

from salonbook.models.domain import PaymentStatus
from salonbook.models.results import WriteOutcome

# --- Incoming Request Models ---

class ServiceCreate(BaseModel):
    name: str
    client_price: Decimal
    description: Optional[str] = None

class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    client_price: Optional[Decimal] = None
    description: Optional[str] = None

class WorkerCreate(BaseModel):
    name: str
    role: str = ""
    payment_rate: Decimal = Decimal(0)

class WorkerUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[str] = None
    payment_rate: Optional[Decimal] = None
    is_owner: Optional[bool] = None

class BookingCreate(BaseModel):
    client_name: str
    client_phone: Optional[str] = None
    date: str
    time: str
    primary_service_id: str
    estimated_people: int = 1
    notes: Optional[str] = None

class BookingUpdate(BaseModel):
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    date: Optional[Date] = None
    time: Optional[Time] = None
    estimated_people: Optional[int] = None
    notes: Optional[str] = None

class MemberCreate(BaseModel):
    member_name: str
    service: str
    worker_id: Optional[str] = None
    occasion: Optional[str] = None
    cost: Optional[Decimal] = None
    relation: Optional[str] = None
    satisfaction: Optional[int] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None

class MemberUpdate(BaseModel):
    member_name: Optional[str] = None
    relation: Optional[str] = None
    service: Optional[str] = None
    worker_id: Optional[str] = None
    occasion: Optional[str] = None
    cost: Optional[Decimal] = None
    satisfaction: Optional[int] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None

class DetailsUpsert(BaseModel):
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_amount: Decimal = Decimal(0)
    payment_method: str = ""
    payment_notes: str = ""
    actual_people: Optional[int] = None
    completion_notes: str = ""
    client_feedback: str = ""
    client_rating: Optional[int] = None
    photos_uploaded: bool = False
    before_after_photos: bool = False

# --- Outgoing Response Models ---

class WriteResponse(BaseModel):
    outcome: WriteOutcome
    data: Any = None
    warning: Optional[str] = None
