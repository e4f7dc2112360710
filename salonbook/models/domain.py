import uuid
from datetime import date as Date, datetime, time as Time, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, field_validator, ValidationError as PydanticValidationError

from salonbook.core.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


def new_id() -> str:
    return str(uuid.uuid4())


class BookingStatus(str, Enum):
    UPCOMING = "upcoming"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


def _check_amount(value: Decimal) -> Decimal:
    if value is None:
        return value
    if not value.is_finite() or value < 0:
        raise ValueError("amount must be a finite non-negative number")
    return value


def _check_text(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("must not be blank")
    return value.strip()


# --- Catalog ---

class Service(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    client_price: Decimal
    description: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        return _check_text(v)

    @field_validator("client_price")
    @classmethod
    def price_non_negative(cls, v):
        return _check_amount(v)


class Worker(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    role: str = ""
    payment_rate: Decimal = Decimal(0)
    is_owner: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        return _check_text(v)

    @field_validator("payment_rate")
    @classmethod
    def rate_non_negative(cls, v):
        return _check_amount(v)


# --- Bookings ---

class BookingMember(BaseModel):
    """One person served within a completed booking."""
    id: str = Field(default_factory=new_id)
    booking_id: str
    member_name: str
    relation: str = ""
    service_id: Optional[str] = None
    service_name: str
    worker_id: Optional[str] = None
    occasion: str = ""
    cost: Decimal = Decimal(0)
    satisfaction: Optional[int] = Field(default=None, ge=1, le=5)
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    notes: str = ""
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("member_name", "service_name")
    @classmethod
    def text_not_blank(cls, v):
        return _check_text(v)

    @field_validator("cost")
    @classmethod
    def cost_non_negative(cls, v):
        return _check_amount(v)


class Booking(BaseModel):
    id: str = Field(default_factory=new_id)
    client_name: str
    client_phone: str = ""
    date: Date
    time: Time
    primary_service_id: str
    estimated_people: int = Field(default=1, ge=1)
    notes: str = ""
    status: BookingStatus = BookingStatus.UPCOMING
    created_at: datetime = Field(default_factory=datetime.now)
    total_amount: Decimal = Decimal(0)
    members: List[BookingMember] = Field(default_factory=list)

    @field_validator("client_name")
    @classmethod
    def client_name_not_blank(cls, v):
        return _check_text(v)

    @field_validator("total_amount")
    @classmethod
    def total_non_negative(cls, v):
        return _check_amount(v)

    def starts_at(self, tz: tzinfo) -> datetime:
        """Combined date+time instant in the business timezone."""
        return datetime.combine(self.date, self.time, tzinfo=tz)

    def to_record(self) -> dict:
        """Row shape for the bookings collection (members live in their own collection)."""
        return self.model_dump(mode="json", exclude={"members"})


class BookingDetails(BaseModel):
    """
    Optional 1:1 metadata for a booking. Its id is the booking id.
    An absent record is equivalent to BookingDetails(booking_id=...).
    """
    booking_id: str
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_amount: Decimal = Decimal(0)
    payment_method: str = ""
    payment_notes: str = ""
    actual_people: Optional[int] = Field(default=None, ge=0)
    completion_notes: str = ""
    client_feedback: str = ""
    client_rating: Optional[int] = Field(default=None, ge=1, le=5)
    photos_uploaded: bool = False
    before_after_photos: bool = False
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("payment_amount")
    @classmethod
    def amount_non_negative(cls, v):
        return _check_amount(v)

    def to_record(self) -> dict:
        record = self.model_dump(mode="json")
        record["id"] = self.booking_id
        return record


def validate_model(model: Type[M], data: Dict[str, Any]) -> M:
    """Build a model, reporting bad input as the core's ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or model.__name__}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid {model.__name__}: {problems}")
