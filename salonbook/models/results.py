from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from salonbook.core.errors import StorageError


class WriteOutcome(str, Enum):
    REMOTE = "remote"           # persisted to the Record Store
    LOCAL_ONLY = "local_only"   # store rejected it, applied locally and cached
    FAILED = "failed"           # nothing changed
    UNCHANGED = "unchanged"     # idempotent no-op, nothing written


class WriteResult(BaseModel):
    """
    Outcome of a mutating operation.

    Calling code and tests assert on `outcome` instead of parsing messages.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    outcome: WriteOutcome
    data: Any = None
    error: Optional[StorageError] = None

    @property
    def ok(self) -> bool:
        return self.outcome != WriteOutcome.FAILED

    def raise_for_failure(self) -> "WriteResult":
        if self.outcome == WriteOutcome.FAILED:
            raise self.error or StorageError("write failed")
        return self


class BookingFinancials(BaseModel):
    booking_id: str
    total: Decimal
    worker_payout: Decimal
    net_profit: Decimal
    worker_breakdown: Dict[str, Decimal]


class AggregateStats(BaseModel):
    total_bookings: int = 0
    completed_count: int = 0
    upcoming_count: int = 0
    total_revenue: Decimal = Decimal(0)
    total_worker_payments: Decimal = Decimal(0)
    net_profit: Decimal = Decimal(0)
    average_booking_value: Decimal = Decimal(0)


class MemberStats(BaseModel):
    total_members: int = 0
    total_revenue: Decimal = Decimal(0)
    average_satisfaction: float = 0
    total_duration: int = 0
