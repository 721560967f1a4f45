"""Remote task kinds, requests and normalized status records."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from autoquote.models.calls import BookingCallResult, CallResult
from autoquote.models.shops import RepairShop


class TaskKind(str, Enum):
    """The three kinds of remote jobs the orchestrator drives."""

    RESEARCH = "research"
    QUOTE_CALL = "quote_call"
    BOOKING_CALL = "booking_call"


class NormalizedStatus(str, Enum):
    """Status vocabulary shared by every remote task kind."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not NormalizedStatus.PENDING


class TaskHandle(BaseModel):
    """Opaque reference to a task created on a remote service."""

    kind: TaskKind
    task_id: str
    view_url: str | None = None
    remote_status: str | None = None
    created_at: datetime | None = None


class ResearchRequest(BaseModel):
    """Find repair shops around a location."""

    location: str
    damage_description: str | None = None
    radius_miles: float = 5


class QuoteCallRequest(BaseModel):
    """Ask one shop for a repair quotation over the phone."""

    phone_number: str
    shop_name: str
    shop_address: str
    damage_description: str
    customer_name: str | None = None
    slot: int = Field(0, description="Position of the shop within its quote round")


class BookingCallRequest(BaseModel):
    """Book a repair appointment with one shop over the phone."""

    phone_number: str
    shop_name: str
    shop_address: str
    damage_description: str
    customer_name: str
    customer_phone: str
    vehicle_info: str | None = None
    appointment_date: str | None = None
    preferred_time: str | None = None


TaskRequest = ResearchRequest | QuoteCallRequest | BookingCallRequest


class ResearchOutcome(BaseModel):
    """Payload of a research or browsing task."""

    shops: list[RepairShop] = Field(default_factory=list)
    result: str | None = None


class TaskStatus(BaseModel):
    """One observation of a remote task."""

    kind: TaskKind
    task_id: str
    raw_status: str
    status: NormalizedStatus
    outcome: ResearchOutcome | CallResult | BookingCallResult | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
