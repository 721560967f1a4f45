"""Locally owned session records for quote rounds and bookings."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from autoquote.models.base import CamelModel
from autoquote.models.calls import BookingCallResult, CallResult, QuoteAnalysis


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    """Local state of a call or booking session."""

    CALLING = "calling"
    COMPLETED = "completed"
    FAILED = "failed"


class ShopSnapshot(CamelModel):
    """Shop contact details captured when a call was placed."""

    name: str
    phone: str
    address: str


class CallSession(CamelModel):
    """One quote-collection round across several shops."""

    session_id: str
    call_ids: list[str] = Field(default_factory=list)
    shops: list[ShopSnapshot] = Field(default_factory=list)
    damage_description: str
    status: SessionStatus = SessionStatus.CALLING
    start_time: datetime = Field(default_factory=utc_now)
    results: list[CallResult] | None = None
    analysis: QuoteAnalysis | None = None
    error: str | None = None

    def elapsed_seconds(self, now: datetime | None = None) -> int:
        return round(((now or utc_now()) - self.start_time).total_seconds())


class BookingSession(CamelModel):
    """One appointment booking call."""

    booking_id: str
    call_id: str | None = None
    shop_name: str
    shop_phone: str
    shop_address: str
    customer_name: str
    customer_phone: str
    damage_description: str
    requested_date: str
    preferred_time: str | None = None
    vehicle_info: str | None = None
    status: SessionStatus = SessionStatus.CALLING
    start_time: datetime = Field(default_factory=utc_now)
    result: BookingCallResult | None = None
    error: str | None = None

    def elapsed_seconds(self, now: datetime | None = None) -> int:
        return round(((now or utc_now()) - self.start_time).total_seconds())
