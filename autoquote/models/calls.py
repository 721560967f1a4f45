"""Outcomes of voice calls placed to repair shops."""

from pydantic import Field

from autoquote.models.base import CamelModel


class Quotation(CamelModel):
    """Price and duration estimate extracted from a completed call."""

    price: float
    currency: str = "USD"
    estimated_days: float | None = None
    notes: str | None = None


class CallResult(CamelModel):
    """Observed state of one quote call."""

    call_id: str
    shop_name: str = "Unknown Shop"
    phone_number: str = ""
    status: str
    transcript: str | None = None
    summary: str | None = None
    quotation: Quotation | None = None
    duration: int | None = None
    ended_reason: str | None = None
    recording_url: str | None = None


class BookingCallResult(CamelModel):
    """Observed state of one appointment booking call."""

    call_id: str
    shop_name: str = "Unknown Shop"
    phone_number: str = ""
    status: str
    transcript: str | None = None
    summary: str | None = None
    appointment_booked: bool = False
    appointment_date: str | None = None
    appointment_time: str | None = None
    confirmation_number: str | None = None
    special_instructions: str | None = None
    estimated_completion: str | None = None
    alternative_date_offered: str | None = None
    duration: int | None = None
    ended_reason: str | None = None


class QuoteAnalysis(CamelModel):
    """Ranked quotations of one quote round."""

    ranked: list[CallResult] = Field(default_factory=list)
    best_option: CallResult | None = None
    summary: str
