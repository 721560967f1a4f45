"""Outbound phone call backend (quote and booking calls)."""

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from autoquote.clients.task_client import HttpBackend
from autoquote.clients.voice_prompts import booking_call_payload, quote_call_payload
from autoquote.errors import RemoteError
from autoquote.models.calls import BookingCallResult, CallResult, Quotation
from autoquote.models.tasks import (
    BookingCallRequest,
    NormalizedStatus,
    QuoteCallRequest,
    TaskHandle,
    TaskKind,
    TaskStatus,
)

_STATUS_MAP = {
    "ended": NormalizedStatus.SUCCEEDED,
    "failed": NormalizedStatus.FAILED,
}


class _Analysis(BaseModel):
    summary: str | None = None
    structuredData: dict[str, Any] | None = None


class _CallRecord(BaseModel):
    """Subset of the remote call object the orchestrator relies on."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str = "queued"
    transcript: str | None = None
    analysis: _Analysis | None = None
    metadata: dict[str, Any] | None = None
    customer: dict[str, Any] | None = None
    costBreakdown: dict[str, Any] | None = None
    endedReason: str | None = None
    recordingUrl: str | None = None

    @property
    def structured(self) -> dict[str, Any]:
        return (self.analysis.structuredData if self.analysis else None) or {}

    @property
    def summary(self) -> str | None:
        return self.analysis.summary if self.analysis else None

    @property
    def shop_name(self) -> str:
        return (self.metadata or {}).get("shopName") or "Unknown Shop"

    @property
    def phone_number(self) -> str:
        return (self.customer or {}).get("number") or ""

    @property
    def duration(self) -> int | None:
        total = (self.costBreakdown or {}).get("total")
        return round(total * 60) if total else None


def parse_quote_call(record: _CallRecord) -> CallResult:
    data = record.structured
    quotation = None
    if data.get("quotation_provided"):
        quotation = Quotation(
            price=data.get("quoted_price") or 0,
            currency=data.get("currency") or "USD",
            estimated_days=data.get("estimated_days"),
            notes=data.get("additional_notes"),
        )
    return CallResult(
        call_id=record.id,
        shop_name=record.shop_name,
        phone_number=record.phone_number,
        status=record.status,
        transcript=record.transcript,
        summary=record.summary,
        quotation=quotation,
        duration=record.duration,
        ended_reason=record.endedReason,
        recording_url=record.recordingUrl,
    )


def parse_booking_call(record: _CallRecord) -> BookingCallResult:
    data = record.structured
    return BookingCallResult(
        call_id=record.id,
        shop_name=record.shop_name,
        phone_number=record.phone_number,
        status=record.status,
        transcript=record.transcript,
        summary=record.summary,
        appointment_booked=bool(data.get("appointment_booked")),
        appointment_date=data.get("appointment_date"),
        appointment_time=data.get("appointment_time"),
        confirmation_number=data.get("confirmation_number"),
        special_instructions=data.get("special_instructions"),
        estimated_completion=data.get("estimated_completion"),
        alternative_date_offered=data.get("alternative_date_offered"),
        duration=record.duration,
        ended_reason=record.endedReason,
    )


class VoiceCallBackend(HttpBackend):
    """Backend for the voice AI calling API.

    Quote and booking calls share the same endpoints; the kind decides
    which assistant is sent and how the finished call is interpreted.
    """

    service = "voice"

    def __init__(
        self,
        api_key: str,
        phone_number_id: str,
        base_url: str,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(
            base_url,
            headers={"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            http_client=http_client,
        )
        self.phone_number_id = phone_number_id

    async def create(
        self, kind: TaskKind, request: QuoteCallRequest | BookingCallRequest
    ) -> TaskHandle:
        if kind is TaskKind.QUOTE_CALL:
            body = quote_call_payload(request, self.phone_number_id)
        elif kind is TaskKind.BOOKING_CALL:
            body = booking_call_payload(request, self.phone_number_id)
        else:
            raise RemoteError(self.service, f"unsupported task kind {kind.value}")

        data = await self._request("POST", "/call", json=body)
        call_id = data.get("id")
        if not isinstance(call_id, str) or not call_id:
            raise RemoteError(self.service, "call creation response carries no id")
        return TaskHandle(kind=kind, task_id=call_id, remote_status=data.get("status"))

    async def status(self, kind: TaskKind, task_id: str) -> TaskStatus:
        data = await self._request("GET", f"/call/{task_id}")
        try:
            record = _CallRecord.model_validate(data)
        except ValidationError as e:
            raise RemoteError(self.service, f"malformed call record: {e}") from e

        outcome = (
            parse_booking_call(record)
            if kind is TaskKind.BOOKING_CALL
            else parse_quote_call(record)
        )
        return TaskStatus(
            kind=kind,
            task_id=task_id,
            raw_status=record.status,
            status=_STATUS_MAP.get(record.status, NormalizedStatus.PENDING),
            outcome=outcome,
        )
