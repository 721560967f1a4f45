"""Offline stand-in for the voice calling API.

Used whenever voice credentials are missing. Calls "ring" for a fixed delay
and then end with synthetic, deterministic results so the whole session
pipeline (polling, persistence, ranking) runs unchanged.
"""

import hashlib
import time
import uuid
from dataclasses import dataclass
from typing import Callable

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
from autoquote.telemetry.logger import get_logger


@dataclass
class _SimulatedCall:
    kind: TaskKind
    request: QuoteCallRequest | BookingCallRequest
    created_at: float


def confirmation_number(call_id: str) -> str:
    digest = hashlib.sha1(call_id.encode("utf-8")).hexdigest()
    return f"CONF-{digest[:6].upper()}"


def simulated_quote(call_id: str, shop_name: str, phone_number: str, slot: int) -> CallResult:
    price = 500 + slot * 200
    days = 3 + slot
    return CallResult(
        call_id=call_id,
        shop_name=shop_name,
        phone_number=phone_number,
        status="ended",
        transcript=f"Simulated transcript for {shop_name}",
        summary=(
            f"Called {shop_name} about vehicle damage. They quoted ${price} for repairs, "
            f"estimated {days} days."
        ),
        quotation=Quotation(
            price=price,
            currency="USD",
            estimated_days=days,
            notes=f"Standard repair service at {shop_name}",
        ),
        duration=120 + slot * 30,
        ended_reason="customer-ended-call",
    )


def simulated_booking(call_id: str, request: BookingCallRequest) -> BookingCallResult:
    appointment_date = request.appointment_date or "tomorrow"
    return BookingCallResult(
        call_id=call_id,
        shop_name=request.shop_name,
        phone_number=request.phone_number,
        status="ended",
        summary=(
            f"Successfully booked appointment at {request.shop_name} for {appointment_date}. "
            "The shop confirmed they can accommodate the repair and provided a "
            "confirmation number."
        ),
        appointment_booked=True,
        appointment_date=appointment_date,
        appointment_time=request.preferred_time or "10:00 AM",
        confirmation_number=confirmation_number(call_id),
        special_instructions="Please bring your insurance information and vehicle registration.",
        estimated_completion="2-3 business days",
        ended_reason="customer-ended-call",
    )


class SimulatedCallBackend:
    """In-memory voice backend.

    Calls unknown to this process (for instance sessions resumed after a
    restart) report as ended with a generic result.
    """

    service = "voice-simulated"
    simulated = True

    def __init__(
        self,
        quote_delay: float = 10.0,
        booking_delay: float = 8.0,
        clock: Callable[[], float] = time.time,
    ):
        self.delays = {TaskKind.QUOTE_CALL: quote_delay, TaskKind.BOOKING_CALL: booking_delay}
        self.clock = clock
        self.calls: dict[str, _SimulatedCall] = {}
        self.logger = get_logger("autoquote.clients.voice_simulated")

    async def create(
        self, kind: TaskKind, request: QuoteCallRequest | BookingCallRequest
    ) -> TaskHandle:
        if kind not in self.delays:
            raise RemoteError(self.service, f"unsupported task kind {kind.value}")
        call_id = f"sim-{kind.value}-{uuid.uuid4().hex[:12]}"
        self.calls[call_id] = _SimulatedCall(kind=kind, request=request, created_at=self.clock())
        self.logger.info(
            "Simulated call placed",
            extra={"call_id": call_id, "shop_name": request.shop_name, "operation": "sim_call_create"},
        )
        return TaskHandle(kind=kind, task_id=call_id, remote_status="queued")

    async def status(self, kind: TaskKind, task_id: str) -> TaskStatus:
        call = self.calls.get(task_id)
        if call is not None and self.clock() - call.created_at < self.delays[call.kind]:
            return TaskStatus(
                kind=kind,
                task_id=task_id,
                raw_status="in-progress",
                status=NormalizedStatus.PENDING,
            )

        if kind is TaskKind.BOOKING_CALL:
            request = call.request if call is not None else None
            if not isinstance(request, BookingCallRequest):
                request = BookingCallRequest(
                    phone_number="",
                    shop_name="Unknown Shop",
                    shop_address="",
                    damage_description="",
                    customer_name="",
                    customer_phone="",
                )
            outcome = simulated_booking(task_id, request)
        elif call is not None and isinstance(call.request, QuoteCallRequest):
            outcome = simulated_quote(
                task_id, call.request.shop_name, call.request.phone_number, call.request.slot
            )
        else:
            outcome = simulated_quote(task_id, "Unknown Shop", "", 1)

        return TaskStatus(
            kind=kind,
            task_id=task_id,
            raw_status="ended",
            status=NormalizedStatus.SUCCEEDED,
            outcome=outcome,
        )

    async def aclose(self) -> None:
        self.calls.clear()
