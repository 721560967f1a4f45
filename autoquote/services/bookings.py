"""Appointment booking: one phone call to the chosen shop."""

import asyncio
import time
import uuid
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from autoquote.clients.task_client import ExternalTaskClient
from autoquote.errors import PollTimeoutError, RemoteError
from autoquote.models.calls import BookingCallResult
from autoquote.models.sessions import BookingSession, SessionStatus
from autoquote.models.shops import RepairShop
from autoquote.models.tasks import BookingCallRequest, NormalizedStatus, TaskKind, TaskStatus
from autoquote.services.background import BackgroundTasks
from autoquote.services.call_sessions import ABANDONED_ERROR
from autoquote.services.poller import poll_until_terminal
from autoquote.services.session_store import JsonSessionStore
from autoquote.telemetry.logger import get_logger
from autoquote.telemetry.orchestration_metrics import OrchestrationMetrics

NOT_BOOKED_ERROR = "The shop did not confirm an appointment"


def format_appointment_date(day: date) -> str:
    """Format a date as e.g. ``Tuesday, October 20, 2026``."""
    return f"{day:%A, %B} {day.day}, {day.year}"


def tomorrow_label(timezone: str, now: datetime | None = None) -> str:
    current = now.astimezone(ZoneInfo(timezone)) if now else datetime.now(ZoneInfo(timezone))
    return format_appointment_date(current.date() + timedelta(days=1))


class BookingService:
    """Places booking calls and tracks them until the shop confirms or declines."""

    def __init__(
        self,
        task_client: ExternalTaskClient,
        store: JsonSessionStore[BookingSession],
        metrics: OrchestrationMetrics | None = None,
        demo_phone_numbers: list[str] | None = None,
        timezone: str = "America/Los_Angeles",
        poll_interval: float = 5.0,
        max_wait: float = 600.0,
    ):
        self.task_client = task_client
        self.store = store
        self.metrics = metrics or OrchestrationMetrics()
        self.demo_phone_numbers = list(demo_phone_numbers or [])
        self.timezone = timezone
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.background = BackgroundTasks()
        self.logger = get_logger("autoquote.bookings")

    async def book_appointment(
        self,
        shop: RepairShop,
        customer_name: str,
        customer_phone: str,
        damage_description: str | None = None,
        vehicle_info: str | None = None,
        preferred_time: str | None = None,
        now: datetime | None = None,
    ) -> BookingSession:
        """Call a shop to book a repair for tomorrow.

        Args:
            shop: Shop chosen by the customer
            customer_name: Name given to the shop
            customer_phone: Callback number given to the shop
            damage_description: Repair needed
            vehicle_info: Make/model/year, free text
            preferred_time: Preferred time of day
            now: Reference time used to compute tomorrow's date

        Returns:
            The booking record (calling, or failed when the call could not be placed)
        """
        requested_date = tomorrow_label(self.timezone, now)
        shop_phone = self.demo_phone_numbers[0] if self.demo_phone_numbers else shop.phone_number
        booking = BookingSession(
            booking_id=f"booking-{uuid.uuid4().hex}",
            shop_name=shop.shop_name,
            shop_phone=shop_phone,
            shop_address=shop.full_address,
            customer_name=customer_name,
            customer_phone=customer_phone,
            damage_description=damage_description or "Vehicle repair",
            requested_date=requested_date,
            preferred_time=preferred_time,
            vehicle_info=vehicle_info,
        )
        request = BookingCallRequest(
            phone_number=shop_phone,
            shop_name=shop.shop_name,
            shop_address=shop.full_address,
            damage_description=damage_description or "Vehicle repair needed",
            customer_name=customer_name,
            customer_phone=customer_phone,
            vehicle_info=vehicle_info,
            appointment_date=requested_date,
            preferred_time=preferred_time,
        )

        try:
            handle = await self.task_client.create_task(TaskKind.BOOKING_CALL, request)
        except RemoteError as e:
            self.logger.error(
                "Failed to place booking call",
                extra={"booking_id": booking.booking_id, "shop_name": shop.shop_name, "error": str(e), "operation": "booking_create"},
            )
            booking = booking.model_copy(
                update={"status": SessionStatus.FAILED, "error": f"Booking call could not be placed: {e}"}
            )
            self.store.persist(booking.booking_id, booking)
            self.metrics.log_session("booking", booking.booking_id, "failed", 0)
            return booking

        booking = booking.model_copy(update={"call_id": handle.task_id})
        self.store.persist(booking.booking_id, booking)
        self.metrics.log_session("booking", booking.booking_id, "started")
        self.logger.info(
            "Booking call placed",
            extra={
                "booking_id": booking.booking_id,
                "call_id": handle.task_id,
                "requested_date": requested_date,
                "operation": "booking_create",
            },
        )
        self._spawn(booking.booking_id, self.max_wait)
        return booking

    def _spawn(self, booking_id: str, budget: float) -> None:
        self.background.spawn(self._run(booking_id, budget), name=f"booking-{booking_id}")

    async def _run(self, booking_id: str, budget: float) -> None:
        start_time = time.time()
        try:
            await poll_until_terminal(
                lambda: self._check(booking_id),
                poll_interval=self.poll_interval,
                max_wait=budget,
                label=f"booking {booking_id}",
            )
        except asyncio.CancelledError:
            raise
        except PollTimeoutError as e:
            self._fail(booking_id, str(e))
        except Exception as e:
            self.logger.error(
                "Booking polling crashed",
                extra={"booking_id": booking_id, "error": str(e), "operation": "booking_error"},
                exc_info=True,
            )
            self._fail(booking_id, f"Polling failed: {e}")
        else:
            booking = self.store.load(booking_id)
            outcome = "completed" if booking and booking.status is SessionStatus.COMPLETED else "failed"
            self.metrics.log_session("booking", booking_id, outcome, time.time() - start_time)

    async def _check(self, booking_id: str) -> TaskStatus:
        booking = self.store.load(booking_id)
        if booking is None or booking.call_id is None:
            raise RemoteError("bookings", f"booking {booking_id} has no call to poll")

        status = await self.task_client.get_status(TaskKind.BOOKING_CALL, booking.call_id)
        result = status.outcome
        if not isinstance(result, BookingCallResult):
            result = BookingCallResult(call_id=booking.call_id, status=status.raw_status)
        result = result.model_copy(
            update={"shop_name": booking.shop_name, "phone_number": result.phone_number or booking.shop_phone}
        )

        update: dict = {"result": result}
        if status.is_terminal:
            if result.appointment_booked:
                update["status"] = SessionStatus.COMPLETED
            else:
                update["status"] = SessionStatus.FAILED
                update["error"] = NOT_BOOKED_ERROR
        booking = booking.model_copy(update=update)
        self.store.persist(booking_id, booking)

        if status.is_terminal:
            self.logger.info(
                "Booking call finished",
                extra={
                    "booking_id": booking_id,
                    "status": booking.status.value,
                    "appointment_booked": result.appointment_booked,
                    "operation": "booking_complete",
                },
            )
        return TaskStatus(
            kind=TaskKind.BOOKING_CALL,
            task_id=booking_id,
            raw_status=status.raw_status,
            status=NormalizedStatus.SUCCEEDED if status.is_terminal else NormalizedStatus.PENDING,
        )

    def _fail(self, booking_id: str, error: str) -> None:
        booking = self.store.load(booking_id)
        if booking is None:
            return
        booking = booking.model_copy(update={"status": SessionStatus.FAILED, "error": error})
        self.store.persist(booking_id, booking)
        self.metrics.log_session("booking", booking_id, "failed", booking.elapsed_seconds())

    def get_booking(self, booking_id: str) -> BookingSession | None:
        return self.store.load(booking_id)

    def list_bookings(self) -> list[BookingSession]:
        return sorted(self.store.load_all().values(), key=lambda b: b.start_time, reverse=True)

    def reconcile(self, now: datetime | None = None) -> dict[str, int]:
        """Resume or abandon bookings left in ``calling`` by a previous process."""
        resumed = abandoned = 0
        for booking_id, booking in self.store.load_all().items():
            if booking.status is not SessionStatus.CALLING:
                continue
            elapsed = booking.elapsed_seconds(now)
            if booking.call_id is None or elapsed >= self.max_wait:
                self._fail(booking_id, ABANDONED_ERROR)
                abandoned += 1
            else:
                self._spawn(booking_id, self.max_wait - elapsed)
                resumed += 1

        if resumed or abandoned:
            self.logger.info(
                "Bookings reconciled",
                extra={"resumed": resumed, "abandoned": abandoned, "operation": "booking_reconcile"},
            )
        return {"resumed": resumed, "abandoned": abandoned}

    async def aclose(self) -> None:
        await self.background.cancel_all()
