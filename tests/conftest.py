"""Shared fixtures: a scripted task backend and factories for remote statuses."""

import asyncio

import pytest

from autoquote.cache.shop_cache import LocalShopCache, TwoTierShopCache
from autoquote.clients.task_client import ExternalTaskClient
from autoquote.config import Settings
from autoquote.models.calls import BookingCallResult, CallResult, Quotation
from autoquote.models.shops import RepairShop
from autoquote.models.tasks import NormalizedStatus, ResearchOutcome, TaskHandle, TaskKind, TaskStatus


class ScriptedBackend:
    """Task backend replaying scripted statuses.

    ``statuses[task_id]`` is consumed one item per status call; the last item
    repeats. Items may be exceptions, which are raised. A task listed in
    ``holds`` reports pending until its event is set.
    """

    simulated = False

    def __init__(self):
        self.created: list[tuple[TaskKind, object, str]] = []
        self.statuses: dict[str, list] = {}
        self.create_errors: dict[str, Exception] = {}
        self.holds: dict[str, asyncio.Event] = {}
        self.status_calls: list[str] = []
        self.closed = False

    async def create(self, kind, request):
        shop_name = getattr(request, "shop_name", None)
        if shop_name in self.create_errors:
            raise self.create_errors[shop_name]
        if kind.value in self.create_errors:
            raise self.create_errors[kind.value]
        task_id = f"task-{len(self.created) + 1}"
        self.created.append((kind, request, task_id))
        return TaskHandle(kind=kind, task_id=task_id, remote_status="queued")

    async def status(self, kind, task_id):
        self.status_calls.append(task_id)
        hold = self.holds.get(task_id)
        if hold is not None and not hold.is_set():
            return TaskStatus(kind=kind, task_id=task_id, raw_status="running", status=NormalizedStatus.PENDING)
        script = self.statuses.get(task_id)
        if not script:
            return TaskStatus(kind=kind, task_id=task_id, raw_status="queued", status=NormalizedStatus.PENDING)
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self):
        self.closed = True


def pending_status(kind: TaskKind, task_id: str, raw: str = "in-progress") -> TaskStatus:
    return TaskStatus(kind=kind, task_id=task_id, raw_status=raw, status=NormalizedStatus.PENDING)


def quote_status(task_id: str, price: float | None = None, days: float | None = None, raw: str = "ended") -> TaskStatus:
    quotation = Quotation(price=price, estimated_days=days) if price is not None else None
    return TaskStatus(
        kind=TaskKind.QUOTE_CALL,
        task_id=task_id,
        raw_status=raw,
        status=NormalizedStatus.FAILED if raw == "failed" else NormalizedStatus.SUCCEEDED,
        outcome=CallResult(call_id=task_id, status=raw, quotation=quotation),
    )


def booking_status(task_id: str, booked: bool, raw: str = "ended") -> TaskStatus:
    return TaskStatus(
        kind=TaskKind.BOOKING_CALL,
        task_id=task_id,
        raw_status=raw,
        status=NormalizedStatus.SUCCEEDED,
        outcome=BookingCallResult(
            call_id=task_id,
            status=raw,
            appointment_booked=booked,
            appointment_time="9:00 AM" if booked else None,
            confirmation_number="CONF-ABC123" if booked else None,
        ),
    )


def research_status(task_id: str, shops: list[RepairShop], raw: str = "succeeded") -> TaskStatus:
    return TaskStatus(
        kind=TaskKind.RESEARCH,
        task_id=task_id,
        raw_status=raw,
        status=NormalizedStatus.FAILED if raw == "failed" else NormalizedStatus.SUCCEEDED,
        outcome=ResearchOutcome(shops=shops),
    )


@pytest.fixture
def statuses():
    """Factories for scripted remote statuses."""

    class Statuses:
        pending = staticmethod(pending_status)
        quote = staticmethod(quote_status)
        booking = staticmethod(booking_status)
        research = staticmethod(research_status)

    return Statuses


@pytest.fixture
def scripted_backend():
    return ScriptedBackend()


@pytest.fixture
def task_client(scripted_backend):
    return ExternalTaskClient({kind: scripted_backend for kind in TaskKind})


@pytest.fixture
def shop_cache(tmp_path):
    return TwoTierShopCache(LocalShopCache(tmp_path / "repair_shops_cache.json"))


@pytest.fixture
def sample_shops():
    return [
        RepairShop(shop_name="Alpha Auto", address="1 First St", city="San Jose", state="CA", phone_number="(408) 555-0001"),
        RepairShop(shop_name="Beta Body", address="2 Second St", city="San Jose", state="CA", phone_number="(408) 555-0002"),
        RepairShop(shop_name="Gamma Garage", address="3 Third St", city="San Jose", state="CA", phone_number="(408) 555-0003"),
    ]


@pytest.fixture
def offline_settings(tmp_path):
    """Settings with every capability simulated and no waiting."""
    return Settings(
        data_dir=tmp_path,
        poll_interval_seconds=0.01,
        max_wait_seconds=5,
        search_timeout_seconds=1,
        simulated_call_delay_seconds=0,
        simulated_booking_delay_seconds=0,
        rate_limit_per_minute=1000,
        rate_limit_burst=1000,
        call_rate_limit_per_minute=1000,
    )
