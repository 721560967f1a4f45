"""Tests for the task client and its live HTTP backends."""

import json

import httpx
import pytest
import respx

from autoquote.clients.research_backend import ResearchBackend, build_research_query
from autoquote.clients.task_client import ExternalTaskClient
from autoquote.clients.voice_backend import VoiceCallBackend
from autoquote.errors import RemoteError
from autoquote.models.calls import BookingCallResult, CallResult
from autoquote.models.tasks import (
    BookingCallRequest,
    NormalizedStatus,
    QuoteCallRequest,
    ResearchOutcome,
    ResearchRequest,
    TaskKind,
)

RESEARCH_URL = "https://research.test/v1"
VOICE_URL = "https://voice.test"


@pytest.fixture
async def research_backend():
    backend = ResearchBackend(api_key="research-key", base_url=RESEARCH_URL)
    yield backend
    await backend.aclose()


@pytest.fixture
async def voice_backend():
    backend = VoiceCallBackend(api_key="voice-key", phone_number_id="phone-1", base_url=VOICE_URL)
    yield backend
    await backend.aclose()


@pytest.fixture
def quote_request():
    return QuoteCallRequest(
        phone_number="+14085550001",
        shop_name="Alpha Auto",
        shop_address="1 First St, San Jose, CA",
        damage_description="Dented rear bumper",
    )


class TestResearchBackend:
    """Research task creation and status normalization."""

    @pytest.mark.asyncio
    async def test_create_task_posts_query(self, research_backend):
        with respx.mock(base_url=RESEARCH_URL) as router:
            route = router.post("/research/tasks").mock(
                return_value=httpx.Response(
                    200, json={"task_id": "t-1", "view_url": "https://view/t-1", "status": "queued"}
                )
            )
            client = ExternalTaskClient({TaskKind.RESEARCH: research_backend})
            handle = await client.create_task(
                TaskKind.RESEARCH, ResearchRequest(location="San Jose, CA", damage_description="cracked bumper")
            )

        assert handle.task_id == "t-1"
        assert handle.view_url == "https://view/t-1"
        request = route.calls.last.request
        assert request.headers["X-API-Key"] == "research-key"
        body = json.loads(request.content)
        assert "cracked bumper" in body["query"]
        assert body["user_location"] == "San Jose, CA"
        assert body["task_spec"]["output_schema"]["type"] == "json"

    @pytest.mark.asyncio
    async def test_browsing_mode_uses_browsing_endpoint(self):
        backend = ResearchBackend(api_key="k", base_url=RESEARCH_URL, mode="browsing")
        with respx.mock(base_url=RESEARCH_URL) as router:
            route = router.post("/browsing/tasks").mock(
                return_value=httpx.Response(200, json={"task_id": "b-1"})
            )
            handle = await backend.create(TaskKind.RESEARCH, ResearchRequest(location="Fremont"))
        await backend.aclose()

        assert handle.task_id == "b-1"
        body = json.loads(route.calls.last.request.content)
        assert body["start_url"] == "https://www.google.com/maps"
        assert "Fremont" in body["task"]

    @pytest.mark.asyncio
    async def test_succeeded_status_carries_shops(self, research_backend):
        payload = {
            "task_id": "t-1",
            "status": "succeeded",
            "result": "Found shops",
            "structured_result": {
                "shops": [
                    {"shop_name": "Alpha Auto", "address": "1 First St", "city": "San Jose", "state": "CA", "phone_number": "408"},
                    {"address": "no name here"},
                ]
            },
        }
        with respx.mock(base_url=RESEARCH_URL) as router:
            router.get("/research/tasks/t-1").mock(return_value=httpx.Response(200, json=payload))
            status = await research_backend.status(TaskKind.RESEARCH, "t-1")

        assert status.status is NormalizedStatus.SUCCEEDED
        assert isinstance(status.outcome, ResearchOutcome)
        assert [shop.shop_name for shop in status.outcome.shops] == ["Alpha Auto"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("queued", NormalizedStatus.PENDING),
            ("running", NormalizedStatus.PENDING),
            ("failed", NormalizedStatus.FAILED),
        ],
    )
    async def test_status_normalization(self, research_backend, raw, expected):
        with respx.mock(base_url=RESEARCH_URL) as router:
            router.get("/research/tasks/t-1").mock(
                return_value=httpx.Response(200, json={"task_id": "t-1", "status": raw})
            )
            status = await research_backend.status(TaskKind.RESEARCH, "t-1")

        assert status.status is expected
        assert status.raw_status == raw

    @pytest.mark.asyncio
    async def test_non_2xx_raises_remote_error(self, research_backend):
        with respx.mock(base_url=RESEARCH_URL) as router:
            router.get("/research/tasks/t-1").mock(
                return_value=httpx.Response(503, json={"message": "overloaded"})
            )
            with pytest.raises(RemoteError) as exc_info:
                await research_backend.status(TaskKind.RESEARCH, "t-1")

        assert exc_info.value.status_code == 503
        assert "overloaded" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_raises_remote_error(self, research_backend):
        with respx.mock(base_url=RESEARCH_URL) as router:
            router.post("/research/tasks").mock(side_effect=httpx.ConnectError("refused"))
            with pytest.raises(RemoteError):
                await research_backend.create(TaskKind.RESEARCH, ResearchRequest(location="San Jose"))

    @pytest.mark.asyncio
    async def test_malformed_status_raises_remote_error(self, research_backend):
        with respx.mock(base_url=RESEARCH_URL) as router:
            router.get("/research/tasks/t-1").mock(return_value=httpx.Response(200, json={"nope": True}))
            with pytest.raises(RemoteError):
                await research_backend.status(TaskKind.RESEARCH, "t-1")

    def test_query_mentions_radius_and_location(self):
        query = build_research_query(ResearchRequest(location="Oakland, CA", radius_miles=10))
        assert "within 10 miles of Oakland, CA" in query
        assert "general vehicle damage" in query


class TestVoiceBackend:
    """Quote and booking calls against the voice API."""

    @pytest.mark.asyncio
    async def test_quote_call_payload(self, voice_backend, quote_request):
        with respx.mock(base_url=VOICE_URL) as router:
            route = router.post("/call").mock(
                return_value=httpx.Response(201, json={"id": "call-1", "status": "queued"})
            )
            handle = await voice_backend.create(TaskKind.QUOTE_CALL, quote_request)

        assert handle.task_id == "call-1"
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer voice-key"
        body = json.loads(request.content)
        assert body["phoneNumberId"] == "phone-1"
        assert body["customer"]["number"] == "+14085550001"
        assert body["metadata"]["shopName"] == "Alpha Auto"
        assert "Alpha Auto" in body["assistant"]["firstMessage"]
        schema = body["assistant"]["analysisPlan"]["structuredDataPlan"]["schema"]
        assert "quoted_price" in schema["properties"]

    @pytest.mark.asyncio
    async def test_booking_call_payload(self, voice_backend):
        request = BookingCallRequest(
            phone_number="+14085550002",
            shop_name="Beta Body",
            shop_address="2 Second St",
            damage_description="Scratched door",
            customer_name="Sam Lee",
            customer_phone="+14085559999",
            appointment_date="Tuesday, October 20, 2026",
        )
        with respx.mock(base_url=VOICE_URL) as router:
            route = router.post("/call").mock(return_value=httpx.Response(201, json={"id": "call-2"}))
            await voice_backend.create(TaskKind.BOOKING_CALL, request)

        body = json.loads(route.calls.last.request.content)
        assert body["metadata"]["type"] == "booking"
        assert "Tuesday, October 20, 2026" in body["assistant"]["firstMessage"]
        schema = body["assistant"]["analysisPlan"]["structuredDataPlan"]["schema"]
        assert schema["required"] == ["appointment_booked"]

    @pytest.mark.asyncio
    async def test_ended_quote_call_is_parsed(self, voice_backend):
        record = {
            "id": "call-1",
            "status": "ended",
            "transcript": "AI: Hello...",
            "metadata": {"shopName": "Alpha Auto"},
            "customer": {"number": "+14085550001"},
            "costBreakdown": {"total": 2.5},
            "endedReason": "customer-ended-call",
            "analysis": {
                "summary": "Quoted $650",
                "structuredData": {
                    "quotation_provided": True,
                    "quoted_price": 650,
                    "estimated_days": 4,
                    "additional_notes": "Parts in stock",
                },
            },
        }
        with respx.mock(base_url=VOICE_URL) as router:
            router.get("/call/call-1").mock(return_value=httpx.Response(200, json=record))
            status = await voice_backend.status(TaskKind.QUOTE_CALL, "call-1")

        assert status.status is NormalizedStatus.SUCCEEDED
        result = status.outcome
        assert isinstance(result, CallResult)
        assert result.shop_name == "Alpha Auto"
        assert result.quotation.price == 650
        assert result.quotation.currency == "USD"
        assert result.quotation.notes == "Parts in stock"
        assert result.duration == 150
        assert result.ended_reason == "customer-ended-call"

    @pytest.mark.asyncio
    async def test_in_progress_call_without_quote(self, voice_backend):
        with respx.mock(base_url=VOICE_URL) as router:
            router.get("/call/call-1").mock(
                return_value=httpx.Response(200, json={"id": "call-1", "status": "in-progress"})
            )
            status = await voice_backend.status(TaskKind.QUOTE_CALL, "call-1")

        assert status.status is NormalizedStatus.PENDING
        assert status.outcome.quotation is None
        assert status.outcome.shop_name == "Unknown Shop"

    @pytest.mark.asyncio
    async def test_booking_call_is_parsed(self, voice_backend):
        record = {
            "id": "call-2",
            "status": "ended",
            "analysis": {
                "structuredData": {
                    "appointment_booked": True,
                    "appointment_time": "9:30 AM",
                    "confirmation_number": "A77",
                }
            },
        }
        with respx.mock(base_url=VOICE_URL) as router:
            router.get("/call/call-2").mock(return_value=httpx.Response(200, json=record))
            status = await voice_backend.status(TaskKind.BOOKING_CALL, "call-2")

        assert isinstance(status.outcome, BookingCallResult)
        assert status.outcome.appointment_booked is True
        assert status.outcome.appointment_time == "9:30 AM"

    @pytest.mark.asyncio
    async def test_failed_call_status(self, voice_backend):
        with respx.mock(base_url=VOICE_URL) as router:
            router.get("/call/call-3").mock(
                return_value=httpx.Response(200, json={"id": "call-3", "status": "failed"})
            )
            status = await voice_backend.status(TaskKind.QUOTE_CALL, "call-3")

        assert status.status is NormalizedStatus.FAILED

    @pytest.mark.asyncio
    async def test_creation_without_id_raises(self, voice_backend, quote_request):
        with respx.mock(base_url=VOICE_URL) as router:
            router.post("/call").mock(return_value=httpx.Response(201, json={"status": "queued"}))
            with pytest.raises(RemoteError):
                await voice_backend.create(TaskKind.QUOTE_CALL, quote_request)


class TestExternalTaskClient:
    """Routing by task kind."""

    @pytest.mark.asyncio
    async def test_missing_backend_raises_remote_error(self):
        client = ExternalTaskClient({})
        with pytest.raises(RemoteError):
            await client.get_status(TaskKind.RESEARCH, "t-1")
        assert not client.is_live(TaskKind.RESEARCH)
        assert not client.supports(TaskKind.RESEARCH)

    @pytest.mark.asyncio
    async def test_shared_backend_closed_once(self, scripted_backend):
        client = ExternalTaskClient(
            {TaskKind.QUOTE_CALL: scripted_backend, TaskKind.BOOKING_CALL: scripted_backend}
        )
        await client.aclose()
        assert scripted_backend.closed
        assert client.is_live(TaskKind.QUOTE_CALL)
