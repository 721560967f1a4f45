"""Wire task backends according to the configured credentials."""

from autoquote.clients.research_backend import ResearchBackend
from autoquote.clients.simulated_backend import SimulatedCallBackend
from autoquote.clients.task_client import ExternalTaskClient, TaskBackend
from autoquote.clients.voice_backend import VoiceCallBackend
from autoquote.config import Settings
from autoquote.models.tasks import TaskKind
from autoquote.telemetry.logger import get_logger

logger = get_logger("autoquote.clients")


def build_task_client(settings: Settings) -> ExternalTaskClient:
    """Build the task client.

    Research has no simulated backend: without a key the shop search serves
    its fallback dataset and never creates a task. Calls without voice
    credentials go to the in-memory simulator.
    """
    backends: dict[TaskKind, TaskBackend] = {}

    if settings.research_enabled:
        backends[TaskKind.RESEARCH] = ResearchBackend(
            api_key=settings.yutori_api_key,
            base_url=settings.yutori_base_url,
            mode=settings.research_mode,
            start_url=settings.research_start_url,
            user_timezone=settings.user_timezone,
            timeout=settings.http_timeout_seconds,
        )

    if settings.voice_enabled:
        voice: TaskBackend = VoiceCallBackend(
            api_key=settings.vapi_api_key,
            phone_number_id=settings.vapi_phone_number_id,
            base_url=settings.vapi_base_url,
            timeout=settings.http_timeout_seconds,
        )
    else:
        voice = SimulatedCallBackend(
            quote_delay=settings.simulated_call_delay_seconds,
            booking_delay=settings.simulated_booking_delay_seconds,
        )
    backends[TaskKind.QUOTE_CALL] = voice
    backends[TaskKind.BOOKING_CALL] = voice

    logger.info(
        "Task client configured",
        extra={
            "research": "live" if settings.research_enabled else "fallback",
            "research_mode": settings.research_mode,
            "voice": "live" if settings.voice_enabled else "simulated",
            "operation": "task_client_init",
        },
    )
    return ExternalTaskClient(backends)
