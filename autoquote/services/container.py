"""Process-wide service graph built from settings."""

from dataclasses import dataclass

import redis.asyncio as redis

from autoquote.cache.shop_cache import LocalShopCache, RemoteShopCache, TwoTierShopCache
from autoquote.clients.factory import build_task_client
from autoquote.clients.task_client import ExternalTaskClient
from autoquote.config import Settings
from autoquote.models.sessions import BookingSession, CallSession
from autoquote.services.bookings import BookingService
from autoquote.services.call_sessions import QuoteCallService
from autoquote.services.session_store import JsonSessionStore
from autoquote.services.shop_search import ShopSearchOrchestrator
from autoquote.telemetry.logger import get_logger
from autoquote.telemetry.orchestration_metrics import OrchestrationMetrics

logger = get_logger("autoquote.services")

CALL_SESSIONS_FILE = "call_sessions.json"
BOOKING_SESSIONS_FILE = "booking_sessions.json"
SHOP_CACHE_FILE = "repair_shops_cache.json"


@dataclass
class ServiceContainer:
    settings: Settings
    task_client: ExternalTaskClient
    cache: TwoTierShopCache
    metrics: OrchestrationMetrics
    shop_search: ShopSearchOrchestrator
    quote_calls: QuoteCallService
    bookings: BookingService

    def start(self) -> dict[str, dict[str, int]]:
        """Pick up sessions a previous process left in flight.

        Must run inside the event loop since resumed sessions spawn tasks.
        """
        return {
            "quote_sessions": self.quote_calls.reconcile(),
            "bookings": self.bookings.reconcile(),
        }

    def capabilities(self) -> dict[str, str]:
        return {
            "research": "live" if self.settings.research_enabled else "fallback",
            "voice": "live" if self.settings.voice_enabled else "simulated",
            "remote_cache": "enabled" if self.cache.remote is not None else "disabled",
        }

    async def aclose(self) -> None:
        await self.quote_calls.aclose()
        await self.bookings.aclose()
        await self.shop_search.aclose()
        await self.cache.aclose()
        await self.task_client.aclose()


def build_services(
    settings: Settings,
    redis_client: redis.Redis | None = None,
    task_client: ExternalTaskClient | None = None,
) -> ServiceContainer:
    """Wire every service from settings.

    Args:
        settings: Runtime settings
        redis_client: Pre-built Redis client, overrides ``settings.redis_url``
        task_client: Pre-built task client, overrides credential based wiring

    Returns:
        ServiceContainer
    """
    data_dir = settings.data_dir
    metrics = OrchestrationMetrics()

    if redis_client is None and settings.remote_cache_enabled:
        redis_client = redis.from_url(
            settings.redis_url,
            socket_timeout=settings.redis_timeout_seconds,
            socket_connect_timeout=settings.redis_timeout_seconds,
        )
    remote = RemoteShopCache(redis_client, settings.cache_ttl_seconds) if redis_client else None
    cache = TwoTierShopCache(LocalShopCache(data_dir / SHOP_CACHE_FILE), remote)

    task_client = task_client or build_task_client(settings)

    container = ServiceContainer(
        settings=settings,
        task_client=task_client,
        cache=cache,
        metrics=metrics,
        shop_search=ShopSearchOrchestrator(
            task_client,
            cache,
            metrics,
            search_timeout=settings.search_timeout_seconds,
            poll_interval=settings.poll_interval_seconds,
            max_wait=settings.max_wait_seconds,
        ),
        quote_calls=QuoteCallService(
            task_client,
            JsonSessionStore(data_dir / CALL_SESSIONS_FILE, CallSession, name="call_sessions"),
            metrics,
            demo_phone_numbers=settings.demo_phone_numbers,
            max_calls=settings.max_calls_per_session,
            poll_interval=settings.poll_interval_seconds,
            max_wait=settings.max_wait_seconds,
        ),
        bookings=BookingService(
            task_client,
            JsonSessionStore(data_dir / BOOKING_SESSIONS_FILE, BookingSession, name="booking_sessions"),
            metrics,
            demo_phone_numbers=settings.demo_phone_numbers,
            timezone=settings.user_timezone,
            poll_interval=settings.poll_interval_seconds,
            max_wait=settings.max_wait_seconds,
        ),
    )
    logger.info(
        "Services built",
        extra={"data_dir": str(data_dir), **container.capabilities(), "operation": "services_init"},
    )
    return container
