"""Shop search racing a live research task against the cache."""

import asyncio
import time
import uuid

from autoquote.cache.shop_cache import TwoTierShopCache
from autoquote.clients.task_client import ExternalTaskClient
from autoquote.errors import RemoteError
from autoquote.models.shops import CacheEntry, RepairShop, ShopSearchResult
from autoquote.models.tasks import NormalizedStatus, ResearchOutcome, ResearchRequest, TaskKind
from autoquote.services.fallback_shops import fallback_shops
from autoquote.services.poller import poll_until_terminal
from autoquote.telemetry.logger import get_logger
from autoquote.telemetry.orchestration_metrics import OrchestrationMetrics

CACHED_MESSAGE = "Showing cached results. Fresh data is being fetched in the background."
SAMPLE_MESSAGE = "Showing sample results. Fresh data is being fetched in the background."
SIMULATED_MESSAGE = "Showing sample results. Live shop search is not configured."
DEGRADED_ERROR = "Live shop search failed, showing {source} results instead: {error}"


class ShopSearchOrchestrator:
    """Serve shop searches within a fixed latency budget.

    A research task is started for every search. If it finishes within
    ``search_timeout`` its shops are returned; otherwise the caller gets the
    cached entry for the location (or the sample dataset) while the task
    keeps running detached and refreshes the cache when it lands.
    """

    def __init__(
        self,
        task_client: ExternalTaskClient,
        cache: TwoTierShopCache,
        metrics: OrchestrationMetrics | None = None,
        search_timeout: float = 15.0,
        poll_interval: float = 5.0,
        max_wait: float = 600.0,
    ):
        self.task_client = task_client
        self.cache = cache
        self.metrics = metrics or OrchestrationMetrics()
        self.search_timeout = search_timeout
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.logger = get_logger("autoquote.shop_search")
        self._background: set[asyncio.Task] = set()
        self._detached: set[asyncio.Task] = set()

    async def resolve_shops(
        self,
        location: str,
        damage_description: str | None = None,
        radius_miles: float = 5,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> ShopSearchResult:
        """Find repair shops near a location.

        Args:
            location: Free-text location
            damage_description: Damage the customer needs repaired
            radius_miles: Search radius
            latitude: Optional center used to place the sample dataset
            longitude: Optional center used to place the sample dataset

        Returns:
            ShopSearchResult; never raises
        """
        correlation_id = str(uuid.uuid4())
        start_time = time.time()
        self.logger.info(
            "Shop search started",
            extra={
                "correlation_id": correlation_id,
                "location": location,
                "radius_miles": radius_miles,
                "operation": "shop_search_start",
            },
        )

        base = {
            "search_location": location,
            "search_radius_miles": radius_miles,
            "damage_description": damage_description,
        }
        try:
            result, source = await self._resolve(
                location, damage_description, radius_miles, latitude, longitude, base
            )
        except Exception as e:
            self.logger.error(
                "Shop search failed unexpectedly, serving sample results",
                extra={"correlation_id": correlation_id, "error": str(e), "operation": "shop_search_error"},
                exc_info=True,
            )
            shops = fallback_shops(latitude, longitude)
            result = ShopSearchResult(
                shops=shops,
                total_found=len(shops),
                error=DEGRADED_ERROR.format(source="sample", error=e),
                **base,
            )
            source = "fallback"

        duration = time.time() - start_time
        self.metrics.log_search(location, source, duration, error=result.error)
        self.logger.info(
            "Shop search completed",
            extra={
                "correlation_id": correlation_id,
                "location": location,
                "source": source,
                "cached": result.cached,
                "total_found": result.total_found,
                "duration_seconds": duration,
                "operation": "shop_search_complete",
            },
        )
        return result

    async def _resolve(
        self,
        location: str,
        damage_description: str | None,
        radius_miles: float,
        latitude: float | None,
        longitude: float | None,
        base: dict,
    ) -> tuple[ShopSearchResult, str]:
        if not self.task_client.is_live(TaskKind.RESEARCH):
            shops = fallback_shops(latitude, longitude)
            return (
                ShopSearchResult(shops=shops, total_found=len(shops), message=SIMULATED_MESSAGE, **base),
                "simulated",
            )

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.search_timeout
        fetch = asyncio.create_task(self._fetch(location, damage_description, radius_miles))
        self._background.add(fetch)
        fetch.add_done_callback(lambda task: self._on_fetch_done(task, location))

        # a slow cache tier must not eat into the research budget
        lookup = asyncio.create_task(self.cache.get(location))
        try:
            done, _ = await asyncio.wait({fetch}, timeout=self.search_timeout)

            if fetch in done and fetch.exception() is None:
                if lookup.done():
                    self._cache_entry(lookup, location)
                shops = fetch.result()
                return ShopSearchResult(shops=shops, total_found=len(shops), **base), "fresh"

            if not lookup.done():
                await asyncio.wait({lookup}, timeout=max(deadline - loop.time(), 0))
            entry = self._cache_entry(lookup, location)
        finally:
            if not lookup.done():
                lookup.cancel()

        if fetch in done:
            error = fetch.exception()
            self.logger.warning(
                "Live shop search failed before timeout",
                extra={"location": location, "error": str(error), "operation": "shop_search_fetch_failed"},
            )
            if entry is not None and entry.shops:
                return self._from_cache(entry, base, error=DEGRADED_ERROR.format(source="cached", error=error)), "cache"
            shops = fallback_shops(latitude, longitude)
            return (
                ShopSearchResult(
                    shops=shops,
                    total_found=len(shops),
                    error=DEGRADED_ERROR.format(source="sample", error=error),
                    **base,
                ),
                "fallback",
            )

        self._detached.add(fetch)
        self.logger.info(
            "Live shop search exceeded timeout, continuing in background",
            extra={"location": location, "timeout_seconds": self.search_timeout, "operation": "shop_search_timeout"},
        )
        if entry is not None and entry.shops:
            return self._from_cache(entry, base, message=CACHED_MESSAGE), "cache"
        shops = fallback_shops(latitude, longitude)
        return (
            ShopSearchResult(shops=shops, total_found=len(shops), cached=True, message=SAMPLE_MESSAGE, **base),
            "fallback",
        )

    def _cache_entry(self, lookup: asyncio.Task, location: str) -> CacheEntry | None:
        """Result of a cache lookup task; unfinished or failed lookups count as misses."""
        entry = None
        if not lookup.done():
            self.logger.warning(
                "Cache lookup exceeded search timeout",
                extra={
                    "location": location,
                    "timeout_seconds": self.search_timeout,
                    "operation": "cache_lookup_timeout",
                },
            )
        elif lookup.exception() is not None:
            self.logger.warning(
                "Cache lookup failed",
                extra={"location": location, "error": str(lookup.exception()), "operation": "cache_lookup_error"},
            )
        else:
            entry = lookup.result()
        self.metrics.log_cache_lookup(location, entry is not None)
        return entry

    @staticmethod
    def _from_cache(
        entry: CacheEntry, base: dict, message: str | None = None, error: str | None = None
    ) -> ShopSearchResult:
        return ShopSearchResult(
            shops=entry.shops,
            total_found=len(entry.shops),
            cached=True,
            cache_timestamp=entry.timestamp,
            message=message,
            error=error,
            **base,
        )

    async def _fetch(
        self, location: str, damage_description: str | None, radius_miles: float
    ) -> list[RepairShop]:
        request = ResearchRequest(
            location=location, damage_description=damage_description, radius_miles=radius_miles
        )
        handle = await self.task_client.create_task(TaskKind.RESEARCH, request)
        status = await poll_until_terminal(
            lambda: self.task_client.get_status(TaskKind.RESEARCH, handle.task_id),
            poll_interval=self.poll_interval,
            max_wait=self.max_wait,
            label=f"research task {handle.task_id}",
        )
        if status.status is NormalizedStatus.FAILED:
            raise RemoteError("research", f"task {handle.task_id} ended with status {status.raw_status}")

        shops = status.outcome.shops if isinstance(status.outcome, ResearchOutcome) else []
        await self.cache.put(location, shops, damage_description)
        return shops

    def _on_fetch_done(self, task: asyncio.Task, location: str) -> None:
        self._background.discard(task)
        detached = task in self._detached
        self._detached.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if not detached:
            return
        if error is None:
            self.metrics.log_background_fetch(location, success=True)
            self.logger.info(
                "Background shop fetch completed",
                extra={"location": location, "shop_count": len(task.result()), "operation": "background_fetch"},
            )
        else:
            self.metrics.log_background_fetch(location, success=False, error=str(error))
            self.logger.error(
                "Background shop fetch failed",
                extra={"location": location, "error": str(error), "operation": "background_fetch"},
            )

    async def aclose(self) -> None:
        """Cancel fetches still running in the background."""
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
