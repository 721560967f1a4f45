"""Two-tier cache of repair shops keyed by search location.

Tier 1 is a local JSON file (no expiry, checked first). Tier 2 is Redis with
a seven day TTL, consulted on a local miss. Writes overwrite both tiers; the
Redis write does not block the caller.
"""

import asyncio
import json
import os
import re
import tempfile
import time
import uuid
from pathlib import Path

import redis.asyncio as redis

from autoquote.models.shops import CacheEntry, RepairShop
from autoquote.telemetry.logger import get_logger

SEVEN_DAYS_SECONDS = 7 * 24 * 60 * 60


def cache_key(location: str) -> str:
    """Normalize a location into a cache key.

    Lossy on purpose: "San Jose, CA" and "san jose ca" share a key.
    """
    return re.sub(r"[^a-z0-9]", "_", location.lower())


def now_ms() -> int:
    return int(time.time() * 1000)


class LocalShopCache:
    """JSON file cache, read on every lookup and rewritten on every store."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.logger = get_logger("autoquote.cache.local")

    def _read(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.logger.error(
                "Failed to read local cache file",
                extra={"path": str(self.path), "error": str(e), "operation": "local_cache_read"},
            )
            return {}
        entries = data.get("entries") if isinstance(data, dict) else None
        return entries if isinstance(entries, dict) else {}

    def get(self, key: str) -> CacheEntry | None:
        raw = self._read().get(key)
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate(raw)
        except ValueError as e:
            self.logger.warning(
                "Discarding unreadable local cache entry",
                extra={"cache_key": key, "error": str(e), "operation": "local_cache_read"},
            )
            return None

    def put(self, key: str, entry: CacheEntry) -> None:
        entries = self._read()
        entries[key] = entry.model_dump(mode="json")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump({"entries": entries}, fh, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            self.logger.error(
                "Failed to write local cache file",
                extra={"path": str(self.path), "cache_key": key, "error": str(e), "operation": "local_cache_write"},
            )


class RemoteShopCache:
    """Redis tier. Every failure is logged and reported as a miss."""

    def __init__(self, client: redis.Redis, ttl_seconds: int = SEVEN_DAYS_SECONDS, prefix: str = "shops:"):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        self.logger = get_logger("autoquote.cache.remote")

    async def get(self, key: str) -> CacheEntry | None:
        try:
            raw = await self.client.get(f"{self.prefix}{key}")
            if not raw:
                return None
            if isinstance(raw, bytes):
                raw = raw.decode()
            return CacheEntry.model_validate_json(raw)
        except (redis.RedisError, ValueError) as e:
            self.logger.error(
                "Error reading shops from Redis",
                extra={"cache_key": key, "error": str(e), "operation": "remote_cache_read"},
            )
            return None

    async def put(self, key: str, entry: CacheEntry) -> None:
        try:
            await self.client.set(f"{self.prefix}{key}", entry.model_dump_json(), ex=self.ttl_seconds)
        except redis.RedisError as e:
            self.logger.error(
                "Error storing shops in Redis",
                extra={"cache_key": key, "error": str(e), "operation": "remote_cache_write"},
            )
            return
        self.logger.info(
            "Shops stored in Redis",
            extra={"cache_key": key, "ttl_seconds": self.ttl_seconds, "operation": "remote_cache_write"},
        )

    async def aclose(self) -> None:
        await self.client.aclose()


class TwoTierShopCache:
    """Local-first cache with Redis fallback and backfill."""

    def __init__(self, local: LocalShopCache, remote: RemoteShopCache | None = None):
        self.local = local
        self.remote = remote
        self.logger = get_logger("autoquote.cache")
        self._pending: set[asyncio.Task] = set()

    async def get(self, location: str) -> CacheEntry | None:
        """Look up shops for a location.

        Args:
            location: Search location as typed by the user

        Returns:
            Cached entry or None on a miss in both tiers
        """
        correlation_id = str(uuid.uuid4())
        key = cache_key(location)
        start_time = time.time()

        entry = self.local.get(key)
        if entry is not None:
            self.logger.info(
                "Cache hit - local tier",
                extra={
                    "correlation_id": correlation_id,
                    "cache_key": key,
                    "shop_count": len(entry.shops),
                    "duration_seconds": time.time() - start_time,
                    "operation": "cache_hit_local",
                },
            )
            return entry

        if self.remote is not None:
            entry = await self.remote.get(key)
            if entry is not None:
                self.local.put(key, entry)
                self.logger.info(
                    "Cache hit - remote tier, backfilled local",
                    extra={
                        "correlation_id": correlation_id,
                        "cache_key": key,
                        "shop_count": len(entry.shops),
                        "duration_seconds": time.time() - start_time,
                        "operation": "cache_hit_remote",
                    },
                )
                return entry

        self.logger.info(
            "Cache miss",
            extra={
                "correlation_id": correlation_id,
                "cache_key": key,
                "duration_seconds": time.time() - start_time,
                "operation": "cache_miss",
            },
        )
        return None

    async def put(
        self, location: str, shops: list[RepairShop], damage_description: str | None = None
    ) -> CacheEntry:
        """Overwrite the entry for a location in both tiers."""
        key = cache_key(location)
        entry = CacheEntry(
            location=location,
            shops=shops,
            timestamp=now_ms(),
            damage_description=damage_description,
        )
        self.local.put(key, entry)
        self.logger.info(
            "Shops cached",
            extra={"cache_key": key, "shop_count": len(shops), "operation": "cache_put"},
        )

        if self.remote is not None:
            task = asyncio.create_task(self.remote.put(key, entry))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return entry

    async def drain(self) -> None:
        """Wait for outstanding remote writes."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self.remote is not None:
            await self.remote.aclose()
