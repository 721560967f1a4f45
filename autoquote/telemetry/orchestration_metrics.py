"""Telemetry and metrics for searches and call sessions."""

import json
from datetime import datetime
from typing import Any

from autoquote.telemetry.logger import get_logger

SEARCH_SOURCES = ("fresh", "cache", "fallback", "simulated")
SESSION_KINDS = ("quote", "booking")


class OrchestrationMetrics:
    """In-process counters for the orchestration layer."""

    def __init__(self):
        """Initialize metrics collector."""
        self.logger = get_logger("autoquote.metrics")
        self.metrics: dict[str, Any] = {
            "search_requests": 0,
            "search_responses": {source: 0 for source in SEARCH_SOURCES},
            "search_errors": 0,
            "cache_hits": 0,
            "cache_misses": 0,
            "background_fetches": {"completed": 0, "failed": 0},
            "sessions": {
                kind: {"started": 0, "completed": 0, "failed": 0} for kind in SESSION_KINDS
            },
            "search_times": [],
        }

    def _emit(self, level: str, message: str, log_data: dict[str, Any]) -> None:
        log_data["timestamp"] = datetime.now().isoformat()
        getattr(self.logger, level)(
            message, extra={"json_fields": json.dumps(log_data, ensure_ascii=True)}
        )

    def log_search(self, location: str, source: str, duration: float, error: str | None = None):
        """Log a finished shop search.

        Args:
            location: Search location
            source: Where the shops came from (fresh, cache, fallback, simulated)
            duration: Time taken in seconds
            error: Error carried by the response, if any
        """
        self.metrics["search_requests"] += 1
        self.metrics["search_responses"][source] = self.metrics["search_responses"].get(source, 0) + 1
        if error:
            self.metrics["search_errors"] += 1
        self.metrics["search_times"].append(duration)
        if len(self.metrics["search_times"]) > 1000:
            self.metrics["search_times"] = self.metrics["search_times"][-1000:]

        self._emit(
            "info",
            f"Shop search served from {source} in {duration:.2f}s",
            {"event": "shop_search", "location": location, "source": source, "duration": duration, "error": error},
        )

    def log_cache_lookup(self, location: str, hit: bool):
        if hit:
            self.metrics["cache_hits"] += 1
        else:
            self.metrics["cache_misses"] += 1
        self._emit(
            "debug",
            "Cache hit" if hit else "Cache miss",
            {"event": "cache_hit" if hit else "cache_miss", "location": location},
        )

    def log_background_fetch(self, location: str, success: bool, error: str | None = None):
        """Log the outcome of a fetch that outlived its request."""
        key = "completed" if success else "failed"
        self.metrics["background_fetches"][key] += 1
        self._emit(
            "info" if success else "warning",
            f"Background fetch {key}",
            {"event": "background_fetch", "location": location, "outcome": key, "error": error},
        )

    def log_session(self, kind: str, session_id: str, outcome: str, duration: float | None = None):
        """Log a session transition.

        Args:
            kind: quote or booking
            session_id: Session or booking id
            outcome: started, completed or failed
            duration: Seconds since the session started
        """
        self.metrics["sessions"][kind][outcome] += 1
        self._emit(
            "warning" if outcome == "failed" else "info",
            f"{kind.capitalize()} session {session_id} {outcome}",
            {"event": f"{kind}_session_{outcome}", "session_id": session_id, "duration": duration},
        )

    def get_metrics_summary(self) -> dict[str, Any]:
        """Get current metrics summary.

        Returns:
            Dictionary of metrics
        """
        times = self.metrics["search_times"]
        lookups = self.metrics["cache_hits"] + self.metrics["cache_misses"]
        return {
            "search_requests": self.metrics["search_requests"],
            "search_responses": dict(self.metrics["search_responses"]),
            "search_errors": self.metrics["search_errors"],
            "avg_search_time": sum(times) / len(times) if times else 0,
            "cache_hit_rate": self.metrics["cache_hits"] / lookups if lookups else 0,
            "background_fetches": dict(self.metrics["background_fetches"]),
            "sessions": {kind: dict(counts) for kind, counts in self.metrics["sessions"].items()},
        }
