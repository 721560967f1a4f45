"""Per-client rate limiting middleware."""

import time
from collections import defaultdict

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

UNLIMITED_PATHS = {"/healthz", "/", "/docs", "/openapi.json", "/api/v1/health"}
CALL_PATHS = ("/api/v1/calls", "/api/v1/bookings")


def _is_call_request(method: str, path: str) -> bool:
    """POSTs that dial real phone numbers."""
    return method == "POST" and path.rstrip("/") in CALL_PATHS


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """Sliding window limits per client IP.

    Requests that place phone calls have their own, lower per-minute limit
    on top of the general one.
    """

    def __init__(
        self,
        app,
        requests_per_minute: int = 60,
        requests_per_hour: int = 1000,
        burst_size: int = 10,
        calls_per_minute: int = 10,
    ):
        """Initialize rate limiter.

        Args:
            app: FastAPI application
            requests_per_minute: Max requests per minute per IP
            requests_per_hour: Max requests per hour per IP
            burst_size: Max requests per IP within 5 seconds
            calls_per_minute: Max call-placing requests per minute per IP
        """
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self.burst_size = burst_size
        self.calls_per_minute = calls_per_minute

        # {ip: [(timestamp, places_call), ...]}
        self.requests: dict[str, list[tuple[float, bool]]] = defaultdict(list)

    def _get_client_ip(self, request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"

    def _check_rate_limit(self, ip: str, places_call: bool, current_time: float) -> bool:
        """Return True if the request is within every limit."""
        cutoff_time = current_time - 3600
        self.requests[ip] = [(ts, call) for ts, call in self.requests[ip] if ts > cutoff_time]
        requests = self.requests[ip]

        if sum(1 for ts, _ in requests if ts > current_time - 5) >= self.burst_size:
            return False

        minute_window = current_time - 60
        if sum(1 for ts, _ in requests if ts > minute_window) >= self.requests_per_minute:
            return False

        if len(requests) >= self.requests_per_hour:
            return False

        if places_call:
            recent_calls = sum(1 for ts, call in requests if call and ts > minute_window)
            if recent_calls >= self.calls_per_minute:
                return False

        return True

    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        client_ip = self._get_client_ip(request)
        places_call = _is_call_request(request.method, request.url.path)
        current_time = time.time()

        if not self._check_rate_limit(client_ip, places_call, current_time):
            minute_requests = [ts for ts, _ in self.requests[client_ip] if ts > current_time - 60]
            if minute_requests:
                retry_after = max(1, int(60 - (current_time - min(minute_requests))))
            else:
                retry_after = 60

            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded", "retry_after": retry_after},
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(self.requests_per_minute),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(current_time + retry_after)),
                },
            )

        self.requests[client_ip].append((current_time, places_call))

        response = await call_next(request)

        minute_requests = sum(1 for ts, _ in self.requests[client_ip] if ts > current_time - 60)
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.requests_per_minute - minute_requests))
        response.headers["X-RateLimit-Reset"] = str(int(current_time + 60))
        return response
