from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from autoquote.api.v1.bookings import router as bookings_router
from autoquote.api.v1.calls import router as calls_router
from autoquote.api.v1.shops import router as shops_router
from autoquote.config import Settings
from autoquote.middleware.rate_limiter import RateLimiterMiddleware
from autoquote.services.container import ServiceContainer, build_services
from autoquote.telemetry.logger import get_logger

logger = get_logger("autoquote.app")


def create_app(settings: Settings | None = None, services: ServiceContainer | None = None) -> FastAPI:
    """Build the API application.

    Args:
        settings: Runtime settings, read from the environment when omitted
        services: Pre-built service container, built from settings when omitted
    """
    settings = settings or (services.settings if services else Settings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container = services or build_services(settings)
        reconciled = container.start()
        logger.info(
            "AutoQuote API started",
            extra={**container.capabilities(), **reconciled, "operation": "app_startup"},
        )
        app.state.services = container
        try:
            yield
        finally:
            await container.aclose()
            logger.info("AutoQuote API stopped", extra={"operation": "app_shutdown"})

    app = FastAPI(
        title="AutoQuote Repair Orchestrator API",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Security middleware
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Rate limiting
    app.add_middleware(
        RateLimiterMiddleware,
        requests_per_minute=settings.rate_limit_per_minute,
        requests_per_hour=settings.rate_limit_per_minute * 60,
        burst_size=settings.rate_limit_burst,
        calls_per_minute=settings.call_rate_limit_per_minute,
    )

    app.include_router(shops_router)
    app.include_router(calls_router)
    app.include_router(bookings_router)

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/v1/health")
    def health(request: Request) -> dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "capabilities": request.app.state.services.capabilities(),
        }

    @app.get("/api/v1/metrics")
    def metrics(request: Request) -> dict[str, Any]:
        return request.app.state.services.metrics.get_metrics_summary()

    return app


app = create_app()
