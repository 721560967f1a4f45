"""Runtime configuration loaded from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

YUTORI_BASE_URL = "https://api.yutori.com/v1"
VAPI_BASE_URL = "https://api.vapi.ai"
SEVEN_DAYS_SECONDS = 7 * 24 * 60 * 60


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_list(name: str) -> list[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    """Service settings.

    Missing credentials never fail startup: each capability without its key
    runs in simulation mode instead.
    """

    yutori_api_key: str | None = None
    yutori_base_url: str = YUTORI_BASE_URL
    research_mode: str = Field("research", pattern="^(research|browsing)$")
    research_start_url: str = "https://www.google.com/maps"
    user_timezone: str = "America/Los_Angeles"

    vapi_api_key: str | None = None
    vapi_phone_number_id: str | None = None
    vapi_base_url: str = VAPI_BASE_URL
    demo_phone_numbers: list[str] = Field(default_factory=list)
    max_calls_per_session: int = Field(2, ge=1)

    redis_url: str | None = None
    cache_ttl_seconds: int = SEVEN_DAYS_SECONDS
    redis_timeout_seconds: float = 2.0
    data_dir: Path = Path("cache")

    poll_interval_seconds: float = 5.0
    max_wait_seconds: float = 600.0
    search_timeout_seconds: float = 15.0
    http_timeout_seconds: float = 30.0
    simulated_call_delay_seconds: float = 10.0
    simulated_booking_delay_seconds: float = 8.0

    rate_limit_per_minute: int = 60
    rate_limit_burst: int = 10
    call_rate_limit_per_minute: int = 10
    allowed_hosts: list[str] = Field(default_factory=lambda: ["*"])
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @property
    def research_enabled(self) -> bool:
        return bool(self.yutori_api_key)

    @property
    def voice_enabled(self) -> bool:
        return bool(self.vapi_api_key and self.vapi_phone_number_id)

    @property
    def remote_cache_enabled(self) -> bool:
        return bool(self.redis_url)

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "Settings":
        """Build settings from the process environment.

        Args:
            env_file: Optional dotenv file loaded before reading variables

        Returns:
            Settings instance
        """
        load_dotenv(env_file)
        return cls(
            yutori_api_key=os.getenv("YUTORI_API_KEY") or None,
            yutori_base_url=os.getenv("YUTORI_BASE_URL", YUTORI_BASE_URL),
            research_mode=os.getenv("RESEARCH_MODE", "research"),
            research_start_url=os.getenv("RESEARCH_START_URL", "https://www.google.com/maps"),
            user_timezone=os.getenv("USER_TIMEZONE", "America/Los_Angeles"),
            vapi_api_key=os.getenv("VAPI_API_KEY") or None,
            vapi_phone_number_id=os.getenv("VAPI_PHONE_NUMBER_ID") or None,
            vapi_base_url=os.getenv("VAPI_BASE_URL", VAPI_BASE_URL),
            demo_phone_numbers=_env_list("DEMO_PHONE_NUMBERS"),
            max_calls_per_session=_env_int("MAX_CALLS_PER_SESSION", 2),
            redis_url=os.getenv("REDIS_URL") or None,
            cache_ttl_seconds=_env_int("CACHE_TTL_SECONDS", SEVEN_DAYS_SECONDS),
            redis_timeout_seconds=_env_float("REDIS_TIMEOUT_SECONDS", 2.0),
            data_dir=Path(os.getenv("AUTOQUOTE_DATA_DIR", "cache")),
            poll_interval_seconds=_env_float("POLL_INTERVAL_SECONDS", 5.0),
            max_wait_seconds=_env_float("MAX_WAIT_SECONDS", 600.0),
            search_timeout_seconds=_env_float("SEARCH_TIMEOUT_SECONDS", 15.0),
            http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", 30.0),
            simulated_call_delay_seconds=_env_float("SIMULATED_CALL_DELAY_SECONDS", 10.0),
            simulated_booking_delay_seconds=_env_float("SIMULATED_BOOKING_DELAY_SECONDS", 8.0),
            rate_limit_per_minute=_env_int("RATE_LIMIT_PER_MINUTE", 60),
            rate_limit_burst=_env_int("RATE_LIMIT_BURST", 10),
            call_rate_limit_per_minute=_env_int("CALL_RATE_LIMIT_PER_MINUTE", 10),
            allowed_hosts=_env_list("ALLOWED_HOSTS") or ["*"],
            cors_origins=_env_list("CORS_ORIGINS") or ["*"],
        )
