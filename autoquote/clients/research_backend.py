"""Research/browsing task backend for finding repair shops on the web."""

from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from autoquote.clients.task_client import HttpBackend
from autoquote.errors import RemoteError
from autoquote.models.shops import RepairShop
from autoquote.models.tasks import (
    NormalizedStatus,
    ResearchOutcome,
    ResearchRequest,
    TaskHandle,
    TaskKind,
    TaskStatus,
)

_STATUS_MAP = {
    "succeeded": NormalizedStatus.SUCCEEDED,
    "failed": NormalizedStatus.FAILED,
}

SHOP_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "shop_name": {"type": "string"},
        "address": {"type": "string"},
        "city": {"type": "string"},
        "state": {"type": "string"},
        "zip_code": {"type": "string"},
        "phone_number": {"type": "string"},
        "website": {"type": "string"},
        "rating": {"type": "number"},
        "review_count": {"type": "number"},
        "reviews": {"type": "array", "items": {"type": "string"}},
        "services": {"type": "array", "items": {"type": "string"}},
        "hours_of_operation": {"type": "string"},
        "latitude": {"type": "number"},
        "longitude": {"type": "number"},
        "distance_miles": {"type": "number"},
    },
    "required": ["shop_name", "address", "city", "state", "phone_number"],
}

TASK_SPEC: dict[str, Any] = {
    "output_schema": {
        "type": "json",
        "json_schema": {
            "type": "object",
            "properties": {"shops": {"type": "array", "items": SHOP_ITEM_SCHEMA}},
            "required": ["shops"],
        },
    }
}


def build_research_query(request: ResearchRequest) -> str:
    """Natural language query handed to the research agent."""
    damage = request.damage_description or "general vehicle damage"
    return (
        f"Find all vehicle repair shops, auto body shops, and car service centers "
        f"within {request.radius_miles:g} miles of {request.location}.\n\n"
        f"The customer needs repairs for: {damage}\n\n"
        "For each shop, provide:\n"
        "- Shop name\n"
        "- Full address (street, city, state, zip code)\n"
        "- Phone number\n"
        "- Website (if available)\n"
        "- Rating and number of reviews\n"
        "- Sample customer reviews (2-3 reviews)\n"
        "- Services offered (especially those relevant to the damage described)\n"
        "- Hours of operation\n"
        "- Approximate latitude and longitude coordinates\n"
        f"- Distance from {request.location}\n\n"
        "Focus on highly-rated shops that specialize in the type of repair needed."
    )


def build_browsing_task(request: ResearchRequest) -> str:
    """Instruction handed to the browsing agent."""
    return (
        f'Search for "auto repair shops" or "vehicle repair" near "{request.location}" '
        f"within {request.radius_miles:g} miles.\n"
        "Extract the following information for each shop found:\n"
        "- Shop name\n"
        "- Full address\n"
        "- Phone number\n"
        "- Rating and review count\n"
        "- Sample reviews (2-3)\n"
        "- Services offered\n"
        "- Website link if available\n\n"
        "Find at least 10 repair shops if available. Sort by highest rating."
    )


class _TaskCreated(BaseModel):
    task_id: str
    view_url: str | None = None
    status: str | None = None


class _TaskState(BaseModel):
    task_id: str | None = None
    status: str
    result: str | None = None
    structured_result: dict[str, Any] | None = None


class ResearchBackend(HttpBackend):
    """Backend for the web research API.

    In ``browsing`` mode the same task kind is served by the browsing
    endpoint, which drives a cloud browser from ``start_url`` instead of
    running a wide web search.
    """

    service = "research"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        mode: str = "research",
        start_url: str = "https://www.google.com/maps",
        user_timezone: str = "America/Los_Angeles",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(
            base_url,
            headers={"Content-Type": "application/json", "X-API-Key": api_key},
            timeout=timeout,
            http_client=http_client,
        )
        self.mode = mode
        self.start_url = start_url
        self.user_timezone = user_timezone

    def _body(self, request: ResearchRequest) -> dict[str, Any]:
        if self.mode == "browsing":
            return {
                "task": build_browsing_task(request),
                "start_url": self.start_url,
                "max_steps": 50,
                "task_spec": TASK_SPEC,
            }
        return {
            "query": build_research_query(request),
            "user_location": request.location,
            "user_timezone": self.user_timezone,
            "task_spec": TASK_SPEC,
        }

    async def create(self, kind: TaskKind, request: ResearchRequest) -> TaskHandle:
        data = await self._request("POST", f"/{self.mode}/tasks", json=self._body(request))
        try:
            created = _TaskCreated.model_validate(data)
        except ValidationError as e:
            raise RemoteError(self.service, f"malformed task creation response: {e}") from e
        return TaskHandle(
            kind=kind,
            task_id=created.task_id,
            view_url=created.view_url,
            remote_status=created.status,
        )

    async def status(self, kind: TaskKind, task_id: str) -> TaskStatus:
        data = await self._request("GET", f"/{self.mode}/tasks/{task_id}")
        try:
            state = _TaskState.model_validate(data)
        except ValidationError as e:
            raise RemoteError(self.service, f"malformed task status response: {e}") from e

        normalized = _STATUS_MAP.get(state.status, NormalizedStatus.PENDING)
        outcome = None
        if normalized.is_terminal:
            outcome = ResearchOutcome(
                shops=self._parse_shops(task_id, state.structured_result),
                result=state.result,
            )
        return TaskStatus(
            kind=kind,
            task_id=task_id,
            raw_status=state.status,
            status=normalized,
            outcome=outcome,
        )

    def _parse_shops(self, task_id: str, structured: dict[str, Any] | None) -> list[RepairShop]:
        shops: list[RepairShop] = []
        raw_shops = (structured or {}).get("shops") or []
        if not isinstance(raw_shops, list):
            raise RemoteError(self.service, "structured_result.shops is not a list")
        for raw in raw_shops:
            try:
                shops.append(RepairShop.model_validate(raw))
            except ValidationError as e:
                self.logger.warning(
                    "Dropping malformed shop record",
                    extra={"task_id": task_id, "error": str(e), "operation": "research_parse_shop"},
                )
        return shops
