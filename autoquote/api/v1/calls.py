"""API endpoints for quote call sessions."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field, field_validator

from autoquote.api.dependencies import get_services
from autoquote.errors import RemoteError
from autoquote.models.base import CamelModel
from autoquote.models.calls import CallResult, QuoteAnalysis
from autoquote.models.sessions import SessionStatus
from autoquote.models.shops import RepairShop
from autoquote.security.input_security import sanitize_input
from autoquote.services.container import ServiceContainer
from autoquote.telemetry.logger import get_logger

router = APIRouter(prefix="/api/v1/calls", tags=["calls"])
logger = get_logger("autoquote.api.calls")


class StartCallsRequest(CamelModel):
    """Request model for starting a quote call session."""

    shops: list[RepairShop] = Field(..., min_length=1, description="Shops to call, in order")
    damage_description: str = Field(..., min_length=1)
    limit: int | None = Field(None, ge=1, description="Number of shops to call")

    @field_validator("damage_description")
    @classmethod
    def _clean_damage(cls, value: str) -> str:
        value = sanitize_input(value)
        if not value:
            raise ValueError("Damage description is required")
        return value


class StartCallsResponse(CamelModel):
    session_id: str
    status: SessionStatus
    message: str
    shops_being_called: list[str]
    call_ids: list[str]
    error: str | None = None


class CallSessionResponse(CamelModel):
    session_id: str
    status: SessionStatus
    shops_being_called: list[str]
    elapsed_seconds: int
    results: list[CallResult] | None = None
    analysis: QuoteAnalysis | None = None
    error: str | None = None


class CallSessionSummary(CamelModel):
    session_id: str
    status: SessionStatus
    start_time: datetime
    shops_count: int
    has_results: bool


class CallSessionList(CamelModel):
    sessions: list[CallSessionSummary]


@router.post("", response_model=StartCallsResponse)
async def start_quote_calls(
    request: StartCallsRequest, services: ServiceContainer = Depends(get_services)
) -> StartCallsResponse:
    """Call shops concurrently to collect repair quotes."""
    session = await services.quote_calls.start_quote_calls(
        request.shops, request.damage_description, request.limit
    )
    failed = session.status is SessionStatus.FAILED
    return StartCallsResponse(
        session_id=session.session_id,
        status=session.status,
        message="Could not reach any repair shop." if failed else "AI agent is calling repair shops...",
        shops_being_called=[shop.name for shop in session.shops],
        call_ids=session.call_ids,
        error=session.error,
    )


@router.get("", response_model=CallSessionList)
async def list_call_sessions(services: ServiceContainer = Depends(get_services)) -> CallSessionList:
    """List stored call sessions, newest first."""
    return CallSessionList(
        sessions=[
            CallSessionSummary(
                session_id=session.session_id,
                status=session.status,
                start_time=session.start_time,
                shops_count=len(session.shops),
                has_results=session.results is not None,
            )
            for session in services.quote_calls.list_sessions()
        ]
    )


@router.get("/details/{call_id}", response_model=CallResult)
async def get_call_details(
    call_id: str, services: ServiceContainer = Depends(get_services)
) -> CallResult:
    """Current state of a single call, transcript and quotation included."""
    try:
        return await services.quote_calls.get_call_details(call_id)
    except RemoteError as e:
        logger.error(
            "Failed to get call details",
            extra={"call_id": call_id, "error": str(e), "operation": "call_details"},
        )
        raise HTTPException(status_code=502, detail=f"Failed to get call details: {e}") from e


@router.get("/{session_id}", response_model=CallSessionResponse)
async def get_call_session(
    session_id: str, services: ServiceContainer = Depends(get_services)
) -> CallSessionResponse:
    """Poll a call session."""
    session = services.quote_calls.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    return CallSessionResponse(
        session_id=session.session_id,
        status=session.status,
        shops_being_called=[shop.name for shop in session.shops],
        elapsed_seconds=session.elapsed_seconds(),
        results=session.results,
        analysis=session.analysis,
        error=session.error,
    )
