"""MCP server exposing shop search, quote calls and bookings as FastMCP tools."""

import time
import uuid
from typing import Any

from fastmcp import FastMCP

from autoquote.config import Settings
from autoquote.models.shops import RepairShop
from autoquote.security.input_security import sanitize_input, sanitize_name, validate_phone
from autoquote.services.container import ServiceContainer, build_services
from autoquote.telemetry.logger import get_logger

# Initialize FastMCP server
mcp = FastMCP("AutoQuote Repair Orchestrator")
logger = get_logger("autoquote.mcp")

_services: ServiceContainer | None = None


async def get_services() -> ServiceContainer:
    """Get or create the service container.

    Sessions left in flight by an earlier process are reconciled on first use.
    """
    global _services
    if _services is None:
        _services = build_services(Settings.from_env())
        _services.start()
    return _services


def set_services(services: ServiceContainer | None) -> None:
    global _services
    _services = services


def _log_tool(tool_name: str, correlation_id: str, start_time: float, **fields: Any) -> None:
    logger.info(
        f"MCP tool {tool_name} completed",
        extra={
            "correlation_id": correlation_id,
            "tool_name": tool_name,
            "duration_seconds": time.time() - start_time,
            "operation": "mcp_tool_success",
            **fields,
        },
    )


@mcp.tool()
async def search_repair_shops(
    location: str,
    damage_description: str | None = None,
    radius_miles: float = 5,
    latitude: float | None = None,
    longitude: float | None = None,
) -> dict[str, Any]:
    """
    Search vehicle repair shops near a location.

    Returns within the search timeout; results may come from the cache or a
    sample dataset, flagged by the ``cached`` field.

    Args:
        location: City, address or zip code
        damage_description: Damage the customer needs repaired
        radius_miles: Search radius in miles (default: 5)
        latitude: Optional center latitude
        longitude: Optional center longitude

    Returns:
        Shop search result
    """
    correlation_id = str(uuid.uuid4())
    start_time = time.time()

    location = sanitize_name(location)
    if not location:
        raise ValueError("Location is required")
    if radius_miles <= 0:
        raise ValueError(f"Invalid radius: {radius_miles}")

    services = await get_services()
    result = await services.shop_search.resolve_shops(
        location=location,
        damage_description=sanitize_input(damage_description) or None,
        radius_miles=radius_miles,
        latitude=latitude,
        longitude=longitude,
    )
    _log_tool("search_repair_shops", correlation_id, start_time, total_found=result.total_found)
    return result.model_dump(mode="json")


@mcp.tool()
async def start_quote_calls(
    shops: list[dict[str, Any]], damage_description: str, limit: int | None = None
) -> dict[str, Any]:
    """
    Call repair shops concurrently to collect repair quotes.

    Args:
        shops: Shops as returned by search_repair_shops
        damage_description: Damage to describe to the shops
        limit: Number of shops to call (capped by configuration)

    Returns:
        Session id, status and the shops being called
    """
    correlation_id = str(uuid.uuid4())
    start_time = time.time()

    if not shops:
        raise ValueError("At least one shop is required")
    damage_description = sanitize_input(damage_description)
    if not damage_description:
        raise ValueError("Damage description is required")

    services = await get_services()
    session = await services.quote_calls.start_quote_calls(
        [RepairShop.model_validate(shop) for shop in shops], damage_description, limit
    )
    _log_tool("start_quote_calls", correlation_id, start_time, session_id=session.session_id)
    return {
        "sessionId": session.session_id,
        "status": session.status.value,
        "shopsBeingCalled": [shop.name for shop in session.shops],
        "callIds": session.call_ids,
        "error": session.error,
    }


@mcp.tool()
async def get_call_session(session_id: str) -> dict[str, Any]:
    """
    Get the status, call results and ranked quotes of a call session.

    Args:
        session_id: Session id returned by start_quote_calls

    Returns:
        Session record including elapsed seconds
    """
    services = await get_services()
    session = services.quote_calls.get_session(session_id)
    if session is None:
        raise ValueError(f"Session not found: {session_id}")
    return {**session.to_json_dict(), "elapsedSeconds": session.elapsed_seconds()}


@mcp.tool()
async def book_appointment(
    shop: dict[str, Any],
    customer_name: str,
    customer_phone: str,
    damage_description: str | None = None,
    vehicle_info: str | None = None,
    preferred_time: str | None = None,
) -> dict[str, Any]:
    """
    Call a repair shop to book an appointment for tomorrow.

    Args:
        shop: Shop as returned by search_repair_shops
        customer_name: Name to book under
        customer_phone: Customer callback number
        damage_description: Repair needed
        vehicle_info: Vehicle make, model and year
        preferred_time: Preferred time of day

    Returns:
        Booking id, status, shop name and requested date
    """
    correlation_id = str(uuid.uuid4())
    start_time = time.time()

    customer_name = sanitize_name(customer_name)
    if not customer_name:
        raise ValueError("Customer name is required")

    services = await get_services()
    booking = await services.bookings.book_appointment(
        shop=RepairShop.model_validate(shop),
        customer_name=customer_name,
        customer_phone=validate_phone(customer_phone),
        damage_description=sanitize_input(damage_description) or None,
        vehicle_info=sanitize_name(vehicle_info) or None,
        preferred_time=sanitize_name(preferred_time) or None,
    )
    _log_tool("book_appointment", correlation_id, start_time, booking_id=booking.booking_id)
    return {
        "bookingId": booking.booking_id,
        "status": booking.status.value,
        "shopName": booking.shop_name,
        "requestedDate": booking.requested_date,
        "error": booking.error,
    }


@mcp.tool()
async def get_booking(booking_id: str) -> dict[str, Any]:
    """
    Get the status and outcome of a booking call.

    Args:
        booking_id: Booking id returned by book_appointment

    Returns:
        Booking record including elapsed seconds
    """
    services = await get_services()
    booking = services.bookings.get_booking(booking_id)
    if booking is None:
        raise ValueError(f"Booking not found: {booking_id}")
    return {**booking.to_json_dict(), "elapsedSeconds": booking.elapsed_seconds()}


def create_mcp_server(services: ServiceContainer | None = None) -> FastMCP:
    """Create and configure the MCP server with the repair tools."""
    if services is not None:
        set_services(services)
    return mcp
