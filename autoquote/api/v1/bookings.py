"""API endpoints for appointment bookings."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field, field_validator

from autoquote.api.dependencies import get_services
from autoquote.models.base import CamelModel
from autoquote.models.calls import BookingCallResult
from autoquote.models.sessions import SessionStatus
from autoquote.models.shops import RepairShop
from autoquote.security.input_security import sanitize_input, sanitize_name, validate_phone
from autoquote.services.container import ServiceContainer

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


class BookingRequest(CamelModel):
    """Request model for booking an appointment."""

    shop: RepairShop
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    damage_description: str | None = None
    vehicle_info: str | None = None
    preferred_time: str | None = None

    @field_validator("customer_name")
    @classmethod
    def _clean_name(cls, value: str) -> str:
        value = sanitize_name(value)
        if not value:
            raise ValueError("Customer name is required")
        return value

    @field_validator("customer_phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        return validate_phone(value)

    @field_validator("damage_description")
    @classmethod
    def _clean_damage(cls, value: str | None) -> str | None:
        return sanitize_input(value) or None

    @field_validator("vehicle_info", "preferred_time")
    @classmethod
    def _clean_short(cls, value: str | None) -> str | None:
        return sanitize_name(value) or None


class BookingResponse(CamelModel):
    booking_id: str
    status: SessionStatus
    shop_name: str
    requested_date: str
    message: str
    error: str | None = None


class BookingStatusResponse(CamelModel):
    booking_id: str
    status: SessionStatus
    shop_name: str
    requested_date: str
    elapsed_seconds: int
    result: BookingCallResult | None = None
    error: str | None = None


class BookingSummary(CamelModel):
    booking_id: str
    shop_name: str
    requested_date: str
    status: SessionStatus
    appointment_booked: bool | None = None
    appointment_time: str | None = None
    confirmation_number: str | None = None


class BookingList(CamelModel):
    bookings: list[BookingSummary]


@router.post("", response_model=BookingResponse)
async def book_appointment(
    request: BookingRequest, services: ServiceContainer = Depends(get_services)
) -> BookingResponse:
    """Call the shop to book a repair appointment for tomorrow."""
    booking = await services.bookings.book_appointment(
        shop=request.shop,
        customer_name=request.customer_name,
        customer_phone=request.customer_phone,
        damage_description=request.damage_description,
        vehicle_info=request.vehicle_info,
        preferred_time=request.preferred_time,
    )
    failed = booking.status is SessionStatus.FAILED
    return BookingResponse(
        booking_id=booking.booking_id,
        status=booking.status,
        shop_name=booking.shop_name,
        requested_date=booking.requested_date,
        message="Booking call could not be placed." if failed else "AI is calling to book your appointment...",
        error=booking.error,
    )


@router.get("", response_model=BookingList)
async def list_bookings(services: ServiceContainer = Depends(get_services)) -> BookingList:
    """List stored bookings, newest first."""
    return BookingList(
        bookings=[
            BookingSummary(
                booking_id=booking.booking_id,
                shop_name=booking.shop_name,
                requested_date=booking.requested_date,
                status=booking.status,
                appointment_booked=booking.result.appointment_booked if booking.result else None,
                appointment_time=booking.result.appointment_time if booking.result else None,
                confirmation_number=booking.result.confirmation_number if booking.result else None,
            )
            for booking in services.bookings.list_bookings()
        ]
    )


@router.get("/{booking_id}", response_model=BookingStatusResponse)
async def get_booking(
    booking_id: str, services: ServiceContainer = Depends(get_services)
) -> BookingStatusResponse:
    """Poll a booking."""
    booking = services.bookings.get_booking(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")

    return BookingStatusResponse(
        booking_id=booking.booking_id,
        status=booking.status,
        shop_name=booking.shop_name,
        requested_date=booking.requested_date,
        elapsed_seconds=booking.elapsed_seconds(),
        result=booking.result,
        error=booking.error,
    )
