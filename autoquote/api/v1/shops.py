"""API endpoint for repair shop search."""

from fastapi import APIRouter, Depends
from pydantic import Field, field_validator

from autoquote.api.dependencies import get_services
from autoquote.models.base import CamelModel
from autoquote.models.shops import ShopSearchResult
from autoquote.security.input_security import sanitize_input, sanitize_name
from autoquote.services.container import ServiceContainer

router = APIRouter(prefix="/api/v1/shops", tags=["shops"])


class ShopSearchRequest(CamelModel):
    """Request model for a shop search."""

    location: str = Field(..., min_length=1, description="City, address or zip code")
    damage_description: str | None = Field(None, description="Damage to repair")
    radius_miles: float = Field(5, gt=0, le=100, description="Search radius in miles")
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)

    @field_validator("location")
    @classmethod
    def _clean_location(cls, value: str) -> str:
        value = sanitize_name(value)
        if not value:
            raise ValueError("Location is required")
        return value

    @field_validator("damage_description")
    @classmethod
    def _clean_damage(cls, value: str | None) -> str | None:
        return sanitize_input(value) or None


@router.post("/search", response_model=ShopSearchResult)
async def search_shops(
    request: ShopSearchRequest, services: ServiceContainer = Depends(get_services)
) -> ShopSearchResult:
    """Search repair shops near a location.

    Answers within the search timeout: fresh results when the research task
    finishes in time, otherwise cached or sample results flagged ``cached``.
    """
    return await services.shop_search.resolve_shops(
        location=request.location,
        damage_description=request.damage_description,
        radius_miles=request.radius_miles,
        latitude=request.latitude,
        longitude=request.longitude,
    )
