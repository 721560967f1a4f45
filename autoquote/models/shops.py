"""Repair shop records and shop search results."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RepairShop(BaseModel):
    """One repair shop as returned by the research service.

    Unknown keys are kept so nothing the research service adds is lost on
    its way through the cache.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    shop_name: str = Field(validation_alias=AliasChoices("shop_name", "name"))
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str | None = None
    phone_number: str = Field("", validation_alias=AliasChoices("phone_number", "phone"))
    email: str | None = None
    website: str | None = None
    rating: float | None = None
    review_count: int | None = None
    reviews: list[str] = Field(default_factory=list)
    services: list[str] = Field(default_factory=list)
    hours_of_operation: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    distance_miles: float | None = None

    @property
    def full_address(self) -> str:
        return ", ".join(part for part in (self.address, self.city, self.state) if part)


class CacheEntry(BaseModel):
    """Shops previously fetched for a location."""

    location: str
    shops: list[RepairShop] = Field(default_factory=list)
    timestamp: int = Field(description="Epoch milliseconds of the fetch")
    damage_description: str | None = None


class ShopSearchResult(BaseModel):
    """Response of a shop search, fresh or served from cache/fallback."""

    shops: list[RepairShop]
    search_location: str
    search_radius_miles: float
    total_found: int
    damage_description: str | None = None
    cached: bool = False
    cache_timestamp: int | None = None
    message: str | None = None
    error: str | None = None
