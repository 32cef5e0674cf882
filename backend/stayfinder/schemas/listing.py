"""Pydantic v2 request/response schemas for listing endpoints.

The API groups listing columns into nested objects (location, capacity,
rules, availability, rating); ``ListingResponse.from_model`` and
``ListingCreate.to_columns`` translate between that shape and the flat table.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from stayfinder.models.listing import LISTING_STATUSES, LISTING_TYPES, Listing
from stayfinder.schemas.common import PaginationInfo, UserSummary, choice_pattern

_TYPE_PATTERN = choice_pattern(LISTING_TYPES)
# Suspension is an admin action, never chosen at creation
_CREATE_STATUS_PATTERN = choice_pattern(tuple(s for s in LISTING_STATUSES if s != "suspended"))
Amenity = Literal[
    "wifi",
    "parking",
    "pool",
    "gym",
    "kitchen",
    "washer",
    "dryer",
    "air_conditioning",
    "heating",
    "tv",
    "pets_allowed",
    "smoking_allowed",
    "wheelchair_accessible",
    "elevator",
    "balcony",
    "garden",
    "bbq",
]

# ---------------------------------------------------------------------------
# Nested pieces
# ---------------------------------------------------------------------------


class Coordinates(BaseModel):
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class Location(BaseModel):
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    zip_code: str | None = Field(None, max_length=20)
    coordinates: Coordinates | None = None


class Capacity(BaseModel):
    guests: int = Field(..., ge=1)
    bedrooms: int = Field(..., ge=0)
    bathrooms: int = Field(..., ge=0)
    beds: int = Field(1, ge=1)


class Image(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    caption: str | None = None
    is_primary: bool = False


class Rules(BaseModel):
    smoking_allowed: bool = False
    pets_allowed: bool = False
    parties_allowed: bool = False


class Availability(BaseModel):
    check_in: str = Field("15:00", pattern=r"^\d{2}:\d{2}$")
    check_out: str = Field("11:00", pattern=r"^\d{2}:\d{2}$")
    min_stay: int = Field(1, ge=1)
    max_stay: int = Field(365, ge=1)


class Rating(BaseModel):
    average: Decimal
    count: int


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


def _flatten(
    location: Location | None,
    capacity: Capacity | None,
    rules: Rules | None,
    availability: Availability | None,
) -> dict:
    columns: dict = {}
    if location is not None:
        coords = location.coordinates or Coordinates()
        columns.update(
            address=location.address,
            city=location.city,
            state=location.state,
            country=location.country,
            zip_code=location.zip_code,
            latitude=coords.latitude,
            longitude=coords.longitude,
        )
    if capacity is not None:
        columns.update(
            capacity_guests=capacity.guests,
            bedrooms=capacity.bedrooms,
            bathrooms=capacity.bathrooms,
            beds=capacity.beds,
        )
    if rules is not None:
        columns.update(rules.model_dump())
    if availability is not None:
        columns.update(
            check_in_time=availability.check_in,
            check_out_time=availability.check_out,
            min_stay=availability.min_stay,
            max_stay=availability.max_stay,
        )
    return columns


class ListingCreate(BaseModel):
    """Schema for publishing a new listing."""

    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=20, max_length=2000)
    type: str = Field(..., pattern=_TYPE_PATTERN)
    location: Location
    price: Decimal = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    capacity: Capacity
    amenities: list[Amenity] = Field(default_factory=list)
    images: list[Image] = Field(..., min_length=1)
    rules: Rules = Field(default_factory=Rules)
    availability: Availability = Field(default_factory=Availability)
    status: str = Field("pending", pattern=_CREATE_STATUS_PATTERN)

    def to_columns(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "listing_type": self.type,
            "price": self.price,
            "currency": self.currency,
            "amenities": list(self.amenities),
            "images": [image.model_dump() for image in self.images],
            "status": self.status,
            **_flatten(self.location, self.capacity, self.rules, self.availability),
        }


class ListingUpdate(BaseModel):
    """Schema for partially updating a listing. All fields optional."""

    title: str | None = Field(None, min_length=5, max_length=100)
    description: str | None = Field(None, min_length=20, max_length=2000)
    type: str | None = Field(None, pattern=_TYPE_PATTERN)
    location: Location | None = None
    price: Decimal | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    capacity: Capacity | None = None
    amenities: list[Amenity] | None = None
    images: list[Image] | None = Field(None, min_length=1)
    rules: Rules | None = None
    availability: Availability | None = None
    status: str | None = Field(None, pattern=choice_pattern(LISTING_STATUSES))
    featured: bool | None = None

    def to_columns(self) -> dict:
        """Column updates for explicitly set, non-null fields only."""
        data = self.model_dump(
            exclude_unset=True,
            exclude_none=True,
            include={"title", "description", "price", "currency", "status", "featured"},
        )
        if self.type is not None:
            data["listing_type"] = self.type
        if self.amenities is not None:
            data["amenities"] = list(self.amenities)
        if self.images is not None:
            data["images"] = [image.model_dump() for image in self.images]
        data.update(_flatten(self.location, self.capacity, self.rules, self.availability))
        return data


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ListingSummary(BaseModel):
    """Compact listing shown alongside bookings."""

    id: uuid.UUID
    title: str
    city: str
    country: str
    price: Decimal
    images: list = []

    @classmethod
    def from_model(cls, listing: Listing) -> "ListingSummary":
        return cls(
            id=listing.id,
            title=listing.title,
            city=listing.city,
            country=listing.country,
            price=listing.price,
            images=listing.images or [],
        )


class ListingResponse(BaseModel):
    """Full listing as returned by the listings API."""

    id: uuid.UUID
    host_id: uuid.UUID
    title: str
    description: str
    type: str
    location: Location
    full_location: str
    price: Decimal
    currency: str
    capacity: Capacity
    amenities: list[str]
    images: list[Image]
    rules: Rules
    availability: Availability
    rating: Rating
    status: str
    featured: bool
    views: int
    created_at: datetime
    updated_at: datetime
    host: UserSummary | None = None

    @classmethod
    def from_model(cls, listing: Listing) -> "ListingResponse":
        return cls(
            id=listing.id,
            host_id=listing.host_id,
            title=listing.title,
            description=listing.description,
            type=listing.listing_type,
            location=Location(
                address=listing.address,
                city=listing.city,
                state=listing.state,
                country=listing.country,
                zip_code=listing.zip_code,
                coordinates=Coordinates(latitude=listing.latitude, longitude=listing.longitude),
            ),
            full_location=listing.full_location,
            price=listing.price,
            currency=listing.currency,
            capacity=Capacity(
                guests=listing.capacity_guests,
                bedrooms=listing.bedrooms,
                bathrooms=listing.bathrooms,
                beds=listing.beds,
            ),
            amenities=listing.amenities or [],
            images=[Image(**image) for image in listing.images or []],
            rules=Rules(
                smoking_allowed=listing.smoking_allowed,
                pets_allowed=listing.pets_allowed,
                parties_allowed=listing.parties_allowed,
            ),
            availability=Availability(
                check_in=listing.check_in_time,
                check_out=listing.check_out_time,
                min_stay=listing.min_stay,
                max_stay=listing.max_stay,
            ),
            rating=Rating(average=listing.rating_average, count=listing.rating_count),
            status=listing.status,
            featured=listing.featured,
            views=listing.views,
            created_at=listing.created_at,
            updated_at=listing.updated_at,
            host=UserSummary.model_validate(listing.host) if listing.host is not None else None,
        )


class DateRange(BaseModel):
    from_: date = Field(..., alias="from")
    to: date


class ListingData(BaseModel):
    listing: ListingResponse


class ListingDetailData(ListingData):
    unavailable_dates: list[DateRange]


class ListingListData(BaseModel):
    listings: list[ListingResponse]
    pagination: PaginationInfo


class FeaturedListingsData(BaseModel):
    listings: list[ListingResponse]
