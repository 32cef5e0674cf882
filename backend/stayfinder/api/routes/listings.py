"""Listings API router: public search and detail, host-scoped management."""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from stayfinder.api.deps import Pagination, get_current_user, get_db, get_pagination, require_role
from stayfinder.errors import InvalidState, NotFound
from stayfinder.models.listing import Listing
from stayfinder.models.user import User
from stayfinder.schemas.common import Envelope, PaginationInfo
from stayfinder.schemas.listing import (
    DateRange,
    FeaturedListingsData,
    ListingCreate,
    ListingData,
    ListingDetailData,
    ListingListData,
    ListingResponse,
    ListingUpdate,
)
from stayfinder.services import booking_engine
from stayfinder.services.policies import can_create_listing, can_manage_listing, require

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/listings", tags=["listings"])

FEATURED_LIMIT = 8

_SORT_COLUMNS = {
    "created_at": Listing.created_at,
    "price": Listing.price,
    "rating": Listing.rating_average,
}


async def _get_listing_or_404(db: AsyncSession, listing_id: uuid.UUID) -> Listing:
    result = await db.execute(select(Listing).where(Listing.id == listing_id))
    listing = result.scalar_one_or_none()
    if listing is None:
        raise NotFound("Listing not found")
    return listing


def _amenities_filter(amenities: str):
    """Match listings offering any of a comma-separated list of amenities."""
    wanted = [a.strip() for a in amenities.split(",") if a.strip()]
    as_text = cast(Listing.amenities, String)
    return or_(*(as_text.like(f'%"{amenity}"%') for amenity in wanted))


@router.get("", response_model=Envelope[ListingListData], summary="Search active listings")
async def list_listings(
    city: str | None = Query(None),
    country: str | None = Query(None),
    listing_type: str | None = Query(None, alias="type"),
    min_price: float | None = Query(None, alias="minPrice", ge=0),
    max_price: float | None = Query(None, alias="maxPrice", ge=0),
    guests: int | None = Query(None, ge=1),
    amenities: str | None = Query(None, description="Comma-separated; matches any"),
    sort_by: str = Query("created_at", alias="sortBy", pattern="^(created_at|price|rating)$"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    pagination: Pagination = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
) -> Envelope[ListingListData]:
    filters = [Listing.status == "active"]
    if city:
        filters.append(Listing.city.ilike(f"%{city}%"))
    if country:
        filters.append(Listing.country.ilike(f"%{country}%"))
    if listing_type:
        filters.append(Listing.listing_type == listing_type)
    if min_price is not None:
        filters.append(Listing.price >= min_price)
    if max_price is not None:
        filters.append(Listing.price <= max_price)
    if guests is not None:
        filters.append(Listing.capacity_guests >= guests)
    if amenities:
        filters.append(_amenities_filter(amenities))

    count_query = select(func.count()).select_from(Listing).where(*filters)
    total = (await db.execute(count_query)).scalar_one()

    sort_column = _SORT_COLUMNS[sort_by]
    ordering = sort_column.asc() if sort_order == "asc" else sort_column.desc()
    items_query = (
        select(Listing).where(*filters).order_by(ordering).offset(pagination.offset).limit(pagination.limit)
    )
    result = await db.execute(items_query)
    listings = list(result.scalars().all())

    return Envelope(
        data=ListingListData(
            listings=[ListingResponse.from_model(listing) for listing in listings],
            pagination=PaginationInfo(**pagination.summary(total)),
        )
    )


@router.get("/featured", response_model=Envelope[FeaturedListingsData], summary="Featured listings")
async def featured_listings(db: AsyncSession = Depends(get_db)) -> Envelope[FeaturedListingsData]:
    result = await db.execute(
        select(Listing)
        .where(Listing.status == "active", Listing.featured.is_(True))
        .order_by(Listing.rating_average.desc())
        .limit(FEATURED_LIMIT)
    )
    listings = result.scalars().all()
    return Envelope(data=FeaturedListingsData(listings=[ListingResponse.from_model(listing) for listing in listings]))


@router.get("/host/my-listings", response_model=Envelope[ListingListData], summary="Listings I host")
async def my_listings(
    pagination: Pagination = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role("host", "admin")),
) -> Envelope[ListingListData]:
    base_filter = Listing.host_id == current_user.id
    total = (await db.execute(select(func.count()).select_from(Listing).where(base_filter))).scalar_one()
    result = await db.execute(
        select(Listing)
        .where(base_filter)
        .order_by(Listing.created_at.desc())
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return Envelope(
        data=ListingListData(
            listings=[ListingResponse.from_model(listing) for listing in result.scalars().all()],
            pagination=PaginationInfo(**pagination.summary(total)),
        )
    )


@router.get("/{listing_id}", response_model=Envelope[ListingDetailData], summary="Get a listing")
async def get_listing(listing_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> Envelope[ListingDetailData]:
    """Return a listing with the date ranges already held by bookings. Counts a view."""
    listing = await _get_listing_or_404(db, listing_id)

    listing.views = Listing.views + 1
    db.add(listing)
    await db.flush()
    await db.refresh(listing)

    ranges = await booking_engine.unavailable_ranges(db, listing.id)
    return Envelope(
        data=ListingDetailData(
            listing=ListingResponse.from_model(listing),
            unavailable_dates=[DateRange(**r) for r in ranges],
        )
    )


@router.post(
    "",
    response_model=Envelope[ListingData],
    status_code=status.HTTP_201_CREATED,
    summary="Publish a listing",
)
async def create_listing(
    body: ListingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[ListingData]:
    require(can_create_listing(current_user), "Access denied. Host or Admin privileges required.")
    listing = Listing(host_id=current_user.id, **body.to_columns())
    db.add(listing)
    await db.flush()
    await db.refresh(listing)

    logger.info("Listing %s created by host %s", listing.id, current_user.id)
    return Envelope(
        message="Listing created successfully",
        data=ListingData(listing=ListingResponse.from_model(listing)),
    )


@router.put("/{listing_id}", response_model=Envelope[ListingData], summary="Update a listing")
async def update_listing(
    listing_id: uuid.UUID,
    body: ListingUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[ListingData]:
    """Partially update a listing. Only explicitly set fields are changed."""
    listing = await _get_listing_or_404(db, listing_id)
    require(can_manage_listing(current_user, listing), "Not authorized to update this listing")

    for field, value in body.to_columns().items():
        setattr(listing, field, value)

    db.add(listing)
    await db.flush()
    await db.refresh(listing)

    return Envelope(
        message="Listing updated successfully",
        data=ListingData(listing=ListingResponse.from_model(listing)),
    )


@router.delete("/{listing_id}", response_model=Envelope[None], summary="Delete a listing")
async def delete_listing(
    listing_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[None]:
    listing = await _get_listing_or_404(db, listing_id)
    require(can_manage_listing(current_user, listing), "Not authorized to delete this listing")

    if await booking_engine.count_active_future_bookings(db, listing.id) > 0:
        raise InvalidState("Cannot delete listing with active bookings")

    await db.delete(listing)
    await db.flush()

    logger.info("Listing %s deleted by %s", listing_id, current_user.id)
    return Envelope(message="Listing deleted successfully")
