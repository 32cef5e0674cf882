"""Reviews API router.

A guest may review a completed stay once; each review write recomputes the
listing's rating in the same transaction.
"""

import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stayfinder.api.deps import Pagination, get_current_user, get_db, get_pagination
from stayfinder.errors import InvalidState, NotFound
from stayfinder.models.listing import Listing
from stayfinder.models.review import BOOKING_UNIQUE_CONSTRAINT, Review
from stayfinder.models.user import User
from stayfinder.schemas.common import Envelope, PaginationInfo
from stayfinder.schemas.review import HostReply, ReviewCreate, ReviewData, ReviewListData, ReviewResponse
from stayfinder.services import booking_engine, booking_state
from stayfinder.services.policies import can_respond_to_review, can_review_booking, require
from stayfinder.services.ratings import refresh_listing_rating

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])

DUPLICATE_REVIEW_MESSAGE = "Review already exists for this booking"


def is_duplicate_review(exc: IntegrityError) -> bool:
    """True when ``exc`` is the one-review-per-booking violation.

    PostgreSQL names the constraint; SQLite names the column.
    """
    message = str(exc.orig)
    return BOOKING_UNIQUE_CONSTRAINT in message or "reviews.booking_id" in message


@router.post(
    "",
    response_model=Envelope[ReviewData],
    status_code=status.HTTP_201_CREATED,
    summary="Review a completed stay",
)
async def create_review(
    body: ReviewCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[ReviewData]:
    booking = await booking_engine.get_booking_or_404(db, body.booking_id)
    require(can_review_booking(current_user, booking), "You can only review your own bookings")

    if booking.status != booking_state.COMPLETED:
        raise InvalidState("You can only review completed bookings")

    existing = await db.execute(select(Review.id).where(Review.booking_id == booking.id))
    if existing.scalar_one_or_none() is not None:
        raise InvalidState(DUPLICATE_REVIEW_MESSAGE)

    review = Review(
        listing_id=booking.listing_id,
        booking_id=booking.id,
        reviewer_id=current_user.id,
        host_id=booking.host_id,
        comment=body.comment,
        **body.ratings.model_dump(),
    )
    db.add(review)
    try:
        await db.flush()
    except IntegrityError as exc:
        if is_duplicate_review(exc):
            raise InvalidState(DUPLICATE_REVIEW_MESSAGE) from exc
        raise

    listing = (await db.execute(select(Listing).where(Listing.id == booking.listing_id))).scalar_one()
    await refresh_listing_rating(db, listing)
    await db.refresh(review)

    logger.info("Review %s posted for listing %s", review.id, listing.id)
    return Envelope(
        message="Review created successfully",
        data=ReviewData(review=ReviewResponse.from_model(review)),
    )


@router.get("/listing/{listing_id}", response_model=Envelope[ReviewListData], summary="Public reviews of a listing")
async def list_listing_reviews(
    listing_id: uuid.UUID,
    pagination: Pagination = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
) -> Envelope[ReviewListData]:
    filters = [Review.listing_id == listing_id, Review.is_public.is_(True)]
    total = (await db.execute(select(func.count()).select_from(Review).where(*filters))).scalar_one()
    result = await db.execute(
        select(Review)
        .where(*filters)
        .order_by(Review.created_at.desc())
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return Envelope(
        data=ReviewListData(
            reviews=[ReviewResponse.from_model(r) for r in result.scalars().all()],
            pagination=PaginationInfo(**pagination.summary(total)),
        )
    )


@router.put("/{review_id}/respond", response_model=Envelope[ReviewData], summary="Respond to a review as host")
async def respond_to_review(
    review_id: uuid.UUID,
    body: HostReply,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[ReviewData]:
    result = await db.execute(select(Review).where(Review.id == review_id))
    review = result.scalar_one_or_none()
    if review is None:
        raise NotFound("Review not found")
    require(can_respond_to_review(current_user, review), "Only the host can respond to this review")

    review.host_response = body.comment
    review.host_responded_at = datetime.now(timezone.utc).replace(tzinfo=None)
    db.add(review)
    await db.flush()
    await db.refresh(review)

    return Envelope(
        message="Response added successfully",
        data=ReviewData(review=ReviewResponse.from_model(review)),
    )
