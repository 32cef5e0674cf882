"""Pydantic v2 request/response schemas for review endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from stayfinder.models.review import Review
from stayfinder.schemas.common import PaginationInfo, UserSummary


class Ratings(BaseModel):
    """Per-aspect ratings on a 1–5 scale; only ``overall`` is required."""

    overall: int = Field(..., ge=1, le=5)
    cleanliness: int | None = Field(None, ge=1, le=5)
    communication: int | None = Field(None, ge=1, le=5)
    check_in: int | None = Field(None, ge=1, le=5)
    accuracy: int | None = Field(None, ge=1, le=5)
    location: int | None = Field(None, ge=1, le=5)
    value: int | None = Field(None, ge=1, le=5)


class ReviewCreate(BaseModel):
    booking_id: uuid.UUID
    ratings: Ratings
    comment: str = Field(..., min_length=1, max_length=1000)


class HostReply(BaseModel):
    comment: str = Field(..., min_length=1, max_length=500)


class HostResponseOut(BaseModel):
    comment: str | None
    responded_at: datetime | None


class ReviewResponse(BaseModel):
    id: uuid.UUID
    listing_id: uuid.UUID
    booking_id: uuid.UUID
    reviewer_id: uuid.UUID
    host_id: uuid.UUID
    ratings: Ratings
    comment: str
    host_response: HostResponseOut | None = None
    is_public: bool
    helpful_votes: int
    created_at: datetime
    reviewer: UserSummary | None = None

    @classmethod
    def from_model(cls, review: Review) -> "ReviewResponse":
        host_response = None
        if review.host_response is not None:
            host_response = HostResponseOut(comment=review.host_response, responded_at=review.host_responded_at)
        return cls(
            id=review.id,
            listing_id=review.listing_id,
            booking_id=review.booking_id,
            reviewer_id=review.reviewer_id,
            host_id=review.host_id,
            ratings=Ratings(
                overall=review.overall,
                cleanliness=review.cleanliness,
                communication=review.communication,
                check_in=review.check_in,
                accuracy=review.accuracy,
                location=review.location,
                value=review.value,
            ),
            comment=review.comment,
            host_response=host_response,
            is_public=review.is_public,
            helpful_votes=review.helpful_votes,
            created_at=review.created_at,
            reviewer=UserSummary.model_validate(review.reviewer) if review.reviewer is not None else None,
        )


class ReviewData(BaseModel):
    review: ReviewResponse


class ReviewListData(BaseModel):
    reviews: list[ReviewResponse]
    pagination: PaginationInfo
