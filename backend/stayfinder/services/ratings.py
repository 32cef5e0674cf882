"""Listing rating aggregation."""

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stayfinder.models.listing import Listing
from stayfinder.models.review import Review

logger = logging.getLogger(__name__)

_ONE_DECIMAL = Decimal("0.1")


def recompute(overall_ratings: Iterable[int]) -> tuple[Decimal, int]:
    """Return ``(average, count)`` for a listing's overall ratings.

    The average is rounded to one decimal place; an empty input yields ``(0, 0)``.
    """
    ratings = list(overall_ratings)
    if not ratings:
        return Decimal("0"), 0
    average = (Decimal(sum(ratings)) / len(ratings)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)
    return average, len(ratings)


async def refresh_listing_rating(db: AsyncSession, listing: Listing) -> Listing:
    """Recompute ``listing.rating_average``/``rating_count`` from all its reviews.

    Runs in the caller's transaction so the review write and the rating update
    commit together.
    """
    result = await db.execute(select(Review.overall).where(Review.listing_id == listing.id))
    average, count = recompute(result.scalars().all())
    listing.rating_average = average
    listing.rating_count = count
    db.add(listing)
    await db.flush()
    logger.info("Listing %s rating recomputed: %s over %d reviews", listing.id, average, count)
    return listing

