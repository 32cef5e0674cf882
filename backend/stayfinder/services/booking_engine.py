"""Booking engine: availability, pricing, confirmation, and cancellation.

Overlap rule: a requested stay ``[check_in, check_out)`` conflicts with an
active booking ``[existing_in, existing_out)`` when
``check_in < existing_out and check_out > existing_in``. Back-to-back stays
(one checks out the day the next checks in) do not conflict.

Creating a booking checks for overlap and inserts inside a per-listing
serialization scope (see :class:`ListingLocks`) and under a row lock on the
listing, and commits before leaving that scope, so two concurrent requests
for overlapping dates cannot both succeed.
"""

import asyncio
import logging
import uuid
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stayfinder.errors import CapacityExceeded, DateConflict, InvalidState, NotFound
from stayfinder.models.booking import ACTIVE_BOOKING_STATUSES, Booking
from stayfinder.models.listing import Listing
from stayfinder.models.user import User
from stayfinder.services import booking_state
from stayfinder.services.policies import (
    can_cancel_booking,
    can_confirm_booking,
    can_view_booking,
    require,
)
from stayfinder.services.pricing import compute_refund, days_between, quote_stay

logger = logging.getLogger(__name__)

DEFAULT_CANCELLATION_REASON = "No reason provided"

# Name of the PostgreSQL exclusion constraint installed by the initial migration.
OVERLAP_CONSTRAINT = "ex_bookings_no_overlap"


class ListingLocks:
    """Per-listing ``asyncio.Lock`` registry.

    Locks are held weakly, so a listing's lock disappears once no coroutine
    holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, listing_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(listing_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[listing_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, listing_id: uuid.UUID) -> AsyncIterator[None]:
        lock = self._lock_for(listing_id)
        async with lock:
            yield


listing_locks = ListingLocks()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_booking_or_404(
    db: AsyncSession,
    booking_id: uuid.UUID,
    for_update: bool = False,
) -> Booking:
    query = select(Booking).where(Booking.id == booking_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFound("Booking not found")
    return booking


async def find_conflicting_booking(
    db: AsyncSession,
    listing_id: uuid.UUID,
    check_in: date,
    check_out: date,
    exclude_booking_id: uuid.UUID | None = None,
) -> Booking | None:
    """Return an active booking on the listing overlapping ``[check_in, check_out)``, if any."""
    query = select(Booking).where(
        Booking.listing_id == listing_id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        Booking.check_in < check_out,
        Booking.check_out > check_in,
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)

    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def unavailable_ranges(
    db: AsyncSession,
    listing_id: uuid.UUID,
    from_date: date | None = None,
) -> list[dict[str, date]]:
    """Date ranges held by active bookings whose check-out is on or after ``from_date``."""
    from_date = from_date or datetime.now(timezone.utc).date()
    result = await db.execute(
        select(Booking.check_in, Booking.check_out)
        .where(
            Booking.listing_id == listing_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.check_out >= from_date,
        )
        .order_by(Booking.check_in)
    )
    return [{"from": row.check_in, "to": row.check_out} for row in result.all()]


async def count_active_future_bookings(db: AsyncSession, listing_id: uuid.UUID) -> int:
    today = datetime.now(timezone.utc).date()
    result = await db.execute(
        select(func.count())
        .select_from(Booking)
        .where(
            Booking.listing_id == listing_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.check_out >= today,
        )
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


async def create_booking(
    db: AsyncSession,
    guest: User,
    listing_id: uuid.UUID,
    check_in: date,
    check_out: date,
    adults: int,
    children: int = 0,
    infants: int = 0,
    special_requests: str | None = None,
    payment_method: str = "credit_card",
) -> Booking:
    """Validate, price, and persist a new pending booking.

    Checks run in a fixed order and the first failure wins: listing exists,
    listing is active, guest count fits, dates are free, date range is valid.

    Raises:
        NotFound: The listing does not exist.
        InvalidState: The listing is not active.
        CapacityExceeded: Too many guests for the listing.
        DateConflict: The dates overlap an active booking.
        InvalidDateRange: Check-out is not after check-in.
    """
    async with listing_locks.hold(listing_id):
        result = await db.execute(select(Listing).where(Listing.id == listing_id).with_for_update())
        listing = result.scalar_one_or_none()

        if listing is None:
            raise NotFound("Listing not found")

        if listing.status != "active":
            raise InvalidState("Listing is not available for booking")

        if adults + children + infants > listing.capacity_guests:
            raise CapacityExceeded(listing.capacity_guests)

        conflict = await find_conflicting_booking(db, listing.id, check_in, check_out)
        if conflict is not None:
            logger.info(
                "Booking request for listing %s (%s..%s) conflicts with booking %s",
                listing.id,
                check_in,
                check_out,
                conflict.id,
            )
            raise DateConflict()

        quote = quote_stay(listing.price, check_in, check_out)

        booking = Booking(
            listing_id=listing.id,
            guest_id=guest.id,
            host_id=listing.host_id,
            check_in=check_in,
            check_out=check_out,
            nights=quote.nights,
            adults=adults,
            children=children,
            infants=infants,
            base_price=quote.base_price,
            cleaning_fee=quote.cleaning_fee,
            service_fee=quote.service_fee,
            taxes=quote.taxes,
            total=quote.total,
            status=booking_state.PENDING,
            payment_status="pending",
            payment_method=payment_method,
            special_requests=special_requests,
        )
        db.add(booking)
        try:
            await db.flush()
        except IntegrityError as exc:
            if OVERLAP_CONSTRAINT in str(exc.orig):
                raise DateConflict() from exc
            raise
        await db.commit()
        await db.refresh(booking)

    logger.info(
        "Booking %s created for listing %s by guest %s (%d nights, total %s)",
        booking.id,
        listing_id,
        guest.id,
        booking.nights,
        booking.total,
    )
    return booking


async def get_booking_for(db: AsyncSession, actor: User, booking_id: uuid.UUID) -> Booking:
    """Fetch a booking the actor is allowed to see."""
    booking = await get_booking_or_404(db, booking_id)
    require(can_view_booking(actor, booking), "Not authorized to view this booking")
    return booking


async def confirm_booking(db: AsyncSession, actor: User, booking_id: uuid.UUID) -> Booking:
    """Move a pending booking to confirmed. Only the booking's host may confirm.

    Raises:
        NotFound: The booking does not exist.
        Forbidden: The actor is not the host.
        InvalidStateTransition: The booking is not pending.
    """
    booking = await get_booking_or_404(db, booking_id, for_update=True)
    require(can_confirm_booking(actor, booking), "Only the host can confirm bookings")
    booking_state.ensure_transition(booking.status, booking_state.CONFIRMED)

    booking.status = booking_state.CONFIRMED
    db.add(booking)
    await db.flush()
    await db.refresh(booking)

    logger.info("Booking %s confirmed by host %s", booking.id, actor.id)
    return booking


async def cancel_booking(
    db: AsyncSession,
    actor: User,
    booking_id: uuid.UUID,
    reason: str | None = None,
    now: datetime | None = None,
) -> tuple[Booking, Decimal]:
    """Cancel a booking and record the refund the guest is entitled to.

    Returns the updated booking and the refund amount. No money is moved.

    Raises:
        NotFound: The booking does not exist.
        Forbidden: The actor is not the guest, the host, or an admin.
        InvalidStateTransition: The booking is already cancelled or completed.
    """
    now = now or datetime.now(timezone.utc)
    booking = await get_booking_or_404(db, booking_id, for_update=True)
    require(can_cancel_booking(actor, booking), "Not authorized to cancel this booking")
    booking_state.ensure_transition(booking.status, booking_state.CANCELLED)

    refund_amount = compute_refund(booking.total, booking.check_in, now)

    booking.status = booking_state.CANCELLED
    booking.cancelled_by_id = actor.id
    booking.cancelled_at = now.astimezone(timezone.utc).replace(tzinfo=None)  # naive UTC
    booking.cancellation_reason = reason or DEFAULT_CANCELLATION_REASON
    booking.refund_amount = refund_amount
    db.add(booking)
    await db.flush()
    await db.refresh(booking)

    logger.info(
        "Booking %s cancelled by %s with %s days to check-in, refund %s",
        booking.id,
        actor.id,
        days_between(now, booking.check_in),
        refund_amount,
    )
    return booking, refund_amount


async def complete_booking(db: AsyncSession, booking: Booking) -> Booking:
    """Mark a confirmed stay as completed (driven by the calendar, not by a user)."""
    booking_state.ensure_transition(booking.status, booking_state.COMPLETED)
    booking.status = booking_state.COMPLETED
    db.add(booking)
    await db.flush()
    await db.refresh(booking)
    return booking


async def mark_refunded(db: AsyncSession, booking: Booking) -> Booking:
    """Record that a cancelled or completed booking has been refunded."""
    booking_state.ensure_transition(booking.status, booking_state.REFUNDED)
    booking.status = booking_state.REFUNDED
    booking.payment_status = "refunded"
    db.add(booking)
    await db.flush()
    await db.refresh(booking)
    return booking


async def list_bookings_for(
    db: AsyncSession,
    user: User,
    as_host: bool = False,
    status_filter: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Booking], int]:
    """Return one page of the user's bookings (as guest, or as host) and the total count."""
    party_column = Booking.host_id if as_host else Booking.guest_id
    filters = [party_column == user.id]
    if status_filter is not None:
        filters.append(Booking.status == status_filter)

    count_query = select(func.count()).select_from(Booking).where(*filters)
    total = (await db.execute(count_query)).scalar_one()

    items_query = (
        select(Booking)
        .where(*filters)
        .order_by(Booking.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(items_query)
    return list(result.scalars().all()), total
