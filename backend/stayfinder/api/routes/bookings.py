"""Bookings API router.

Guests create and list their own bookings; hosts list and confirm the bookings
they receive; either party (or an admin) may view or cancel. All availability,
pricing, and status rules live in ``stayfinder.services.booking_engine``.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from stayfinder.api.deps import Pagination, get_current_user, get_db, get_pagination
from stayfinder.models.booking import BOOKING_STATUSES
from stayfinder.models.user import User
from stayfinder.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingData,
    BookingListData,
    BookingResponse,
    CancellationData,
)
from stayfinder.schemas.common import Envelope, PaginationInfo, choice_pattern
from stayfinder.services import booking_engine

router = APIRouter(prefix="/api/bookings", tags=["bookings"])

_STATUS_PATTERN = choice_pattern(BOOKING_STATUSES)


async def _list(
    db: AsyncSession,
    user: User,
    as_host: bool,
    status_filter: str | None,
    pagination: Pagination,
) -> BookingListData:
    bookings, total = await booking_engine.list_bookings_for(
        db,
        user,
        as_host=as_host,
        status_filter=status_filter,
        page=pagination.page,
        limit=pagination.limit,
    )
    return BookingListData(
        bookings=[BookingResponse.from_model(b) for b in bookings],
        pagination=PaginationInfo(**pagination.summary(total)),
    )


@router.post(
    "",
    response_model=Envelope[BookingData],
    status_code=status.HTTP_201_CREATED,
    summary="Request a booking",
)
async def create_booking(
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[BookingData]:
    booking = await booking_engine.create_booking(
        db,
        current_user,
        listing_id=body.listing_id,
        check_in=body.dates.check_in,
        check_out=body.dates.check_out,
        adults=body.guests.adults,
        children=body.guests.children,
        infants=body.guests.infants,
        special_requests=body.special_requests,
        payment_method=body.payment_method,
    )
    return Envelope(
        message="Booking created successfully",
        data=BookingData(booking=BookingResponse.from_model(booking)),
    )


@router.get("", response_model=Envelope[BookingListData], summary="List my bookings as a guest")
async def list_my_bookings(
    status_filter: str | None = Query(None, alias="status", pattern=_STATUS_PATTERN),
    pagination: Pagination = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[BookingListData]:
    data = await _list(db, current_user, False, status_filter, pagination)
    return Envelope(data=data)


@router.get("/host", response_model=Envelope[BookingListData], summary="List bookings received as a host")
async def list_host_bookings(
    status_filter: str | None = Query(None, alias="status", pattern=_STATUS_PATTERN),
    pagination: Pagination = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[BookingListData]:
    data = await _list(db, current_user, True, status_filter, pagination)
    return Envelope(data=data)


@router.get("/{booking_id}", response_model=Envelope[BookingData], summary="Get a booking")
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[BookingData]:
    booking = await booking_engine.get_booking_for(db, current_user, booking_id)
    return Envelope(data=BookingData(booking=BookingResponse.from_model(booking)))


@router.put("/{booking_id}/confirm", response_model=Envelope[BookingData], summary="Confirm a pending booking")
async def confirm_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[BookingData]:
    booking = await booking_engine.confirm_booking(db, current_user, booking_id)
    return Envelope(
        message="Booking confirmed successfully",
        data=BookingData(booking=BookingResponse.from_model(booking)),
    )


@router.put("/{booking_id}/cancel", response_model=Envelope[CancellationData], summary="Cancel a booking")
async def cancel_booking(
    booking_id: uuid.UUID,
    body: BookingCancel | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[CancellationData]:
    """Cancel a pending or confirmed booking; the response reports the refund owed."""
    reason = body.reason if body is not None else None
    booking, refund_amount = await booking_engine.cancel_booking(db, current_user, booking_id, reason=reason)
    return Envelope(
        message="Booking cancelled successfully",
        data=CancellationData(booking=BookingResponse.from_model(booking), refund_amount=refund_amount),
    )
