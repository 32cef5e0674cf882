"""Pydantic v2 request/response schemas for booking endpoints."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from stayfinder.models.booking import PAYMENT_METHODS, Booking
from stayfinder.schemas.common import PaginationInfo, UserSummary, choice_pattern
from stayfinder.schemas.listing import ListingSummary

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class StayDates(BaseModel):
    check_in: date
    check_out: date

    @field_validator("check_in")
    @classmethod
    def check_in_not_past(cls, value: date) -> date:
        if value < datetime.now(timezone.utc).date():
            raise ValueError("check_in cannot be in the past")
        return value


class GuestCount(BaseModel):
    adults: int = Field(..., ge=1)
    children: int = Field(0, ge=0)
    infants: int = Field(0, ge=0)


class BookingCreate(BaseModel):
    """Schema for requesting a new booking."""

    listing_id: uuid.UUID
    dates: StayDates
    guests: GuestCount
    special_requests: str | None = Field(None, max_length=500)
    payment_method: str = Field("credit_card", pattern=choice_pattern(PAYMENT_METHODS))


class BookingCancel(BaseModel):
    reason: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BookingDates(BaseModel):
    check_in: date
    check_out: date
    nights: int


class PriceBreakdownOut(BaseModel):
    base_price: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    taxes: Decimal
    total: Decimal


class Cancellation(BaseModel):
    cancelled_by: uuid.UUID | None
    cancelled_at: datetime | None
    reason: str | None
    refund_amount: Decimal | None


class BookingResponse(BaseModel):
    """A booking with its listing, guest, and host summaries attached."""

    id: uuid.UUID
    listing_id: uuid.UUID
    guest_id: uuid.UUID
    host_id: uuid.UUID
    dates: BookingDates
    guests: GuestCount
    total_guests: int
    pricing: PriceBreakdownOut
    status: str
    payment_status: str
    payment_method: str
    special_requests: str | None = None
    cancellation: Cancellation | None = None
    created_at: datetime
    updated_at: datetime
    listing: ListingSummary | None = None
    guest: UserSummary | None = None
    host: UserSummary | None = None

    @classmethod
    def from_model(cls, booking: Booking) -> "BookingResponse":
        cancellation = None
        if booking.cancelled_at is not None:
            cancellation = Cancellation(
                cancelled_by=booking.cancelled_by_id,
                cancelled_at=booking.cancelled_at,
                reason=booking.cancellation_reason,
                refund_amount=booking.refund_amount,
            )
        return cls(
            id=booking.id,
            listing_id=booking.listing_id,
            guest_id=booking.guest_id,
            host_id=booking.host_id,
            dates=BookingDates(check_in=booking.check_in, check_out=booking.check_out, nights=booking.nights),
            guests=GuestCount(adults=booking.adults, children=booking.children, infants=booking.infants),
            total_guests=booking.total_guests,
            pricing=PriceBreakdownOut(
                base_price=booking.base_price,
                cleaning_fee=booking.cleaning_fee,
                service_fee=booking.service_fee,
                taxes=booking.taxes,
                total=booking.total,
            ),
            status=booking.status,
            payment_status=booking.payment_status,
            payment_method=booking.payment_method,
            special_requests=booking.special_requests,
            cancellation=cancellation,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
            listing=ListingSummary.from_model(booking.listing) if booking.listing is not None else None,
            guest=UserSummary.model_validate(booking.guest) if booking.guest is not None else None,
            host=UserSummary.model_validate(booking.host) if booking.host is not None else None,
        )


class BookingData(BaseModel):
    booking: BookingResponse


class CancellationData(BookingData):
    refund_amount: Decimal


class BookingListData(BaseModel):
    bookings: list[BookingResponse]
    pagination: PaginationInfo
