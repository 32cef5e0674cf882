"""Booking model: a guest's reservation of a listing for a date range."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stayfinder.database import Base, UUIDPrimaryKeyMixin, one_of

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed", "refunded")
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
PAYMENT_METHODS = ("credit_card", "debit_card", "paypal", "bank_transfer")


class Booking(UUIDPrimaryKeyMixin, Base):
    """A reservation linking a guest to a listing for specific dates.

    ``listing_id``, ``guest_id`` and ``host_id`` are fixed at creation; later
    writes only move the booking along its status graph.
    """

    __tablename__ = "bookings"

    listing_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    guest_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    host_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    nights: Mapped[int] = mapped_column(Integer, nullable=False)

    adults: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    children: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    infants: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    cleaning_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    service_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    taxes: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    payment_status: Mapped[str] = mapped_column(String(20), default="pending")
    payment_method: Mapped[str] = mapped_column(String(20), default="credit_card")
    special_requests: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Cancellation record, populated once cancelled
    cancelled_by_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    refund_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    listing: Mapped["Listing"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    guest: Mapped["User"] = relationship(foreign_keys=[guest_id], lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    host: Mapped["User"] = relationship(foreign_keys=[host_id], lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        CheckConstraint("check_out > check_in", name="ck_bookings_date_range"),
        CheckConstraint("adults >= 1 AND children >= 0 AND infants >= 0", name="ck_bookings_guests"),
        CheckConstraint(one_of("status", BOOKING_STATUSES), name="ck_bookings_status"),
        CheckConstraint(one_of("payment_status", PAYMENT_STATUSES), name="ck_bookings_payment_status"),
        CheckConstraint(one_of("payment_method", PAYMENT_METHODS), name="ck_bookings_payment_method"),
        Index("ix_bookings_guest_created", "guest_id", "created_at"),
        Index("ix_bookings_host_created", "host_id", "created_at"),
        Index("ix_bookings_listing_dates", "listing_id", "check_in", "check_out"),
    )

    @property
    def total_guests(self) -> int:
        return self.adults + self.children + self.infants

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, listing_id={self.listing_id}, guest_id={self.guest_id}, status={self.status})>"
