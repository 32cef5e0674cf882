"""Review model: guest feedback on a completed booking."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stayfinder.database import Base, UUIDPrimaryKeyMixin


# One review per booking
BOOKING_UNIQUE_CONSTRAINT = "uq_reviews_booking"


class Review(UUIDPrimaryKeyMixin, Base):
    """One review per booking; ``overall`` feeds the listing rating."""

    __tablename__ = "reviews"

    listing_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    host_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    overall: Mapped[int] = mapped_column(Integer, nullable=False)
    cleanliness: Mapped[int | None] = mapped_column(Integer, nullable=True)
    communication: Mapped[int | None] = mapped_column(Integer, nullable=True)
    check_in: Mapped[int | None] = mapped_column(Integer, nullable=True)
    accuracy: Mapped[int | None] = mapped_column(Integer, nullable=True)
    location: Mapped[int | None] = mapped_column(Integer, nullable=True)
    value: Mapped[int | None] = mapped_column(Integer, nullable=True)

    comment: Mapped[str] = mapped_column(String(1000), nullable=False)
    host_response: Mapped[str | None] = mapped_column(String(500), nullable=True)
    host_responded_at: Mapped[datetime | None] = mapped_column(nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    helpful_votes: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    reviewer: Mapped["User"] = relationship(foreign_keys=[reviewer_id], lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        UniqueConstraint("booking_id", name=BOOKING_UNIQUE_CONSTRAINT),
        Index("ix_reviews_listing_created", "listing_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, booking_id={self.booking_id}, overall={self.overall})>"
