"""Listing model: bookable properties published by hosts."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, CheckConstraint, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stayfinder.database import Base, UUIDPrimaryKeyMixin, one_of

LISTING_TYPES = ("apartment", "house", "villa", "cabin", "condo", "hotel", "other")
LISTING_STATUSES = ("active", "inactive", "pending", "suspended")


class Listing(UUIDPrimaryKeyMixin, Base):
    """A property with a nightly price and a guest capacity."""

    __tablename__ = "listings"

    host_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    listing_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Location
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str | None] = mapped_column(String(20), default=None)
    latitude: Mapped[float | None] = mapped_column(default=None)
    longitude: Mapped[float | None] = mapped_column(default=None)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    # Capacity
    capacity_guests: Mapped[int] = mapped_column(Integer, nullable=False)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    beds: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    amenities: Mapped[list | None] = mapped_column(JSON, default=list)
    images: Mapped[list | None] = mapped_column(JSON, default=list)

    # House rules and stay constraints
    check_in_time: Mapped[str] = mapped_column(String(5), default="15:00")
    check_out_time: Mapped[str] = mapped_column(String(5), default="11:00")
    min_stay: Mapped[int] = mapped_column(Integer, default=1)
    max_stay: Mapped[int] = mapped_column(Integer, default=365)
    smoking_allowed: Mapped[bool] = mapped_column(Boolean, default=False)
    pets_allowed: Mapped[bool] = mapped_column(Boolean, default=False)
    parties_allowed: Mapped[bool] = mapped_column(Boolean, default=False)

    # Derived from reviews; see services.ratings
    rating_average: Mapped[Decimal] = mapped_column(Numeric(2, 1), default=Decimal("0"))
    rating_count: Mapped[int] = mapped_column(Integer, default=0)

    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    featured: Mapped[bool] = mapped_column(Boolean, default=False)
    views: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    # Relationships
    host: Mapped["User"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        CheckConstraint(one_of("listing_type", LISTING_TYPES), name="ck_listings_type"),
        CheckConstraint(one_of("status", LISTING_STATUSES), name="ck_listings_status"),
        Index("ix_listings_city_country", "city", "country"),
        Index("ix_listings_price", "price"),
    )

    @property
    def full_location(self) -> str:
        return f"{self.city}, {self.state}, {self.country}"

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, title={self.title!r}, status={self.status!r})>"
