"""Pydantic v2 schemas for the account profile and dashboard endpoints."""

from decimal import Decimal

from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    """Editable profile fields. Email, password and role are changed elsewhere."""

    first_name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)
    phone: str | None = Field(None, max_length=50)
    avatar_url: str | None = Field(None, max_length=512)


class GuestStats(BaseModel):
    """Bookings the user made as a guest."""

    total: int
    upcoming: int  # confirmed, check-in today or later
    completed: int


class HostStats(BaseModel):
    """Listings the user hosts and the bookings they received."""

    total_listings: int
    active_listings: int
    total_bookings: int
    pending_bookings: int
    total_earnings: Decimal  # sum of completed booking totals


class DashboardData(BaseModel):
    bookings: GuestStats | None = None
    hosting: HostStats | None = None
