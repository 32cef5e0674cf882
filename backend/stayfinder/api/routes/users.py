"""Users API router: own profile, dashboard statistics, and upgrading to host."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stayfinder.api.deps import get_current_user, get_db
from stayfinder.auth.jwt import create_token_pair
from stayfinder.errors import InvalidState
from stayfinder.models.booking import Booking
from stayfinder.models.listing import Listing
from stayfinder.models.user import User
from stayfinder.schemas.auth import AuthData, TokenResponse, UserData, UserResponse
from stayfinder.schemas.common import Envelope
from stayfinder.schemas.user import DashboardData, GuestStats, HostStats, ProfileUpdate
from stayfinder.services import booking_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


async def _count(db: AsyncSession, model: type, *filters) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*filters))
    return result.scalar_one()


async def _guest_stats(db: AsyncSession, user: User) -> GuestStats:
    today = datetime.now(timezone.utc).date()
    return GuestStats(
        total=await _count(db, Booking, Booking.guest_id == user.id),
        upcoming=await _count(
            db,
            Booking,
            Booking.guest_id == user.id,
            Booking.status == booking_state.CONFIRMED,
            Booking.check_in >= today,
        ),
        completed=await _count(db, Booking, Booking.guest_id == user.id, Booking.status == booking_state.COMPLETED),
    )


async def _host_stats(db: AsyncSession, user: User) -> HostStats:
    earnings = await db.execute(
        select(func.coalesce(func.sum(Booking.total), 0)).where(
            Booking.host_id == user.id,
            Booking.status == booking_state.COMPLETED,
        )
    )
    return HostStats(
        total_listings=await _count(db, Listing, Listing.host_id == user.id),
        active_listings=await _count(db, Listing, Listing.host_id == user.id, Listing.status == "active"),
        total_bookings=await _count(db, Booking, Booking.host_id == user.id),
        pending_bookings=await _count(db, Booking, Booking.host_id == user.id, Booking.status == booking_state.PENDING),
        total_earnings=Decimal(str(earnings.scalar_one())),
    )


@router.get("/profile", response_model=Envelope[UserData], summary="Get my profile")
async def get_profile(current_user: User = Depends(get_current_user)) -> Envelope[UserData]:
    return Envelope(data=UserData(user=UserResponse.model_validate(current_user)))


@router.put("/profile", response_model=Envelope[UserData], summary="Update my profile")
async def update_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[UserData]:
    for field, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(current_user, field, value)
    db.add(current_user)
    await db.flush()
    await db.refresh(current_user)

    return Envelope(
        message="Profile updated successfully",
        data=UserData(user=UserResponse.model_validate(current_user)),
    )


@router.get("/dashboard", response_model=Envelope[DashboardData], summary="Booking and hosting statistics")
async def dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[DashboardData]:
    """Guests and hosts see the bookings they made; hosts also see hosting totals."""
    data = DashboardData()
    if current_user.role in ("guest", "host"):
        data.bookings = await _guest_stats(db, current_user)
    if current_user.role == "host":
        data.hosting = await _host_stats(db, current_user)
    return Envelope(data=data)


@router.post("/become-host", response_model=Envelope[AuthData], summary="Upgrade my account to host")
async def become_host(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Envelope[AuthData]:
    """Promote a guest to host and issue tokens carrying the new role."""
    if current_user.role == "host":
        raise InvalidState("User is already a host")
    if current_user.role == "admin":
        raise InvalidState("Admins already have host privileges")

    current_user.role = "host"
    db.add(current_user)
    await db.flush()
    await db.refresh(current_user)

    logger.info("User %s upgraded to host", current_user.id)
    return Envelope(
        message="Successfully upgraded to host account",
        data=AuthData(
            user=UserResponse.model_validate(current_user),
            tokens=TokenResponse(**create_token_pair(str(current_user.id), current_user.role)),
        ),
    )
