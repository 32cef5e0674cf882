"""Auth API router: register, login, refresh, me, logout."""

import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stayfinder.api.deps import get_current_user, get_db
from stayfinder.auth.jwt import REFRESH, create_token_pair, decode_token
from stayfinder.auth.passwords import hash_password, verify_password
from stayfinder.models.user import User
from stayfinder.schemas.auth import (
    AuthData,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserData,
    UserResponse,
)
from stayfinder.schemas.common import Envelope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _invalid_credentials(detail: str = "Invalid email or password") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _auth_data(user: User) -> AuthData:
    return AuthData(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**create_token_pair(str(user.id), user.role)),
    )


@router.post("/register", response_model=Envelope[AuthData], status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)) -> Envelope[AuthData]:
    """Register a new guest or host with email and password."""
    email = body.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists",
        )

    user = User(
        email=email,
        hashed_password=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("Registered %s %s", user.role, user.id)
    return Envelope(message="User registered successfully", data=_auth_data(user))


@router.post("/login", response_model=Envelope[AuthData])
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)) -> Envelope[AuthData]:
    """Authenticate with email and password."""
    result = await db.execute(select(User).where(User.email == body.email.lower()))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.hashed_password):
        raise _invalid_credentials()

    if not user.is_active:
        raise _invalid_credentials("Account is deactivated.")

    user.last_login = datetime.now(timezone.utc).replace(tzinfo=None)
    db.add(user)
    await db.flush()
    await db.refresh(user)

    return Envelope(message="Login successful", data=_auth_data(user))


@router.post("/refresh", response_model=Envelope[TokenResponse])
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)) -> Envelope[TokenResponse]:
    """Exchange a valid refresh token for a new token pair."""
    try:
        payload = decode_token(body.refresh_token, expected_type=REFRESH)
    except JWTError:
        raise _invalid_credentials("Invalid or expired refresh token") from None

    try:
        user_id = uuid.UUID(payload.get("sub") or "")
    except ValueError:
        raise _invalid_credentials("Invalid token payload") from None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise _invalid_credentials("User not found or inactive")

    tokens = create_token_pair(str(user.id), user.role)
    return Envelope(data=TokenResponse(**tokens))


@router.get("/me", response_model=Envelope[UserData])
async def me(current_user: User = Depends(get_current_user)) -> Envelope[UserData]:
    """Return the currently authenticated user's profile."""
    return Envelope(data=UserData(user=UserResponse.model_validate(current_user)))


@router.post("/logout", response_model=Envelope[None])
async def logout(current_user: User = Depends(get_current_user)) -> Envelope[None]:
    """Acknowledge a logout. Tokens are stateless, so the client discards them."""
    logger.info("User %s logged out", current_user.id)
    return Envelope(message="Logged out successfully")
