"""FastAPI authentication dependencies for route protection."""

import uuid
from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stayfinder.auth.jwt import ACCESS, decode_token
from stayfinder.database import get_db
from stayfinder.models.user import User

# Missing credentials are reported by get_current_user, not by the scheme
_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extract and validate the Bearer token, then return the authenticated user.

    Raises:
        HTTPException 401: If the token is missing, invalid, expired, of the
            wrong type, or its user does not exist or is deactivated.
    """
    if credentials is None:
        raise _unauthorized("Access denied. No token provided.")

    try:
        payload = decode_token(credentials.credentials, expected_type=ACCESS)
    except ExpiredSignatureError:
        raise _unauthorized("Token expired.") from None
    except JWTError:
        raise _unauthorized("Invalid token.") from None

    sub: str | None = payload.get("sub")
    if sub is None:
        raise _unauthorized("Invalid token.")

    try:
        user_id = uuid.UUID(sub)
    except ValueError:
        raise _unauthorized("Invalid token.") from None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise _unauthorized("Invalid token. User not found.")

    if not user.is_active:
        raise _unauthorized("Account is deactivated.")

    return user


def require_role(*roles: str) -> Callable[..., Awaitable[User]]:
    """Build a dependency that only lets users with one of ``roles`` through.

    Usage::

        @router.post("", dependencies=[Depends(require_role("host", "admin"))])
    """

    async def _check_role(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. {' or '.join(r.capitalize() for r in roles)} privileges required.",
            )
        return user

    return _check_role
