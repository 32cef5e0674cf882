"""Shared API dependencies: single import point for all routers.

Re-exports database session, authentication, and pagination dependencies so
that router modules can import everything they need from one place::

    from stayfinder.api.deps import get_db, get_current_user, Pagination
"""

import math
from dataclasses import dataclass

from fastapi import Query

from stayfinder.auth.dependencies import get_current_user, require_role
from stayfinder.config import settings
from stayfinder.database import get_db


@dataclass(frozen=True)
class Pagination:
    """Page-number pagination parameters."""

    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def summary(self, total: int) -> dict:
        pages = math.ceil(total / self.limit) if total else 0
        return {
            "current": self.page,
            "pages": pages,
            "total": total,
            "has_next": self.page < pages,
            "has_prev": self.page > 1,
        }


def get_pagination(
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(
        settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description="Items per page",
    ),
) -> Pagination:
    return Pagination(page=page, limit=limit)


__all__ = [
    "Pagination",
    "get_db",
    "get_current_user",
    "get_pagination",
    "require_role",
]
