"""Response envelope and shared schema pieces.

Every response body has the shape ``{"status", "message", "data"}``.
"""

import uuid
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


def choice_pattern(values: tuple[str, ...]) -> str:
    """Regex accepting exactly one of ``values``, for ``Field(pattern=...)``."""
    return f"^({'|'.join(values)})$"


class Envelope(BaseModel, Generic[T]):
    """Success/error wrapper around a response payload."""

    status: Literal["success", "error"] = "success"
    message: str | None = None
    data: T | None = None


class ErrorEnvelope(BaseModel):
    """Body returned for every failed request."""

    status: Literal["error"] = "error"
    message: str
    error: str | None = None


class PaginationInfo(BaseModel):
    current: int
    pages: int
    total: int
    has_next: bool
    has_prev: bool


class UserSummary(BaseModel):
    """Public identity of a guest or host, attached to bookings and listings."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)
