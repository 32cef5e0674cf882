"""Authorization policies: one ``(actor, resource) -> bool`` function per operation.

Routers and services call :func:`require` with the policy result so every
role check lives here rather than inline in handlers.
"""

from stayfinder.errors import Forbidden
from stayfinder.models.booking import Booking
from stayfinder.models.listing import Listing
from stayfinder.models.review import Review
from stayfinder.models.user import User


def _is_party(actor: User, booking: Booking) -> bool:
    return actor.id in (booking.guest_id, booking.host_id)


def can_view_booking(actor: User, booking: Booking) -> bool:
    return _is_party(actor, booking) or actor.is_admin


def can_confirm_booking(actor: User, booking: Booking) -> bool:
    return actor.id == booking.host_id


def can_cancel_booking(actor: User, booking: Booking) -> bool:
    return _is_party(actor, booking) or actor.is_admin


def can_review_booking(actor: User, booking: Booking) -> bool:
    return actor.id == booking.guest_id


def can_create_listing(actor: User) -> bool:
    return actor.role in ("host", "admin")


def can_manage_listing(actor: User, listing: Listing) -> bool:
    return actor.id == listing.host_id or actor.is_admin


def can_respond_to_review(actor: User, review: Review) -> bool:
    return actor.id == review.host_id


def require(allowed: bool, message: str | None = None) -> None:
    """Raise ``Forbidden`` with ``message`` unless ``allowed``."""
    if not allowed:
        raise Forbidden(message)
