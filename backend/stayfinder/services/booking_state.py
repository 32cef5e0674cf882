"""Booking status graph.

    pending ──► confirmed ──► completed
       │            │             │
       └──► cancelled ◄──┘        │
                 │                │
                 └──► refunded ◄──┘

``cancelled`` and ``completed`` accept no further confirmation or
cancellation; only ``refunded`` may follow them.
"""

from stayfinder.errors import InvalidStateTransition

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"
REFUNDED = "refunded"

TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({CANCELLED, COMPLETED}),
    CANCELLED: frozenset({REFUNDED}),
    COMPLETED: frozenset({REFUNDED}),
    REFUNDED: frozenset(),
}

_FAILURE_MESSAGES = {
    CONFIRMED: "Only pending bookings can be confirmed",
    CANCELLED: "Booking cannot be cancelled",
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str) -> None:
    """Raise ``InvalidStateTransition`` unless ``current -> target`` is an edge of the graph."""
    if not can_transition(current, target):
        raise InvalidStateTransition(current, target, _FAILURE_MESSAGES.get(target))
