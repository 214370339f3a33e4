"""Appointment status transitions"""

from ...errors import AuthorizationError, InvalidStatusTransition, ValidationError
from ...models import APPOINTMENT_STATUSES

BUSINESS = "business"
CLIENT = "client"

# current status -> target status -> actors allowed to make the change
TRANSITIONS = {
    "pending": {"confirmed": {BUSINESS}, "cancelled": {BUSINESS, CLIENT}},
    "confirmed": {"cancelled": {BUSINESS, CLIENT}},
    "cancelled": {},
}


def check_transition(current: str, target: str, actor: str) -> None:
    """Raise unless ``actor`` may move an appointment from ``current`` to ``target``"""
    if target not in APPOINTMENT_STATUSES:
        raise ValidationError(f"Unknown status '{target}'")
    if actor == CLIENT and target == "confirmed":
        raise AuthorizationError("Only the business can confirm an appointment")
    allowed = TRANSITIONS.get(current, {})
    if target not in allowed:
        raise InvalidStatusTransition(f"Cannot change status from {current} to {target}")
    if actor not in allowed[target]:
        raise AuthorizationError(f"Not allowed to change status from {current} to {target}")


def can_reschedule(current: str) -> bool:
    return current != "cancelled"
