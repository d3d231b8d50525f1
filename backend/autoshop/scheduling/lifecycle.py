"""Appointment status state machine.

    scheduled -> confirmed -> in-progress -> completed

``cancelled`` and ``no-show`` exit from the open states. ``completed``,
``cancelled`` and ``no-show`` are terminal.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Union

from autoshop.scheduling.errors import TransitionError, ValidationError
from autoshop.utils.logging import AppointmentLogger


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class AppointmentPriority(str, Enum):
    """Visual emphasis and list tie-breaking; never affects scheduling."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.IN_PROGRESS: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

REQUIRED_FIELDS = ("scheduled_date", "scheduled_time", "service_type")

StatusLike = Union[AppointmentStatus, str]


def coerce_status(value: StatusLike) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown appointment status: {value!r}") from None


def can_transition(from_status: StatusLike, to_status: StatusLike) -> bool:
    return coerce_status(to_status) in ALLOWED_TRANSITIONS[coerce_status(from_status)]


def is_terminal(status: StatusLike) -> bool:
    return not ALLOWED_TRANSITIONS[coerce_status(status)]


def check_required_fields(appointment: Any) -> None:
    missing = [name for name in REQUIRED_FIELDS if not getattr(appointment, name, None)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def validate_transition(appointment: Any, to_status: StatusLike, force: bool = False) -> AppointmentStatus:
    """Check that ``appointment`` may move to ``to_status``.

    Required fields are always enforced. A transition outside the table
    raises :class:`TransitionError` unless ``force`` is set, which is the
    manual-correction escape hatch and gets logged.
    """
    check_required_fields(appointment)
    current = coerce_status(appointment.status)
    target = coerce_status(to_status)

    if target not in ALLOWED_TRANSITIONS[current]:
        if not force:
            raise TransitionError(current.value, target.value)
        AppointmentLogger(getattr(appointment, "id", None)).transition_forced(
            current.value, target.value
        )
    return target


def transition_side_effects(
    appointment: Any,
    to_status: StatusLike,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Fields stamped when entering a status. Returns a patch; never mutates."""
    target = coerce_status(to_status)
    now = now or datetime.now()
    patch: Dict[str, Any] = {}

    if target == AppointmentStatus.IN_PROGRESS:
        patch["started_at"] = now
    elif target == AppointmentStatus.COMPLETED:
        patch["completed_at"] = now
        started_at = getattr(appointment, "started_at", None)
        if started_at is not None:
            if started_at.tzinfo is not None and now.tzinfo is None:
                started_at = started_at.replace(tzinfo=None)
            patch["actual_duration"] = max(0, int((now - started_at).total_seconds() // 60))
    return patch
