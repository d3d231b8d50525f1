"""Appointment scheduling core.

The pure building blocks are re-exported here. The store-facing pieces
(``repository``, ``service``, ``book``) depend on the ORM models and are
imported from their own modules.
"""

from autoshop.scheduling.calendar_grid import (
    DayBucket,
    HourBucket,
    ViewMode,
    build_grid,
    grid_range,
    shift_reference,
)
from autoshop.scheduling.conflicts import (
    SlotCandidate,
    blocking_appointments,
    find_conflict,
    find_conflicts,
    holds_slot,
)
from autoshop.scheduling.errors import (
    AppointmentNotFoundError,
    ConflictError,
    SchedulingError,
    TechnicianNotFoundError,
    TransitionError,
    TransportError,
    ValidationError,
)
from autoshop.scheduling.lifecycle import (
    ALLOWED_TRANSITIONS,
    AppointmentPriority,
    AppointmentStatus,
    can_transition,
    is_terminal,
    validate_transition,
)
from autoshop.scheduling.search import AppointmentFilter, filter_appointments, matches
from autoshop.scheduling.time_slot import TimeSlot, format_time_12h, overlaps

__all__ = [
    # Time slots
    "TimeSlot",
    "overlaps",
    "format_time_12h",
    # Calendar
    "ViewMode",
    "DayBucket",
    "HourBucket",
    "build_grid",
    "grid_range",
    "shift_reference",
    # Conflicts
    "SlotCandidate",
    "find_conflict",
    "find_conflicts",
    "holds_slot",
    "blocking_appointments",
    # Lifecycle
    "AppointmentStatus",
    "AppointmentPriority",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "is_terminal",
    "validate_transition",
    # Search
    "AppointmentFilter",
    "filter_appointments",
    "matches",
    # Errors
    "SchedulingError",
    "ValidationError",
    "ConflictError",
    "TransitionError",
    "TransportError",
    "AppointmentNotFoundError",
    "TechnicianNotFoundError",
]
