"""Scheduling error taxonomy."""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for scheduling failures."""


class ValidationError(SchedulingError, ValueError):
    """A required field is missing or a value is malformed.

    Subclasses ``ValueError`` so it can be raised from pydantic validators.
    """


class ConflictError(SchedulingError):
    """The candidate slot overlaps another appointment of the same technician."""

    def __init__(self, message: str, conflict: Any = None):
        super().__init__(message)
        self.conflict = conflict


class TransitionError(SchedulingError):
    """A status change outside the lifecycle table."""

    def __init__(self, from_status: str, to_status: str):
        super().__init__(f"Cannot change status from '{from_status}' to '{to_status}'")
        self.from_status = from_status
        self.to_status = to_status


class AppointmentNotFoundError(SchedulingError):
    def __init__(self, appointment_id: Any):
        super().__init__(f"Appointment {appointment_id} not found")
        self.appointment_id = appointment_id


class TechnicianNotFoundError(SchedulingError):
    def __init__(self, technician_id: Any):
        super().__init__(f"Technician {technician_id} not found")
        self.technician_id = technician_id


class TransportError(SchedulingError):
    """The backing store could not be reached or failed to answer."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
