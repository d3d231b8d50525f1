"""Schemas package initialization."""

from autoshop.schemas.appointment import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStats,
    AppointmentUpdate,
    CalendarResponse,
    ConflictCheckRequest,
    ConflictCheckResponse,
    DayBucketResponse,
    HourBucketResponse,
    StatusChangeRequest,
)
from autoshop.schemas.technician import TechnicianCreate, TechnicianResponse

__all__ = [
    # Appointment
    "AppointmentCreate",
    "AppointmentUpdate",
    "AppointmentResponse",
    "AppointmentListResponse",
    "AppointmentStats",
    "StatusChangeRequest",
    "ConflictCheckRequest",
    "ConflictCheckResponse",
    # Calendar
    "CalendarResponse",
    "DayBucketResponse",
    "HourBucketResponse",
    # Technician
    "TechnicianCreate",
    "TechnicianResponse",
]
