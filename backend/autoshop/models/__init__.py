"""Models package initialization."""

from autoshop.models.appointment import Appointment
from autoshop.models.technician import Technician
from autoshop.scheduling.lifecycle import AppointmentPriority, AppointmentStatus

__all__ = [
    # Appointment
    "Appointment",
    "AppointmentStatus",
    "AppointmentPriority",
    # Technician
    "Technician",
]
