"""Utils package initialization."""

from autoshop.utils.logging import AppointmentLogger, get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "AppointmentLogger",
]
