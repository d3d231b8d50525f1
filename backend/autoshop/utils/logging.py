"""Structured logging utilities."""

import logging
import sys
from typing import Any, Optional

import structlog


def setup_logging(debug: bool = False) -> None:
    """Configure structured logging for the application."""

    log_level = logging.DEBUG if debug else logging.INFO

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance for the given name."""
    return structlog.get_logger(name)


class AppointmentLogger:
    """Specialized logger for appointment lifecycle events."""

    def __init__(self, appointment_id: Optional[int]):
        self.logger = get_logger("scheduling.appointment")
        self.appointment_id = appointment_id

    def log(self, event: str, **kwargs: Any) -> None:
        """Log an appointment event."""
        self.logger.info(event, appointment_id=self.appointment_id, **kwargs)

    def status_changed(self, from_status: str, to_status: str) -> None:
        """Log an accepted status transition."""
        self.logger.info(
            "appointment_status_changed",
            appointment_id=self.appointment_id,
            from_status=from_status,
            to_status=to_status,
        )

    def transition_forced(self, from_status: str, to_status: str) -> None:
        """Log a transition outside the lifecycle table that was forced through."""
        self.logger.warning(
            "appointment_transition_forced",
            appointment_id=self.appointment_id,
            from_status=from_status,
            to_status=to_status,
        )

    def conflict_detected(self, conflict_id: Optional[int], blocked: bool) -> None:
        """Log a technician slot overlap."""
        self.logger.warning(
            "appointment_conflict_detected",
            appointment_id=self.appointment_id,
            conflict_id=conflict_id,
            blocked=blocked,
        )
