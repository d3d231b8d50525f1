"""Technician double-booking checks."""

from dataclasses import dataclass, replace
from datetime import date, time
from typing import Any, Iterable, List, Optional

from autoshop.scheduling.lifecycle import AppointmentStatus
from autoshop.scheduling.time_slot import TimeSlot, parse_date, parse_time, validate_duration

# Statuses that no longer hold the technician's time.
NON_BLOCKING_STATUSES = frozenset({AppointmentStatus.CANCELLED.value, AppointmentStatus.NO_SHOW.value})


@dataclass(frozen=True)
class SlotCandidate:
    technician_id: Optional[int]
    date: date
    time: time
    duration: int
    exclude_id: Optional[Any] = None

    def __post_init__(self):
        object.__setattr__(self, "date", parse_date(self.date))
        object.__setattr__(self, "time", parse_time(self.time))
        object.__setattr__(self, "duration", validate_duration(self.duration))

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(self.date, self.time, self.duration)

    @classmethod
    def from_appointment(cls, appointment: Any, **overrides: Any) -> "SlotCandidate":
        """Candidate for re-checking a stored record, with patched fields applied.

        ``overrides`` uses record field names (``scheduled_date``,
        ``scheduled_time``, ``estimated_duration``, ``technician_id``).
        """
        candidate = cls(
            technician_id=appointment.technician_id,
            date=appointment.scheduled_date,
            time=appointment.scheduled_time,
            duration=appointment.estimated_duration,
            exclude_id=appointment.id,
        )
        mapping = {
            "technician_id": "technician_id",
            "scheduled_date": "date",
            "scheduled_time": "time",
            "estimated_duration": "duration",
        }
        changes = {mapping[k]: v for k, v in overrides.items() if k in mapping}
        return replace(candidate, **changes) if changes else candidate


def holds_slot(appointment: Any) -> bool:
    """Whether the appointment still occupies its technician's time."""
    status = getattr(appointment, "status", None)
    return getattr(status, "value", status) not in NON_BLOCKING_STATUSES


def blocking_appointments(existing: Iterable[Any]) -> List[Any]:
    return [appointment for appointment in existing if holds_slot(appointment)]


def _iter_conflicts(candidate: SlotCandidate, existing: Iterable[Any]):
    if candidate.technician_id is None:
        return
    slot = candidate.slot
    for appointment in existing:
        if candidate.exclude_id is not None and appointment.id == candidate.exclude_id:
            continue
        if appointment.technician_id is None or appointment.technician_id != candidate.technician_id:
            continue
        if parse_date(appointment.scheduled_date) != candidate.date:
            continue
        if slot.overlaps(TimeSlot.for_appointment(appointment)):
            yield appointment


def find_conflict(candidate: SlotCandidate, existing: Iterable[Any]) -> Optional[Any]:
    """First appointment, in input order, that the candidate would double-book.

    Status is not considered; callers drop records that no longer hold their
    slot (see :func:`blocking_appointments`) before calling.
    """
    return next(_iter_conflicts(candidate, existing), None)


def find_conflicts(candidate: SlotCandidate, existing: Iterable[Any]) -> List[Any]:
    return list(_iter_conflicts(candidate, existing))
