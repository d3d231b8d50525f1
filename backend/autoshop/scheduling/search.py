"""Client-side search and filtering for appointment list and calendar views."""

from collections import Counter
from dataclasses import dataclass
from datetime import time
from typing import Any, Dict, Iterable, List, Optional, Union

from autoshop.scheduling.lifecycle import AppointmentPriority, AppointmentStatus

ALL = "all"

SEARCH_FIELDS = (
    "customer_name",
    "vehicle_info",
    "service_type",
    "technician_name",
    "notes",
    "description",
)

# Lower sorts first.
PRIORITY_RANK: Dict[str, int] = {
    AppointmentPriority.URGENT.value: 0,
    AppointmentPriority.HIGH.value: 1,
    AppointmentPriority.MEDIUM.value: 2,
    AppointmentPriority.LOW.value: 3,
}


def _is_unset(value: Any) -> bool:
    return value is None or value == "" or value == ALL


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


def _text(value: Any) -> Optional[str]:
    """Searchable text of a field; catalog references contribute their name."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        name = value.get("name")
    else:
        name = getattr(value, "name", None)
    return name if isinstance(name, str) else None


def matches(appointment: Any, query: Optional[str]) -> bool:
    needle = (query or "").strip().lower()
    if not needle:
        return True
    for field in SEARCH_FIELDS:
        text = _text(getattr(appointment, field, None))
        if text and needle in text.lower():
            return True
    return False


@dataclass(frozen=True)
class AppointmentFilter:
    status: Union[AppointmentStatus, str, None] = ALL
    technician_id: Union[int, str, None] = ALL
    query: Optional[str] = ""

    def accepts(self, appointment: Any) -> bool:
        if not _is_unset(self.status) and _plain(appointment.status) != _plain(self.status):
            return False
        if not _is_unset(self.technician_id):
            assigned = appointment.technician_id
            if assigned is None or str(assigned) != str(self.technician_id):
                return False
        return matches(appointment, self.query)


def filter_appointments(appointments: Iterable[Any], filters: Optional[AppointmentFilter] = None) -> List[Any]:
    filters = filters or AppointmentFilter()
    return [appointment for appointment in appointments if filters.accepts(appointment)]


def sort_for_list(appointments: Iterable[Any]) -> List[Any]:
    """Order by date and time, most urgent first within the same slot."""
    def key(appointment: Any):
        return (
            appointment.scheduled_date,
            appointment.scheduled_time or time.min,
            PRIORITY_RANK.get(_plain(appointment.priority), len(PRIORITY_RANK)),
        )
    return sorted(appointments, key=key)


def status_counts(appointments: Iterable[Any]) -> Dict[str, int]:
    counts = Counter(_plain(appointment.status) for appointment in appointments)
    return {status.value: counts.get(status.value, 0) for status in AppointmentStatus}
