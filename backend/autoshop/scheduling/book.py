"""Caller-owned in-memory appointment collection for interactive clients.

Every record carries a state tag:

* ``pending``   - a write for it is in flight; the record still shows its
  last committed values.
* ``committed`` - confirmed by the backing store.
* ``local``     - kept in the local fallback store because the backing store
  was unreachable when it was created.

Reads (calendar, search) always work on a snapshot so an update landing
mid-render never changes a grid that is being built.
"""

import itertools
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from autoshop.schemas.appointment import AppointmentCreate, AppointmentResponse, AppointmentUpdate
from autoshop.scheduling.calendar_grid import DayBucket, ViewMode, build_grid
from autoshop.scheduling.conflicts import (
    NON_BLOCKING_STATUSES,
    SlotCandidate,
    blocking_appointments,
    find_conflict,
)
from autoshop.scheduling.errors import (
    AppointmentNotFoundError,
    ConflictError,
    TransportError,
    ValidationError,
)
from autoshop.scheduling.repository import InMemoryAppointmentRepository
from autoshop.scheduling.search import AppointmentFilter, filter_appointments, sort_for_list, status_counts
from autoshop.scheduling.service import SchedulingService
from autoshop.utils.logging import get_logger

logger = get_logger("scheduling.book")


class RecordState(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    LOCAL = "local"


@dataclass(frozen=True)
class BookEntry:
    record: AppointmentResponse
    state: RecordState
    # State to return to when an in-flight write fails.
    settled_state: RecordState


class AppointmentBook:
    def __init__(self, service: SchedulingService, fallback: Optional[SchedulingService] = None):
        self.service = service
        # Local ids count down from -1 so they never collide with store ids.
        self.fallback = fallback or SchedulingService(
            InMemoryAppointmentRepository(ids=itertools.count(-1, -1)),
            strict_transitions=service.strict_transitions,
            block_on_conflict=service.block_on_conflict,
        )
        self._entries: Dict[int, BookEntry] = {}
        self._pending_creates: Dict[str, AppointmentCreate] = {}

    # ---------------- reads ----------------

    def snapshot(self) -> Tuple[AppointmentResponse, ...]:
        return tuple(entry.record for entry in list(self._entries.values()))

    def state_of(self, appointment_id: int) -> RecordState:
        return self._entry(appointment_id).state

    @property
    def pending_count(self) -> int:
        in_flight = sum(1 for entry in self._entries.values() if entry.state == RecordState.PENDING)
        return in_flight + len(self._pending_creates)

    def calendar(
        self,
        reference_date: date,
        view_mode: ViewMode,
        filters: Optional[AppointmentFilter] = None,
        today: Optional[date] = None,
    ) -> List[DayBucket]:
        return build_grid(reference_date, view_mode, filter_appointments(self.snapshot(), filters), today=today)

    def search(self, filters: Optional[AppointmentFilter] = None) -> List[AppointmentResponse]:
        """Matching records in list order (date, time, most urgent first)."""
        return sort_for_list(filter_appointments(self.snapshot(), filters))

    def check_conflict(self, candidate: SlotCandidate) -> Optional[AppointmentResponse]:
        return find_conflict(candidate, blocking_appointments(self.snapshot()))

    def status_counts(self, filters: Optional[AppointmentFilter] = None) -> Dict[str, int]:
        """Per-status totals for dashboard counters; every status is present."""
        return status_counts(filter_appointments(self.snapshot(), filters))

    # ---------------- writes ----------------

    async def hydrate(
        self,
        status: Optional[str] = None,
        technician_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        """Reload committed records from the store. Local and in-flight entries are kept."""
        records = await self.service.repository.list_appointments(
            status=status,
            technician_id=technician_id,
            date_from=date_from,
            date_to=date_to,
        )
        entries = {
            record.id: BookEntry(record, RecordState.COMMITTED, RecordState.COMMITTED)
            for record in records
        }
        for appointment_id, entry in self._entries.items():
            if entry.state != RecordState.COMMITTED:
                entries[appointment_id] = entry
        self._entries = entries
        logger.info("appointment_book_hydrated", committed=len(records), total=len(entries))
        return len(records)

    async def create(self, candidate: AppointmentCreate, force: bool = False) -> AppointmentResponse:
        key = candidate.model_dump_json()
        if key in self._pending_creates:
            raise ValidationError("An identical appointment request is already pending")

        self._pending_creates[key] = candidate
        try:
            try:
                record = await self.service.create(candidate, force=force)
                state = RecordState.COMMITTED
            except TransportError as e:
                logger.warning("appointment_store_unavailable_saving_locally", error=str(e))
                self._guard_local_conflict(candidate, force)
                record = await self.fallback.create(candidate, force=force)
                state = RecordState.LOCAL
        finally:
            self._pending_creates.pop(key, None)

        self._entries[record.id] = BookEntry(record, state, state)
        return record

    async def update(
        self,
        appointment_id: int,
        patch: Union[AppointmentUpdate, Dict[str, Any]],
        force: bool = False,
    ) -> AppointmentResponse:
        """Replace the record only once the store confirms the update."""
        entry = self._begin_write(appointment_id)
        service = self.fallback if entry.settled_state == RecordState.LOCAL else self.service
        try:
            record = await service.update(appointment_id, patch, force=force)
        except BaseException:
            self._entries[appointment_id] = entry
            raise
        self._entries[appointment_id] = BookEntry(record, entry.settled_state, entry.settled_state)
        return record

    async def delete(self, appointment_id: int) -> None:
        """Remove the record only once the store confirms the delete."""
        entry = self._begin_write(appointment_id)
        service = self.fallback if entry.settled_state == RecordState.LOCAL else self.service
        try:
            await service.delete(appointment_id)
        except BaseException:
            self._entries[appointment_id] = entry
            raise
        del self._entries[appointment_id]

    async def push_local(self) -> int:
        """Send locally stored records to the store once it is reachable again.

        Stops at the first transport failure; records already pushed stay
        committed. Returns how many records were pushed.
        """
        pushed = 0
        local_ids = [
            appointment_id
            for appointment_id, entry in self._entries.items()
            if entry.state == RecordState.LOCAL
        ]
        for local_id in local_ids:
            entry = self._begin_write(local_id)
            candidate = AppointmentCreate.model_validate(entry.record.model_dump())
            try:
                record = await self.service.create(candidate)
            except BaseException:
                self._entries[local_id] = entry
                raise
            await self.fallback.delete(local_id)
            del self._entries[local_id]
            self._entries[record.id] = BookEntry(record, RecordState.COMMITTED, RecordState.COMMITTED)
            pushed += 1
        return pushed

    # ---------------- helpers ----------------

    def _entry(self, appointment_id: int) -> BookEntry:
        try:
            return self._entries[appointment_id]
        except KeyError:
            raise AppointmentNotFoundError(appointment_id) from None

    def _begin_write(self, appointment_id: int) -> BookEntry:
        entry = self._entry(appointment_id)
        if entry.state == RecordState.PENDING:
            raise ValidationError(f"A change to appointment {appointment_id} is already pending")
        self._entries[appointment_id] = replace(entry, state=RecordState.PENDING)
        return entry

    def _guard_local_conflict(self, candidate: AppointmentCreate, force: bool) -> None:
        if candidate.status.value in NON_BLOCKING_STATUSES:
            return
        conflict = self.check_conflict(
            SlotCandidate(
                technician_id=candidate.technician_id,
                date=candidate.scheduled_date,
                time=candidate.scheduled_time,
                duration=candidate.estimated_duration,
            )
        )
        if conflict is not None and self.service.block_on_conflict and not force:
            raise ConflictError(
                f"Technician {candidate.technician_id} is already booked (appointment {conflict.id})",
                conflict=conflict,
            )
