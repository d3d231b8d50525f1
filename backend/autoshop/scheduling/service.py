"""Scheduling operations over an injected appointment store.

The grid, conflict, lifecycle and search modules are pure; this service
fetches the snapshots they need from the repository, applies them, and
only writes once every check has passed.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Union

from autoshop.config import settings
from autoshop.schemas.appointment import AppointmentCreate, AppointmentResponse, AppointmentUpdate
from autoshop.schemas.technician import TechnicianResponse
from autoshop.scheduling.calendar_grid import DayBucket, ViewMode, build_grid, grid_range
from autoshop.scheduling.conflicts import (
    NON_BLOCKING_STATUSES,
    SlotCandidate,
    blocking_appointments,
    find_conflict,
)
from autoshop.scheduling.errors import ConflictError, TechnicianNotFoundError, ValidationError
from autoshop.scheduling.lifecycle import (
    AppointmentStatus,
    check_required_fields,
    coerce_status,
    transition_side_effects,
    validate_transition,
)
from autoshop.scheduling.repository import AppointmentRepository
from autoshop.scheduling.search import AppointmentFilter, filter_appointments
from autoshop.scheduling.time_slot import validate_duration
from autoshop.utils.logging import AppointmentLogger

CREATE_REQUIRED_FIELDS = ("customer_id", "vehicle_id")
# Columns a patch may not set to null.
NON_NULLABLE_FIELDS = ("customer_id", "customer_name", "vehicle_id", "vehicle_info", "priority")
SLOT_FIELDS = ("technician_id", "scheduled_date", "scheduled_time", "estimated_duration")


class SchedulingService:
    def __init__(
        self,
        repository: AppointmentRepository,
        strict_transitions: Optional[bool] = None,
        block_on_conflict: Optional[bool] = None,
    ):
        self.repository = repository
        self.strict_transitions = (
            settings.strict_status_transitions if strict_transitions is None else strict_transitions
        )
        self.block_on_conflict = settings.block_on_conflict if block_on_conflict is None else block_on_conflict

    async def check_conflict(self, candidate: SlotCandidate) -> Optional[AppointmentResponse]:
        """First appointment the candidate would double-book.

        Cancelled and no-show records have given their time back and are
        left out.
        """
        if candidate.technician_id is None:
            return None
        existing = await self.repository.list_appointments(
            technician_id=candidate.technician_id,
            date_from=candidate.date,
            date_to=candidate.date,
        )
        return find_conflict(candidate, blocking_appointments(existing))

    async def _ensure_technician(self, technician_id: Optional[int]) -> None:
        if technician_id is not None and not await self.repository.technician_exists(technician_id):
            raise TechnicianNotFoundError(technician_id)

    async def _guard_conflict(self, candidate: SlotCandidate, appointment_id: Optional[int], force: bool) -> None:
        conflict = await self.check_conflict(candidate)
        if conflict is None:
            return
        blocked = self.block_on_conflict and not force
        AppointmentLogger(appointment_id).conflict_detected(conflict.id, blocked)
        if blocked:
            raise ConflictError(
                f"Technician {candidate.technician_id} is already booked at "
                f"{conflict.scheduled_time_display} on {conflict.scheduled_date.isoformat()} "
                f"(appointment {conflict.id})",
                conflict=conflict,
            )

    async def create(self, candidate: AppointmentCreate, force: bool = False) -> AppointmentResponse:
        missing = [name for name in CREATE_REQUIRED_FIELDS if not getattr(candidate, name, None)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        check_required_fields(candidate)
        validate_duration(candidate.estimated_duration)
        await self._ensure_technician(candidate.technician_id)

        if coerce_status(candidate.status).value not in NON_BLOCKING_STATUSES:
            await self._guard_conflict(
                SlotCandidate(
                    technician_id=candidate.technician_id,
                    date=candidate.scheduled_date,
                    time=candidate.scheduled_time,
                    duration=candidate.estimated_duration,
                ),
                None,
                force,
            )

        record = await self.repository.create_appointment(candidate, force=force)
        AppointmentLogger(record.id).log(
            "appointment_created",
            status=record.status.value,
            technician_id=record.technician_id,
            scheduled_date=record.scheduled_date.isoformat(),
        )
        return record

    async def update(
        self,
        appointment_id: int,
        patch: Union[AppointmentUpdate, Dict[str, Any]],
        force: bool = False,
    ) -> AppointmentResponse:
        """Apply a partial update; nothing is written if a check fails."""
        if isinstance(patch, AppointmentUpdate):
            changes = patch.model_dump(exclude_unset=True)
        else:
            changes = dict(AppointmentUpdate.model_validate(patch).model_dump(exclude_unset=True))

        current = await self.repository.get_appointment(appointment_id)
        cleared = [name for name in NON_NULLABLE_FIELDS if name in changes and changes[name] is None]
        if cleared:
            raise ValidationError(f"Fields cannot be cleared: {', '.join(cleared)}")
        merged = current.model_copy(update=changes)
        check_required_fields(merged)
        validate_duration(merged.estimated_duration)
        if changes.get("technician_id") not in (None, current.technician_id):
            await self._ensure_technician(changes["technician_id"])

        log = AppointmentLogger(appointment_id)
        status_changed = False
        if changes.get("status") is None or coerce_status(changes["status"]) == current.status:
            changes.pop("status", None)
        else:
            target = validate_transition(
                current, changes["status"], force=force or not self.strict_transitions
            )
            changes["status"] = target
            changes.update(transition_side_effects(current, target))
            status_changed = True

        final_status = coerce_status(changes.get("status", current.status)).value
        slot_changed = any(
            field in changes and changes[field] != getattr(current, field) for field in SLOT_FIELDS
        )
        reactivated = current.status.value in NON_BLOCKING_STATUSES and final_status not in NON_BLOCKING_STATUSES
        if (slot_changed or reactivated) and final_status not in NON_BLOCKING_STATUSES:
            candidate = SlotCandidate.from_appointment(
                current, **{field: changes[field] for field in SLOT_FIELDS if field in changes}
            )
            await self._guard_conflict(candidate, appointment_id, force)

        if not changes:
            return current

        record = await self.repository.update_appointment(appointment_id, changes, force=force)
        if status_changed:
            log.status_changed(current.status.value, record.status.value)
        log.log("appointment_updated", fields=sorted(changes))
        return record

    async def change_status(
        self,
        appointment_id: int,
        to_status: Union[AppointmentStatus, str],
        force: bool = False,
    ) -> AppointmentResponse:
        return await self.update(appointment_id, {"status": coerce_status(to_status)}, force=force)

    async def delete(self, appointment_id: int) -> None:
        await self.repository.delete_appointment(appointment_id)
        AppointmentLogger(appointment_id).log("appointment_deleted")

    async def calendar(
        self,
        reference_date: date,
        view_mode: ViewMode,
        filters: Optional[AppointmentFilter] = None,
        today: Optional[date] = None,
    ) -> List[DayBucket]:
        start, end = grid_range(reference_date, view_mode)
        records = await self.repository.list_appointments(date_from=start, date_to=end)
        return build_grid(reference_date, view_mode, filter_appointments(records, filters), today=today)

    async def search(
        self,
        filters: Optional[AppointmentFilter] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[AppointmentResponse]:
        records = await self.repository.list_appointments(date_from=date_from, date_to=date_to)
        return filter_appointments(records, filters)

    async def list_technicians(self, active_only: bool = False) -> List[TechnicianResponse]:
        return await self.repository.list_technicians(active_only=active_only)
