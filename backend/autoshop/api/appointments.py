from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import and_, case, func, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from autoshop.database import get_db
from autoshop.models.appointment import Appointment
from autoshop.models.technician import Technician
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
    StatusChangeRequest,
)
from autoshop.scheduling.calendar_grid import ViewMode, grid_range, shift_reference
from autoshop.scheduling.conflicts import SlotCandidate
from autoshop.scheduling.errors import (
    AppointmentNotFoundError,
    ConflictError,
    SchedulingError,
    TechnicianNotFoundError,
    TransitionError,
)
from autoshop.scheduling.lifecycle import AppointmentStatus
from autoshop.scheduling.repository import SqlAppointmentRepository
from autoshop.scheduling.search import ALL, PRIORITY_RANK, AppointmentFilter
from autoshop.scheduling.service import SchedulingService

router = APIRouter()


def get_scheduling_service(db: AsyncSession = Depends(get_db)) -> SchedulingService:
    return SchedulingService(SqlAppointmentRepository(db))


def _http_error(error: SchedulingError) -> HTTPException:
    if isinstance(error, AppointmentNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    if isinstance(error, TechnicianNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Technician not found", "technician_id": error.technician_id},
        )
    if isinstance(error, ConflictError):
        conflict = error.conflict.model_dump(mode="json") if error.conflict is not None else None
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(error), "conflict": conflict},
        )
    if isinstance(error, TransitionError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": str(error),
                "from_status": error.from_status,
                "to_status": error.to_status,
            },
        )
    return HTTPException(status_code=422, detail=str(error))


@router.get("/", response_model=AppointmentListResponse)
async def list_appointments(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    technician_id: Optional[int] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> AppointmentListResponse:
    appt_query = (
        select(Appointment)
        .outerjoin(Technician, Technician.id == Appointment.technician_id)
        .options(contains_eager(Appointment.technician))
    )

    filters = []
    if date_from:
        filters.append(Appointment.scheduled_date >= date_from)
    if date_to:
        filters.append(Appointment.scheduled_date <= date_to)
    if status_filter and status_filter != ALL:
        filters.append(Appointment.status == status_filter)
    if technician_id is not None:
        filters.append(Appointment.technician_id == technician_id)
    if search and search.strip():
        s = f"%{search.strip()}%"
        filters.append(
            or_(
                Appointment.customer_name.ilike(s),
                Appointment.vehicle_info.ilike(s),
                Appointment.service_type.ilike(s),
                Technician.name.ilike(s),
                Appointment.notes.ilike(s),
                Appointment.description.ilike(s),
            )
        )
    if filters:
        appt_query = appt_query.where(and_(*filters))

    count_query = (
        select(func.count())
        .select_from(Appointment)
        .outerjoin(Technician, Technician.id == Appointment.technician_id)
    )
    if filters:
        count_query = count_query.where(and_(*filters))
    total = (await db.execute(count_query)).scalar() or 0

    priority_rank = case(PRIORITY_RANK, value=Appointment.priority, else_=len(PRIORITY_RANK))
    appt_query = appt_query.order_by(
        Appointment.scheduled_date,
        Appointment.scheduled_time,
        priority_rank,
        Appointment.id,
    )

    appt_query = appt_query.offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(appt_query)

    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(row) for row in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    reference_date: Optional[date] = Query(None, alias="date"),
    view: ViewMode = ViewMode.MONTH,
    status_filter: Optional[str] = Query(None, alias="status"),
    technician_id: Optional[str] = None,
    search: Optional[str] = None,
    service: SchedulingService = Depends(get_scheduling_service),
) -> CalendarResponse:
    reference_date = reference_date or date.today()
    filters = AppointmentFilter(status=status_filter, technician_id=technician_id, query=search)

    buckets = await service.calendar(reference_date, view, filters)
    range_start, range_end = grid_range(reference_date, view)

    return CalendarResponse(
        reference_date=reference_date,
        view=view,
        range_start=range_start,
        range_end=range_end,
        previous_date=shift_reference(reference_date, view, -1),
        next_date=shift_reference(reference_date, view, 1),
        days=[DayBucketResponse.model_validate(bucket, from_attributes=True) for bucket in buckets],
    )


@router.post("/conflicts/check", response_model=ConflictCheckResponse)
async def check_conflict(
    payload: ConflictCheckRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> ConflictCheckResponse:
    try:
        candidate = SlotCandidate(
            technician_id=payload.technician_id,
            date=payload.scheduled_date,
            time=payload.scheduled_time,
            duration=payload.estimated_duration,
            exclude_id=payload.exclude_id,
        )
    except SchedulingError as e:
        raise _http_error(e) from e

    conflict = await service.check_conflict(candidate)
    return ConflictCheckResponse(has_conflict=conflict is not None, conflict=conflict)


@router.get("/stats/overview", response_model=AppointmentStats)
async def get_stats_overview(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
) -> AppointmentStats:
    filters = []
    if date_from:
        filters.append(Appointment.scheduled_date >= date_from)
    if date_to:
        filters.append(Appointment.scheduled_date <= date_to)
    where = and_(*filters) if filters else true()

    total = await db.scalar(select(func.count(Appointment.id)).where(where)) or 0
    average = await db.scalar(select(func.avg(Appointment.actual_duration)).where(where))

    by_status = {s.value: 0 for s in AppointmentStatus}
    result = await db.execute(
        select(Appointment.status, func.count(Appointment.id)).where(where).group_by(Appointment.status)
    )
    for status_value, count in result.all():
        by_status[status_value] = count

    return AppointmentStats(
        total=total,
        by_status=by_status,
        average_actual_duration=float(average) if average is not None else None,
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    service: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentResponse:
    try:
        return await service.repository.get_appointment(appointment_id)
    except SchedulingError as e:
        raise _http_error(e) from e


@router.post("/", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    force: bool = Query(False),
    service: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentResponse:
    try:
        return await service.create(payload, force=force)
    except SchedulingError as e:
        raise _http_error(e) from e


@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    force: bool = Query(False),
    service: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentResponse:
    try:
        return await service.update(appointment_id, payload, force=force)
    except SchedulingError as e:
        raise _http_error(e) from e


@router.post("/{appointment_id}/status", response_model=AppointmentResponse)
async def change_appointment_status(
    appointment_id: int,
    payload: StatusChangeRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentResponse:
    try:
        return await service.change_status(appointment_id, payload.status, force=payload.force)
    except SchedulingError as e:
        raise _http_error(e) from e


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    service: SchedulingService = Depends(get_scheduling_service),
) -> AppointmentResponse:
    try:
        return await service.change_status(appointment_id, AppointmentStatus.CANCELLED)
    except SchedulingError as e:
        raise _http_error(e) from e


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: int,
    service: SchedulingService = Depends(get_scheduling_service),
) -> Response:
    try:
        await service.delete(appointment_id)
    except SchedulingError as e:
        raise _http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
