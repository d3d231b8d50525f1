import pytest
from datetime import date, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.database import async_session_maker, reset_db
from autoshop.models.appointment import Appointment
from autoshop.models.technician import Technician
from autoshop.scheduling.calendar_grid import ViewMode
from autoshop.scheduling.errors import AppointmentNotFoundError, ConflictError, TechnicianNotFoundError
from autoshop.scheduling.lifecycle import AppointmentStatus
from autoshop.scheduling.repository import SqlAppointmentRepository
from autoshop.scheduling.service import SchedulingService


async def _add_technician(db: AsyncSession, name: str, email: str, is_active: bool = True) -> Technician:
    technician = Technician(name=name, email=email, is_active=is_active)
    db.add(technician)
    await db.commit()
    await db.refresh(technician)
    return technician


@pytest.mark.asyncio
async def test_booking_flow_against_database(make_candidate):
    await reset_db()
    async with async_session_maker() as db:  # type: AsyncSession
        tech = await _add_technician(db, "Maria Lopez", "maria@shop.example.com")
        service = SchedulingService(SqlAppointmentRepository(db))

        first = await service.create(make_candidate(technician_id=tech.id))
        assert first.technician_name == "Maria Lopez"
        assert first.created_at is not None

        with pytest.raises(ConflictError) as exc:
            await service.create(make_candidate(technician_id=tech.id, scheduled_time="09:30", estimated_duration=30))
        assert exc.value.conflict.id == first.id

        second = await service.create(
            make_candidate(technician_id=tech.id, scheduled_time="10:00", estimated_duration=30)
        )
        await db.commit()

        rows = (await db.execute(select(Appointment).order_by(Appointment.id))).scalars().all()
        assert [row.id for row in rows] == [first.id, second.id]
        assert rows[1].scheduled_time == time(10, 0)
        assert rows[1].status == AppointmentStatus.SCHEDULED.value


@pytest.mark.asyncio
async def test_status_changes_are_persisted_with_stamps(make_candidate):
    await reset_db()
    async with async_session_maker() as db:  # type: AsyncSession
        service = SchedulingService(SqlAppointmentRepository(db))
        record = await service.create(make_candidate(technician_id=None))

        await service.change_status(record.id, "in-progress")
        completed = await service.change_status(record.id, "completed")
        await db.commit()

        row = (await db.execute(select(Appointment).where(Appointment.id == record.id))).scalar_one()
        assert row.status == "completed"
        assert row.started_at is not None
        assert row.completed_at is not None
        assert completed.actual_duration == row.actual_duration


@pytest.mark.asyncio
async def test_reassignment_refreshes_technician_name(make_candidate):
    await reset_db()
    async with async_session_maker() as db:  # type: AsyncSession
        maria = await _add_technician(db, "Maria Lopez", "maria@shop.example.com")
        dev = await _add_technician(db, "Dev Patel", "dev@shop.example.com", is_active=False)
        service = SchedulingService(SqlAppointmentRepository(db))

        record = await service.create(make_candidate(technician_id=maria.id))
        moved = await service.update(record.id, {"technician_id": dev.id})

        assert moved.technician_name == "Dev Patel"
        assert [t.name for t in await service.list_technicians(active_only=True)] == ["Maria Lopez"]


@pytest.mark.asyncio
async def test_repository_filters_and_delete(make_candidate):
    await reset_db()
    async with async_session_maker() as db:  # type: AsyncSession
        repo = SqlAppointmentRepository(db)
        service = SchedulingService(repo)
        june_10 = await service.create(make_candidate(technician_id=None))
        await service.create(make_candidate(technician_id=None, scheduled_date=date(2024, 6, 20)))

        in_range = await repo.list_appointments(date_from=date(2024, 6, 1), date_to=date(2024, 6, 15))
        assert [r.id for r in in_range] == [june_10.id]

        month = await service.calendar(date(2024, 6, 1), ViewMode.MONTH)
        assert sum(len(day.appointments) for day in month) == 2

        await service.delete(june_10.id)
        with pytest.raises(AppointmentNotFoundError):
            await repo.get_appointment(june_10.id)


@pytest.mark.asyncio
async def test_bookings_need_a_registered_technician(make_candidate):
    await reset_db()
    async with async_session_maker() as db:  # type: AsyncSession
        tech = await _add_technician(db, "Maria Lopez", "maria@shop.example.com")
        repo = SqlAppointmentRepository(db)
        service = SchedulingService(repo)

        assert await repo.technician_exists(tech.id) is True
        assert await repo.technician_exists(tech.id + 100) is False

        with pytest.raises(TechnicianNotFoundError):
            await service.create(make_candidate(technician_id=tech.id + 100))
        assert await repo.list_appointments() == []
