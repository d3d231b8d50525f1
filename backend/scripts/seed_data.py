#!/usr/bin/env python3
"""Seed script for populating the database with demo technicians and appointments."""

import asyncio
from datetime import date, time, timedelta

from sqlalchemy import delete

from autoshop.database import async_session_maker, init_db
from autoshop.models.appointment import Appointment
from autoshop.models.technician import Technician
from autoshop.schemas.appointment import AppointmentCreate
from autoshop.scheduling.errors import ConflictError
from autoshop.scheduling.lifecycle import AppointmentPriority
from autoshop.scheduling.repository import SqlAppointmentRepository
from autoshop.scheduling.service import SchedulingService


async def seed_technicians() -> list:
    """Create default technicians."""
    async with async_session_maker() as db:
        await db.execute(delete(Appointment))
        await db.execute(delete(Technician))
        await db.commit()

        technicians = [
            Technician(name="Maria Lopez", email="maria@autoshop.example.com", specialization="Brakes"),
            Technician(name="Dev Patel", email="dev@autoshop.example.com", specialization="Engine"),
            Technician(name="Sam Okafor", email="sam@autoshop.example.com", specialization="Electrical"),
            Technician(name="Ola Berg", email="ola@autoshop.example.com", specialization="Tires", is_active=False),
        ]
        db.add_all(technicians)
        await db.commit()
        print(f"✓ Created {len(technicians)} technicians")
        return [t.id for t in technicians]


async def seed_appointments(technician_ids: list) -> None:
    """Book a week of sample appointments, skipping any slot that would double-book."""
    bookings = [
        ("C-1001", "Jane Cooper", "V-2001", "2019 Toyota Camry", "oil_change", time(9, 0), 45),
        ("C-1002", "Ravi Shah", "V-2002", "2021 Honda Civic", "brake_service", time(10, 0), 90),
        ("C-1003", "Lena Fischer", "V-2003", "2016 Ford F-150", "diagnostic", time(13, 30), 60),
        ("C-1004", "Tom Baker", "V-2004", "2018 Subaru Outback", "tire_rotation", time(15, 0), 30),
        ("C-1005", "Amy Chen", "V-2005", "2020 Tesla Model 3", "electrical_repair", time(11, 0), 120),
    ]
    priorities = list(AppointmentPriority)
    start = date.today()
    created = skipped = 0

    async with async_session_maker() as db:
        service = SchedulingService(SqlAppointmentRepository(db))
        for day_offset in range(7):
            for index, (cid, cname, vid, vinfo, service_type, at, minutes) in enumerate(bookings):
                candidate = AppointmentCreate(
                    customer_id=cid,
                    customer_name=cname,
                    vehicle_id=vid,
                    vehicle_info=vinfo,
                    scheduled_date=start + timedelta(days=day_offset),
                    scheduled_time=at,
                    estimated_duration=minutes,
                    service_type=service_type,
                    description=f"{service_type.replace('_', ' ').title()} for {vinfo}",
                    priority=priorities[(index + day_offset) % len(priorities)],
                    technician_id=technician_ids[(index + day_offset) % 3],
                )
                try:
                    await service.create(candidate)
                    created += 1
                except ConflictError:
                    skipped += 1
        await db.commit()

    print(f"✓ Created {created} appointments ({skipped} skipped as conflicts)")


async def main():
    """Run all seed functions."""
    print("🌱 Starting database seeding...")
    print("-" * 40)

    # Initialize database
    await init_db()

    try:
        technician_ids = await seed_technicians()
        await seed_appointments(technician_ids)

        print("-" * 40)
        print("✅ Database seeding completed successfully!")

    except Exception as e:
        print(f"❌ Seeding failed: {e}")
        import traceback
        traceback.print_exc()
        raise


if __name__ == "__main__":
    asyncio.run(main())
