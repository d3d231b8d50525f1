import asyncio
import os
import tempfile
from datetime import date, datetime, time

# Point the app at a throw-away database before anything imports settings.
_db_dir = tempfile.mkdtemp(prefix="autoshop-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["STRICT_STATUS_TRANSITIONS"] = "true"
os.environ["BLOCK_ON_CONFLICT"] = "true"

import pytest

from autoshop.database import reset_db
from autoshop.schemas.appointment import AppointmentCreate, AppointmentResponse


@pytest.fixture
def fresh_database():
    """Recreate the schema for tests that go through the HTTP app."""
    asyncio.run(reset_db())
    yield


def build_candidate(**overrides) -> AppointmentCreate:
    data = {
        "customer_id": "C-1",
        "customer_name": "Jane Cooper",
        "vehicle_id": "V-1",
        "vehicle_info": "2019 Toyota Camry",
        "scheduled_date": date(2024, 6, 10),
        "scheduled_time": time(9, 0),
        "estimated_duration": 60,
        "service_type": "oil_change",
        "technician_id": 1,
    }
    data.update(overrides)
    return AppointmentCreate(**data)


def build_record(record_id: int, **overrides) -> AppointmentResponse:
    candidate = build_candidate(**{k: v for k, v in overrides.items() if k in AppointmentCreate.model_fields})
    extra = {k: v for k, v in overrides.items() if k not in AppointmentCreate.model_fields}
    return AppointmentResponse.model_validate({
        **candidate.model_dump(),
        "id": record_id,
        "created_at": datetime(2024, 6, 1, 8, 0),
        **extra,
    })


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def make_candidate():
    return build_candidate
