import json
from datetime import date

import httpx
import pytest

from autoshop.scheduling.errors import (
    AppointmentNotFoundError,
    ConflictError,
    TechnicianNotFoundError,
    TransitionError,
    TransportError,
    ValidationError,
)
from autoshop.scheduling.repository import HttpAppointmentRepository


def repository(handler) -> HttpAppointmentRepository:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://shop.test")
    return HttpAppointmentRepository(client=client)


@pytest.fixture
def record_json(make_record):
    def dump(record_id: int, **overrides) -> dict:
        return make_record(record_id, **overrides).model_dump(mode="json")
    return dump


@pytest.mark.asyncio
async def test_list_follows_pages(record_json):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        seen.append(params)
        page = int(params["page"])
        items = [record_json(1), record_json(2)] if page == 1 else [record_json(3)]
        return httpx.Response(200, json={"appointments": items, "total": 3, "page": page, "page_size": 2})

    repo = repository(handler)
    records = await repo.list_appointments(technician_id=1, date_from=date(2024, 6, 10))

    assert [r.id for r in records] == [1, 2, 3]
    assert seen[0]["technician_id"] == "1"
    assert seen[0]["date_from"] == "2024-06-10"
    assert [p["page"] for p in seen] == ["1", "2"]


@pytest.mark.asyncio
async def test_create_sends_candidate_and_force_flag(record_json, make_candidate):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["force"] = request.url.params["force"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json=record_json(10))

    record = await repository(handler).create_appointment(make_candidate(), force=True)

    assert record.id == 10
    assert captured["force"] == "true"
    assert captured["body"]["scheduled_time"] == "09:00"
    assert captured["body"]["scheduled_date"] == "2024-06-10"


@pytest.mark.asyncio
async def test_update_sends_only_client_editable_fields(record_json):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=record_json(4, status="in-progress"))

    await repository(handler).update_appointment(
        4, {"status": "in-progress", "started_at": "2024-06-10T09:00:00"}
    )

    assert captured["method"] == "PUT"
    assert captured["body"] == {"status": "in-progress"}


@pytest.mark.asyncio
async def test_not_found_maps_to_domain_error():
    repo = repository(lambda request: httpx.Response(404, json={"detail": "Appointment not found"}))
    with pytest.raises(AppointmentNotFoundError):
        await repo.get_appointment(99)


@pytest.mark.asyncio
async def test_conflict_carries_the_blocking_record(record_json, make_candidate):
    body = {"detail": {"message": "Technician 1 is already booked", "conflict": record_json(1)}}
    repo = repository(lambda request: httpx.Response(409, json=body))

    with pytest.raises(ConflictError) as exc:
        await repo.create_appointment(make_candidate())
    assert exc.value.conflict.id == 1
    assert "already booked" in str(exc.value)


@pytest.mark.asyncio
async def test_rejected_transition_maps_to_transition_error():
    body = {"detail": {"message": "nope", "from_status": "in-progress", "to_status": "scheduled"}}
    repo = repository(lambda request: httpx.Response(400, json=body))

    with pytest.raises(TransitionError) as exc:
        await repo.update_appointment(1, {"status": "scheduled"})
    assert (exc.value.from_status, exc.value.to_status) == ("in-progress", "scheduled")


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [400, 422])
async def test_bad_requests_map_to_validation_error(code, make_candidate):
    repo = repository(lambda request: httpx.Response(code, json={"detail": "Missing required fields"}))
    with pytest.raises(ValidationError):
        await repo.create_appointment(make_candidate())


@pytest.mark.asyncio
async def test_server_error_is_a_transport_error():
    repo = repository(lambda request: httpx.Response(503, text="maintenance"))
    with pytest.raises(TransportError) as exc:
        await repo.delete_appointment(1)
    assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_connection_failure_is_a_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as exc:
        await repository(handler).list_technicians()
    assert exc.value.status_code is None


@pytest.mark.asyncio
async def test_list_technicians():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["active_only"] == "true"
        return httpx.Response(
            200,
            json=[{"id": 1, "name": "Maria Lopez", "is_active": True, "created_at": "2024-01-01T00:00:00"}],
        )

    technicians = await repository(handler).list_technicians(active_only=True)
    assert [t.name for t in technicians] == ["Maria Lopez"]


@pytest.mark.asyncio
async def test_technician_exists_reads_the_directory():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/technicians/1":
            return httpx.Response(
                200, json={"id": 1, "name": "Maria Lopez", "is_active": True, "created_at": "2024-01-01T00:00:00"}
            )
        return httpx.Response(404, json={"detail": "Technician not found"})

    repo = repository(handler)
    assert await repo.technician_exists(1) is True
    assert await repo.technician_exists(999) is False


@pytest.mark.asyncio
async def test_unknown_technician_on_create_is_not_an_appointment_miss(make_candidate):
    body = {"detail": {"message": "Technician not found", "technician_id": 999}}
    repo = repository(lambda request: httpx.Response(404, json=body))

    with pytest.raises(TechnicianNotFoundError) as exc:
        await repo.create_appointment(make_candidate(technician_id=999))
    assert exc.value.technician_id == 999
