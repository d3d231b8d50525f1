"""Backing stores for appointment records.

The scheduling core never owns the collection; callers inject one of these.
Every store hands out ``AppointmentResponse`` records so the pure grid,
conflict and search functions see the same shape whatever the source.
"""

import itertools
from abc import ABC, abstractmethod
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from autoshop.config import settings
from autoshop.models.appointment import Appointment
from autoshop.models.technician import Technician
from autoshop.schemas.appointment import AppointmentCreate, AppointmentResponse, AppointmentUpdate
from autoshop.schemas.technician import TechnicianResponse
from autoshop.scheduling.errors import (
    AppointmentNotFoundError,
    ConflictError,
    TransitionError,
    TechnicianNotFoundError,
    TransportError,
    ValidationError,
)
from autoshop.utils.logging import get_logger

logger = get_logger("scheduling.repository")

Patch = Dict[str, Any]


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class AppointmentRepository(ABC):
    """Create/read/update/delete boundary of the appointment store."""

    @abstractmethod
    async def list_appointments(
        self,
        status: Optional[str] = None,
        technician_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[AppointmentResponse]:
        ...

    @abstractmethod
    async def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        ...

    @abstractmethod
    async def create_appointment(self, candidate: AppointmentCreate, force: bool = False) -> AppointmentResponse:
        ...

    @abstractmethod
    async def update_appointment(self, appointment_id: int, patch: Patch, force: bool = False) -> AppointmentResponse:
        ...

    @abstractmethod
    async def delete_appointment(self, appointment_id: int) -> None:
        ...

    @abstractmethod
    async def list_technicians(self, active_only: bool = False) -> List[TechnicianResponse]:
        ...

    @abstractmethod
    async def technician_exists(self, technician_id: int) -> bool:
        ...


class SqlAppointmentRepository(AppointmentRepository):
    """Store backed by the application database session.

    ``force`` is accepted for interface parity; the database applies no
    scheduling rules of its own.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, appointment_id: int) -> Appointment:
        result = await self.db.execute(
            select(Appointment)
            .options(joinedload(Appointment.technician))
            .where(Appointment.id == appointment_id)
            .execution_options(populate_existing=True)
        )
        appointment = result.scalar_one_or_none()
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    async def list_appointments(
        self,
        status: Optional[str] = None,
        technician_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[AppointmentResponse]:
        query = select(Appointment).options(joinedload(Appointment.technician))
        if status:
            query = query.where(Appointment.status == _column_value(status))
        if technician_id is not None:
            query = query.where(Appointment.technician_id == technician_id)
        if date_from:
            query = query.where(Appointment.scheduled_date >= date_from)
        if date_to:
            query = query.where(Appointment.scheduled_date <= date_to)

        result = await self.db.execute(query.order_by(Appointment.id))
        return [AppointmentResponse.model_validate(row) for row in result.scalars().all()]

    async def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        return AppointmentResponse.model_validate(await self._load(appointment_id))

    async def create_appointment(self, candidate: AppointmentCreate, force: bool = False) -> AppointmentResponse:
        appointment = Appointment(
            **{field: _column_value(value) for field, value in candidate.model_dump().items()}
        )
        self.db.add(appointment)
        await self.db.flush()
        return AppointmentResponse.model_validate(await self._load(appointment.id))

    async def update_appointment(self, appointment_id: int, patch: Patch, force: bool = False) -> AppointmentResponse:
        appointment = await self._load(appointment_id)
        for field, value in patch.items():
            setattr(appointment, field, _column_value(value))
        await self.db.flush()
        return AppointmentResponse.model_validate(await self._load(appointment_id))

    async def delete_appointment(self, appointment_id: int) -> None:
        appointment = await self._load(appointment_id)
        await self.db.delete(appointment)
        await self.db.flush()

    async def list_technicians(self, active_only: bool = False) -> List[TechnicianResponse]:
        query = select(Technician).order_by(Technician.name)
        if active_only:
            query = query.where(Technician.is_active.is_(True))
        result = await self.db.execute(query)
        return [TechnicianResponse.model_validate(row) for row in result.scalars().all()]

    async def technician_exists(self, technician_id: int) -> bool:
        return await self.db.scalar(select(Technician.id).where(Technician.id == technician_id)) is not None


class HttpAppointmentRepository(AppointmentRepository):
    """JSON-over-HTTP client for the appointments API.

    No retries. Requests use the transport's default timeout unless
    ``timeout`` (or ``settings.http_timeout_seconds``) is given.
    """

    page_size = 100

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        if client is None:
            kwargs: Dict[str, Any] = {"base_url": base_url or settings.api_base_url}
            timeout = timeout if timeout is not None else settings.http_timeout_seconds
            if timeout is not None:
                kwargs["timeout"] = timeout
            client = httpx.AsyncClient(**kwargs)
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("appointment_store_unreachable", method=method, url=url, error=str(e))
            raise TransportError(f"{method} {url} failed: {e}") from e

        if response.is_success:
            return response

        detail = self._detail(response)
        message = detail.get("message") if isinstance(detail, dict) else detail
        message = str(message or response.reason_phrase)
        code = response.status_code

        if code == 404:
            if url.startswith("/technicians") or (isinstance(detail, dict) and "technician_id" in detail):
                raise TechnicianNotFoundError(
                    detail["technician_id"] if isinstance(detail, dict) else url.rstrip("/").rsplit("/", 1)[-1]
                )
            raise AppointmentNotFoundError(url.rstrip("/").rsplit("/", 1)[-1])
        if code == 409:
            conflict = detail.get("conflict") if isinstance(detail, dict) else None
            raise ConflictError(
                message,
                conflict=AppointmentResponse.model_validate(conflict) if conflict else None,
            )
        if code == 400:
            if isinstance(detail, dict) and "from_status" in detail:
                raise TransitionError(detail["from_status"], detail["to_status"])
            raise ValidationError(message)
        if code == 422:
            raise ValidationError(message)

        logger.error("appointment_store_error", method=method, url=url, status_code=code)
        raise TransportError(f"{method} {url} returned {code}: {message}", status_code=code)

    @staticmethod
    def _detail(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            return response.text
        return body.get("detail", body) if isinstance(body, dict) else body

    async def list_appointments(
        self,
        status: Optional[str] = None,
        technician_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[AppointmentResponse]:
        params: Dict[str, Any] = {"page_size": self.page_size}
        if status:
            params["status"] = _column_value(status)
        if technician_id is not None:
            params["technician_id"] = technician_id
        if date_from:
            params["date_from"] = date_from.isoformat()
        if date_to:
            params["date_to"] = date_to.isoformat()

        appointments: List[AppointmentResponse] = []
        for page in itertools.count(1):
            response = await self._request("GET", "/appointments/", params={**params, "page": page})
            body = response.json()
            batch = [AppointmentResponse.model_validate(item) for item in body["appointments"]]
            appointments.extend(batch)
            if not batch or len(appointments) >= body["total"]:
                break
        return appointments

    async def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        response = await self._request("GET", f"/appointments/{appointment_id}")
        return AppointmentResponse.model_validate(response.json())

    async def create_appointment(self, candidate: AppointmentCreate, force: bool = False) -> AppointmentResponse:
        response = await self._request(
            "POST",
            "/appointments/",
            json=candidate.model_dump(mode="json"),
            params={"force": str(force).lower()},
        )
        return AppointmentResponse.model_validate(response.json())

    async def update_appointment(self, appointment_id: int, patch: Patch, force: bool = False) -> AppointmentResponse:
        # Stamped fields (started_at, ...) are derived again by the server.
        update = AppointmentUpdate.model_validate(
            {k: v for k, v in patch.items() if k in AppointmentUpdate.model_fields}
        )
        response = await self._request(
            "PUT",
            f"/appointments/{appointment_id}",
            json=update.model_dump(mode="json", exclude_unset=True),
            params={"force": str(force).lower()},
        )
        return AppointmentResponse.model_validate(response.json())

    async def delete_appointment(self, appointment_id: int) -> None:
        await self._request("DELETE", f"/appointments/{appointment_id}")

    async def list_technicians(self, active_only: bool = False) -> List[TechnicianResponse]:
        response = await self._request(
            "GET", "/technicians/", params={"active_only": str(active_only).lower()}
        )
        return [TechnicianResponse.model_validate(item) for item in response.json()]

    async def technician_exists(self, technician_id: int) -> bool:
        try:
            await self._request("GET", f"/technicians/{technician_id}")
        except TechnicianNotFoundError:
            return False
        return True


class InMemoryAppointmentRepository(AppointmentRepository):
    """Process-local store.

    Serves as the degraded fallback for creates while the remote store is
    down. ``ids`` lets the caller keep local ids apart from server ids.
    Without a ``technicians`` directory every technician id is accepted.
    """

    def __init__(
        self,
        technicians: Optional[List[TechnicianResponse]] = None,
        ids: Optional[Iterator[int]] = None,
    ):
        self._records: Dict[int, AppointmentResponse] = {}
        self._technicians: Dict[int, TechnicianResponse] = {t.id: t for t in technicians or []}
        self._has_directory = technicians is not None
        self._ids = ids if ids is not None else itertools.count(1)

    def _technician_name(self, technician_id: Optional[int]) -> Optional[str]:
        technician = self._technicians.get(technician_id) if technician_id is not None else None
        return technician.name if technician else None

    async def list_appointments(
        self,
        status: Optional[str] = None,
        technician_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[AppointmentResponse]:
        status = _column_value(status)
        return [
            record
            for record in self._records.values()
            if (not status or record.status.value == status)
            and (technician_id is None or record.technician_id == technician_id)
            and (not date_from or record.scheduled_date >= date_from)
            and (not date_to or record.scheduled_date <= date_to)
        ]

    async def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        try:
            return self._records[appointment_id]
        except KeyError:
            raise AppointmentNotFoundError(appointment_id) from None

    async def create_appointment(self, candidate: AppointmentCreate, force: bool = False) -> AppointmentResponse:
        now = datetime.now()
        record = AppointmentResponse.model_validate({
            **candidate.model_dump(),
            "id": next(self._ids),
            "technician_name": self._technician_name(candidate.technician_id),
            "created_at": now,
            "updated_at": now,
        })
        self._records[record.id] = record
        return record

    async def update_appointment(self, appointment_id: int, patch: Patch, force: bool = False) -> AppointmentResponse:
        current = await self.get_appointment(appointment_id)
        data = {**current.model_dump(), **patch, "updated_at": datetime.now()}
        if data.get("technician_id") != current.technician_id:
            data["technician_name"] = self._technician_name(data.get("technician_id"))
        record = AppointmentResponse.model_validate(data)
        self._records[appointment_id] = record
        return record

    async def delete_appointment(self, appointment_id: int) -> None:
        await self.get_appointment(appointment_id)
        del self._records[appointment_id]

    async def list_technicians(self, active_only: bool = False) -> List[TechnicianResponse]:
        return [t for t in self._technicians.values() if t.is_active or not active_only]

    async def technician_exists(self, technician_id: int) -> bool:
        return not self._has_directory or technician_id in self._technicians
