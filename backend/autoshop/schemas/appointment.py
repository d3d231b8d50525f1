"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer, field_validator

from autoshop.scheduling.calendar_grid import ViewMode
from autoshop.scheduling.lifecycle import AppointmentPriority, AppointmentStatus
from autoshop.scheduling.time_slot import (
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
    format_time_12h,
    parse_date,
    parse_time,
)


class AppointmentBase(BaseModel):
    """Fields shared by create requests and responses."""
    customer_id: str = Field(..., min_length=1, max_length=64)
    customer_name: str = Field(..., min_length=1, max_length=255)
    vehicle_id: str = Field(..., min_length=1, max_length=64)
    vehicle_info: str = Field(..., min_length=1, max_length=255)

    scheduled_date: date
    scheduled_time: time
    estimated_duration: int = Field(..., ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)

    service_type: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    notes: Optional[str] = None

    priority: AppointmentPriority = AppointmentPriority.MEDIUM
    technician_id: Optional[int] = None

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_date(value)

    @field_validator("scheduled_time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        return parse_time(value)

    @field_serializer("scheduled_time", when_used="json")
    def _serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class AppointmentCreate(AppointmentBase):
    """Schema for booking a new appointment.

    ``status`` is only supplied when importing records that already exist
    elsewhere; new bookings start as ``scheduled``.
    """
    status: AppointmentStatus = AppointmentStatus.SCHEDULED


class AppointmentUpdate(BaseModel):
    """Partial update; only fields that are set are applied."""
    customer_id: Optional[str] = Field(None, min_length=1, max_length=64)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    vehicle_id: Optional[str] = Field(None, min_length=1, max_length=64)
    vehicle_info: Optional[str] = Field(None, min_length=1, max_length=255)

    scheduled_date: Optional[date] = None
    scheduled_time: Optional[time] = None
    estimated_duration: Optional[int] = Field(None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)

    service_type: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    notes: Optional[str] = None

    status: Optional[AppointmentStatus] = None
    priority: Optional[AppointmentPriority] = None
    technician_id: Optional[int] = None

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return None if value is None else parse_date(value)

    @field_validator("scheduled_time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        return None if value is None else parse_time(value)

    @field_serializer("scheduled_time", when_used="json")
    def _serialize_time(self, value: Optional[time]) -> Optional[str]:
        return value.strftime("%H:%M") if value else None


class AppointmentResponse(AppointmentBase):
    """Appointment record as handed to callers and the scheduling core."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: AppointmentStatus
    technician_name: Optional[str] = None

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    actual_duration: Optional[int] = None

    created_at: datetime
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def scheduled_time_display(self) -> str:
        return format_time_12h(self.scheduled_time)


class AppointmentListResponse(BaseModel):
    appointments: List[AppointmentResponse]
    total: int
    page: int
    page_size: int


class StatusChangeRequest(BaseModel):
    status: AppointmentStatus
    force: bool = False


class ConflictCheckRequest(BaseModel):
    technician_id: Optional[int] = None
    scheduled_date: date
    scheduled_time: time
    estimated_duration: int = Field(..., ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    exclude_id: Optional[int] = None

    @field_validator("scheduled_time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        return parse_time(value)


class ConflictCheckResponse(BaseModel):
    has_conflict: bool
    conflict: Optional[AppointmentResponse] = None


class HourBucketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    hour: int
    label: str
    appointments: List[AppointmentResponse]


class DayBucketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    is_current_month: bool
    is_today: bool
    appointments: List[AppointmentResponse]
    hours: List[HourBucketResponse] = []


class CalendarResponse(BaseModel):
    reference_date: date
    view: ViewMode
    range_start: date
    range_end: date
    previous_date: date
    next_date: date
    days: List[DayBucketResponse]


class AppointmentStats(BaseModel):
    total: int
    by_status: dict
    average_actual_duration: Optional[float] = None
