"""Appointment model for shop service bookings."""

from datetime import date, datetime, time
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text, Time, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autoshop.database import Base
from autoshop.scheduling.lifecycle import AppointmentPriority, AppointmentStatus

if TYPE_CHECKING:
    from autoshop.models.technician import Technician


class Appointment(Base):
    """A customer's vehicle booked into a single-day technician slot."""

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_date_time", "scheduled_date", "scheduled_time"),
        Index("ix_appointments_technician_date", "technician_id", "scheduled_date"),
        Index("ix_appointments_status_date", "status", "scheduled_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Denormalized customer / vehicle references, owned elsewhere
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    vehicle_id: Mapped[str] = mapped_column(String(64), nullable=False)
    vehicle_info: Mapped[str] = mapped_column(String(255), nullable=False)

    # Slot
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_time: Mapped[time] = mapped_column(Time, nullable=False)
    estimated_duration: Mapped[int] = mapped_column(Integer, nullable=False)

    # Service
    service_type: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        default=AppointmentStatus.SCHEDULED.value,
        nullable=False,
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        default=AppointmentPriority.MEDIUM.value,
        nullable=False,
    )

    # Assignment (unassigned when null)
    technician_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("technicians.id"), nullable=True
    )
    technician: Mapped[Optional["Technician"]] = relationship(
        "Technician", back_populates="appointments", lazy="joined"
    )

    # Work tracking
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    actual_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def technician_name(self) -> Optional[str]:
        return self.technician.name if self.technician else None

    def __repr__(self) -> str:
        return f"<Appointment {self.id} {self.scheduled_date} {self.scheduled_time} ({self.status})>"
