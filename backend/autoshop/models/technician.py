"""Technician directory model."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autoshop.database import Base

if TYPE_CHECKING:
    from autoshop.models.appointment import Appointment


class Technician(Base):
    """Shop technician that appointments are assigned to."""

    __tablename__ = "technicians"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    specialization: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment", back_populates="technician"
    )

    def __repr__(self) -> str:
        return f"<Technician {self.name} ({'active' if self.is_active else 'inactive'})>"
