"""Technician schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class TechnicianCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    specialization: Optional[str] = Field(None, max_length=100)
    is_active: bool = True


class TechnicianResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    specialization: Optional[str] = None
    is_active: bool
    created_at: datetime
