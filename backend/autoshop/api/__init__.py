"""API package initialization."""

from autoshop.api.appointments import router as appointments_router
from autoshop.api.technicians import router as technicians_router

__all__ = [
    "appointments_router",
    "technicians_router",
]
