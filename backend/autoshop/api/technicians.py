from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.database import get_db
from autoshop.models.technician import Technician
from autoshop.schemas.technician import TechnicianCreate, TechnicianResponse
from autoshop.scheduling.repository import SqlAppointmentRepository
from autoshop.utils.logging import get_logger

router = APIRouter()
logger = get_logger("api.technicians")


@router.get("/", response_model=List[TechnicianResponse])
async def list_technicians(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> List[TechnicianResponse]:
    return await SqlAppointmentRepository(db).list_technicians(active_only=active_only)


@router.post("/", response_model=TechnicianResponse, status_code=status.HTTP_201_CREATED)
async def create_technician(
    payload: TechnicianCreate,
    db: AsyncSession = Depends(get_db),
) -> TechnicianResponse:
    if payload.email:
        existing = await db.execute(select(Technician).where(Technician.email == payload.email))
        if existing.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A technician with this email already exists",
            )

    technician = Technician(**payload.model_dump())
    db.add(technician)
    await db.flush()
    await db.refresh(technician)

    logger.info("technician_created", technician_id=technician.id)
    return TechnicianResponse.model_validate(technician)


@router.get("/{technician_id}", response_model=TechnicianResponse)
async def get_technician(
    technician_id: int,
    db: AsyncSession = Depends(get_db),
) -> TechnicianResponse:
    result = await db.execute(select(Technician).where(Technician.id == technician_id))
    technician = result.scalar_one_or_none()
    if not technician:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician not found")
    return TechnicianResponse.model_validate(technician)
