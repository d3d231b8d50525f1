"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from autoshop.config import settings
from autoshop.database import lifespan_db
from autoshop.utils.logging import get_logger, setup_logging

# Setup logging
setup_logging(debug=settings.debug)

# Import routers
from autoshop.api.appointments import router as appointments_router
from autoshop.api.technicians import router as technicians_router

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    async with lifespan_db():
        logger.info(
            "application_started",
            app=settings.app_name,
            strict_status_transitions=settings.strict_status_transitions,
            block_on_conflict=settings.block_on_conflict,
        )
        yield


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Auto shop appointment scheduling service",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(appointments_router, prefix="/appointments", tags=["Appointments"])
app.include_router(technicians_router, prefix="/technicians", tags=["Technicians"])


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected",
    }
