"""Removal Orchestrator - FastAPI Application."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from app.config import settings
from app.api.routes import brokers, jobs
from app.db.database import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize logging and database on startup."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    await init_db()
    yield


app = FastAPI(
    lifespan=lifespan,
    title=settings.app_name,
    description="Scheduled removal orchestration for discovered data broker exposures",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Include routers
app.include_router(jobs.router, prefix=f"{settings.api_prefix}/jobs", tags=["Jobs"])
app.include_router(brokers.router, prefix=f"{settings.api_prefix}/brokers", tags=["Data Brokers"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
