"""FastAPI application exposing REST endpoints for the pose coach.

Endpoints:
- /tracking/*: live squat tracking session (start/stop/toggle/status, MJPEG stream)
- POST /analyze, GET /models: single-image analysis via Gemini
- GET/POST /settings: API key, model and coaching instruction
- GET /exercises, GET /dashboard: training gallery and analytics

This module wires sub-routers from domain modules and provides a health check.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from posecoach.core.config import get_settings
from posecoach.core.logging_config import add_file_sink, setup_logging
from posecoach.core.db import engine, Base, SessionLocal
from posecoach.core.dal import init_defaults
from posecoach.coach.records import seed_training_data
from posecoach.api.routers.tracking import router as tracking_router, tracker
from posecoach.api.routers.analyze import router as analyze_router
from posecoach.api.routers.settings_router import router as settings_router
from posecoach.api.routers.exercises import router as exercises_router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    # Startup: ensure DB tables exist
    Base.metadata.create_all(bind=engine)
    logs_dir = Path(__file__).resolve().parent.parent / "data" / "logs"
    sink_id = add_file_sink(logs_dir)
    db = SessionLocal()
    try:
        init_defaults(db)
        if settings.seed_mock_data:
            seed_training_data(db, settings.mock_records)
    finally:
        db.close()
    logger.info("{} started (env={}, vision_mock={})", settings.app_name, settings.environment, settings.vision_mock)
    yield
    # Shutdown: release the camera if a session is still running
    tracker.stop()
    logger.remove(sink_id)


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.exposed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.get("/health")
async def health() -> dict:
    """Return API health status."""

    return {"status": "ok", "tracking": tracker.is_tracking}


# Routers
app.include_router(tracking_router, tags=["tracking"])
app.include_router(analyze_router, tags=["analyze"])
app.include_router(settings_router, tags=["settings"])
app.include_router(exercises_router, tags=["exercises"])
