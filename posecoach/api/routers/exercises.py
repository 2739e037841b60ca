"""Training-data gallery and dashboard analytics."""
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from posecoach.api.schemas import DashboardOutput, Envelope, ExerciseRecordOutput
from posecoach.coach.records import dashboard_stats
from posecoach.core.dal import list_exercise_records
from posecoach.core.db import get_db

router = APIRouter()


@router.get("/exercises", response_model=Envelope)
async def exercises(
    source: Literal["training", "test", "all"] = "all",
    limit: int | None = Query(default=None, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> Envelope:
    rows = list_exercise_records(db, source=None if source == "all" else source, limit=limit)
    items = [ExerciseRecordOutput.model_validate(r).model_dump(mode="json") for r in rows]
    return Envelope(success=True, data={"source": source, "count": len(items), "items": items})


@router.get("/dashboard", response_model=Envelope)
async def dashboard(db: Session = Depends(get_db)) -> Envelope:
    stats = DashboardOutput(**dashboard_stats(list_exercise_records(db)))
    return Envelope(success=True, data=stats.model_dump())
