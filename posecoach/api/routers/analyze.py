"""Single-image pose analysis and model discovery via Gemini."""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.orm import Session

from posecoach.api.schemas import AnalyzeInput, Envelope, ExerciseRecordOutput
from posecoach.coach.gemini_client import AIModel, GeminiClient, GeminiError, split_data_uri
from posecoach.coach.records import STATUS_CORRECT, STATUS_INCORRECT
from posecoach.core.config import get_settings
from posecoach.core.dal import add_exercise_record, get_app_settings
from posecoach.core.db import get_db

router = APIRouter()

gemini = GeminiClient()

DEFAULT_MODELS = [
    AIModel(name="gemini-3-flash-preview", display_name="Gemini 3 Flash Preview (Recommended)"),
    AIModel(name="gemini-3-pro-preview", display_name="Gemini 3 Pro Preview"),
    AIModel(name="gemini-2.0-flash", display_name="Gemini 2.0 Flash"),
    AIModel(name="gemini-1.5-pro", display_name="Gemini 1.5 Pro"),
]


def resolve_api_key(db: Session) -> str:
    """Stored key first, then the ``GEMINI_API_KEY`` fallback."""
    cfg = get_app_settings(db)
    return (cfg.api_key or get_settings().gemini_api_key or "").strip()


@router.post("/analyze", response_model=Envelope)
async def analyze(payload: AnalyzeInput, db: Session = Depends(get_db)) -> Envelope:
    if not payload.image_base64 and not payload.image_url:
        return Envelope(success=False, error="missing_image")
    api_key = resolve_api_key(db)
    if not api_key:
        return Envelope(success=False, error="missing_api_key")
    cfg = get_app_settings(db)

    try:
        if payload.image_base64:
            raw = payload.image_base64
            image_b64 = split_data_uri(raw) if raw.startswith("data:") else raw
            image_url = payload.image_url or f"data:image/jpeg;base64,{image_b64}"
        else:
            image_url = payload.image_url
            image_b64 = await gemini.url_to_base64(image_url)
        result = await gemini.analyze_pose(api_key, cfg.selected_model, image_b64, cfg.system_instruction)
    except GeminiError as exc:
        logger.warning("analyze failed: {}", exc)
        return Envelope(success=False, error=str(exc))

    row = add_exercise_record(
        db,
        exercise=result.exercise,
        status=STATUS_CORRECT if result.is_correct else STATUS_INCORRECT,
        confidence=result.score,
        image_url=image_url,
        timestamp_utc=datetime.utcnow(),
        feedback=result.feedback,
        source="test",
    )
    logger.info("analyze exercise={} status={} score={} record={}", row.exercise, row.status, row.confidence, row.id)
    return Envelope(
        success=True,
        data={
            "analysis": result.model_dump(by_alias=True),
            "record": ExerciseRecordOutput.model_validate(row).model_dump(mode="json"),
        },
    )


@router.get("/models", response_model=Envelope)
async def models(db: Session = Depends(get_db)) -> Envelope:
    fetched = await gemini.list_models(resolve_api_key(db))
    source = "api" if fetched else "default"
    items = fetched or DEFAULT_MODELS
    return Envelope(success=True, data={"source": source, "models": [m.model_dump() for m in items]})
