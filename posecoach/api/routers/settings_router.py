"""Settings endpoint router for the Gemini key, model and coaching instruction."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from posecoach.api.schemas import Envelope, SettingsInput, SettingsOutput
from posecoach.core.config import get_settings
from posecoach.core.db import get_db
from posecoach.core.dal import get_app_settings, save_app_settings
from posecoach.core.models import AppSettings

router = APIRouter()


def mask_key(key: str | None) -> str:
    if not key:
        return ""
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}{'*' * (len(key) - 8)}{key[-4:]}"


def _out(cfg: AppSettings) -> dict:
    out = SettingsOutput(
        api_key=mask_key(cfg.api_key),
        has_api_key=bool(cfg.api_key),
        selected_model=cfg.selected_model,
        system_instruction=cfg.system_instruction,
        theme=cfg.theme,
    )
    return out.model_dump()


@router.get("/settings", response_model=Envelope)
async def get_app_config(db: Session = Depends(get_db)) -> Envelope:
    return Envelope(success=True, data=_out(get_app_settings(db)))


@router.post("/settings", response_model=Envelope)
async def set_app_config(
    payload: SettingsInput,
    db: Session = Depends(get_db),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> Envelope:
    s = get_settings()
    if getattr(s, "api_key", None) and x_api_key != s.api_key:
        raise HTTPException(status_code=401, detail="invalid_api_key")
    cfg = save_app_settings(
        db,
        api_key=payload.api_key,
        selected_model=payload.selected_model.strip() if payload.selected_model else None,
        system_instruction=payload.system_instruction,
        theme=payload.theme,
    )
    return Envelope(success=True, data=_out(cfg))
