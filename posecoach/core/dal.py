"""Data access layer utilities."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from .models import AppSettings, ExerciseRecord


def init_defaults(db: Session) -> None:
    if not db.query(AppSettings).filter(AppSettings.id == 1).first():
        db.add(AppSettings(id=1))
    db.commit()


def get_app_settings(db: Session) -> AppSettings:
    cfg = db.query(AppSettings).filter(AppSettings.id == 1).first()
    if not cfg:
        cfg = AppSettings(id=1)
        db.add(cfg)
        db.commit()
        db.refresh(cfg)
    return cfg


def save_app_settings(db: Session, **kwargs) -> AppSettings:
    """Update the settings row; ``None`` values are left untouched and the API key is trimmed."""
    cfg = get_app_settings(db)
    if kwargs.get("api_key") is not None:
        kwargs["api_key"] = kwargs["api_key"].strip()
    for k, v in kwargs.items():
        if hasattr(cfg, k) and v is not None:
            setattr(cfg, k, v)
    cfg.updated_at_utc = datetime.utcnow()
    db.add(cfg)
    db.commit()
    db.refresh(cfg)
    return cfg


def add_exercise_record(db: Session, **kwargs) -> ExerciseRecord:
    row = ExerciseRecord(**kwargs)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def add_exercise_records(db: Session, rows: Iterable[dict]) -> int:
    n = 0
    for kwargs in rows:
        db.add(ExerciseRecord(**kwargs))
        n += 1
    db.commit()
    return n


def count_exercise_records(db: Session, source: Optional[str] = None) -> int:
    q = db.query(ExerciseRecord)
    if source:
        q = q.filter(ExerciseRecord.source == source)
    return q.count()


def list_exercise_records(
    db: Session, source: Optional[str] = None, limit: Optional[int] = None
) -> list[ExerciseRecord]:
    """Return records newest first, optionally filtered by source."""
    q = db.query(ExerciseRecord)
    if source:
        q = q.filter(ExerciseRecord.source == source)
    q = q.order_by(ExerciseRecord.timestamp_utc.desc(), ExerciseRecord.id.desc())
    if limit:
        q = q.limit(limit)
    return list(q)
