"""Exercise record helpers: mock training dataset and dashboard aggregates."""
from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Iterable, Optional

from loguru import logger
from sqlalchemy.orm import Session

from posecoach.core.dal import add_exercise_records, count_exercise_records
from posecoach.core.models import ExerciseRecord

MOCK_EXERCISES = ["Squat", "Pushup", "Plank", "Lunge"]
MOCK_SPREAD_MS = 1_000_000_000
STATUS_CORRECT = "Correct"
STATUS_INCORRECT = "Incorrect"


def mock_records(n: int = 20, now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> list[dict]:
    """Build ``n`` synthetic gallery rows cycling through the demo exercises."""
    rng = rng or random.Random()
    now = now or datetime.utcnow()
    rows = []
    for i in range(n):
        rows.append(
            {
                "exercise": MOCK_EXERCISES[i % len(MOCK_EXERCISES)],
                "status": STATUS_CORRECT if rng.random() > 0.3 else STATUS_INCORRECT,
                "confidence": float(rng.randint(80, 99)),
                "timestamp_utc": now - timedelta(milliseconds=rng.randrange(MOCK_SPREAD_MS)),
                "image_url": f"https://picsum.photos/seed/{i + 123}/400/300",
                "source": "training",
            }
        )
    return rows


def seed_training_data(db: Session, n: int = 20) -> int:
    """Insert mock training rows once; returns how many were added."""
    if count_exercise_records(db, source="training") > 0:
        return 0
    added = add_exercise_records(db, mock_records(n))
    logger.info("Seeded {} mock training records", added)
    return added


def dashboard_stats(records: Iterable[ExerciseRecord]) -> dict:
    """Aggregate records into the dashboard cards and chart series."""
    rows = list(records)
    total = len(rows)
    correct = sum(1 for r in rows if r.status == STATUS_CORRECT)
    accuracy = round(correct / total * 100) if total else 0
    avg_conf = round(sum(float(r.confidence or 0.0) for r in rows) / (total or 1))
    ordered = sorted(rows, key=lambda r: (r.timestamp_utc or datetime.min, r.id or 0))
    return {
        "total_analyzed": total,
        "correct_count": correct,
        "accuracy": accuracy,
        "avg_confidence": avg_conf,
        "issues_detected": total - correct,
        "pie": [
            {"name": "Correct Poses", "value": correct},
            {"name": "Incorrect Poses", "value": total - correct},
        ],
        "timeline": [{"id": r.id, "confidence": float(r.confidence or 0.0)} for r in ordered],
    }
