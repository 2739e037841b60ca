from __future__ import annotations

import os
import tempfile

# Settings and the engine are built at import time; point them at a scratch DB
# and the synthetic camera before any posecoach module is imported.
_TMP_DIR = tempfile.mkdtemp(prefix="posecoach-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["VISION_MOCK"] = "1"
os.environ["SEED_MOCK_DATA"] = "0"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("API_KEY", None)
os.environ.pop("GEMINI_API_KEY", None)

import pytest  # noqa: E402

from posecoach.core.db import Base, SessionLocal, engine  # noqa: E402
from posecoach.core.models import AppSettings, ExerciseRecord  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_db():
    Base.metadata.create_all(bind=engine)
    yield
    db = SessionLocal()
    try:
        db.query(ExerciseRecord).delete()
        db.query(AppSettings).delete()
        db.commit()
    finally:
        db.close()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
