"""ORM models for persistence."""
from __future__ import annotations

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Float, Text

from .config import DEFAULT_MODEL, DEFAULT_SYSTEM_INSTRUCTION
from .db import Base


class AppSettings(Base):
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True, default=1)
    api_key = Column(String, default="")
    selected_model = Column(String, default=DEFAULT_MODEL)
    system_instruction = Column(Text, default=DEFAULT_SYSTEM_INSTRUCTION)
    theme = Column(String, default="dark")
    updated_at_utc = Column(DateTime, default=datetime.utcnow)


class ExerciseRecord(Base):
    __tablename__ = "exercise_record"

    id = Column(Integer, primary_key=True, autoincrement=True)
    exercise = Column(String, nullable=False)
    status = Column(String, nullable=False)  # Correct | Incorrect
    confidence = Column(Float, default=0.0)
    image_url = Column(Text, default="")
    timestamp_utc = Column(DateTime, default=datetime.utcnow, index=True)
    feedback = Column(Text, nullable=True)
    source = Column(String, default="training")  # training | test
