"""Pydantic schemas for request/response payloads.

All endpoints use a standardized JSON envelope: {"success": bool, "data": any, "error": str|None}
"""
from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Literal


class Envelope(BaseModel):
    success: bool = True
    data: Optional[dict] = None
    error: Optional[str] = None


class TrackingStatusOutput(BaseModel):
    is_tracking: bool
    is_squatting: bool
    rep_count: int
    frames_processed: int = 0
    started_at: float | None = None
    last_error: str | None = None
    toggle_label: str


class AnalyzeInput(BaseModel):
    # Either a raw base64 JPEG or a URL / data URI
    image_base64: Optional[str] = None
    image_url: Optional[str] = None


class ExerciseRecordOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    exercise: str
    status: str
    confidence: float
    image_url: str | None = None
    timestamp_utc: datetime
    feedback: str | None = None
    source: str


class SettingsInput(BaseModel):
    api_key: Optional[str] = None
    selected_model: Optional[str] = None
    system_instruction: Optional[str] = None
    theme: Optional[Literal["light", "dark"]] = None


class SettingsOutput(BaseModel):
    api_key: str
    has_api_key: bool
    selected_model: str
    system_instruction: str
    theme: str


class PieSlice(BaseModel):
    name: str
    value: int


class TimelinePoint(BaseModel):
    id: int
    confidence: float


class DashboardOutput(BaseModel):
    total_analyzed: int
    correct_count: int
    accuracy: int
    avg_confidence: int
    issues_detected: int
    pie: List[PieSlice]
    timeline: List[TimelinePoint]
