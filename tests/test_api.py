from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from posecoach.api.main import app
from posecoach.api.routers import analyze as analyze_module
from posecoach.api.routers import settings_router as settings_module
from posecoach.api.routers.tracking import tracker
from posecoach.coach import gemini_client as gemini_module
from posecoach.coach.gemini_client import AnalysisResult, GeminiError
from posecoach.core.config import Settings
from posecoach.core.dal import add_exercise_record
from posecoach.vision.camera import CameraUnavailableError


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture(autouse=True)
def _stop_tracker():
    yield
    tracker.stop()


@pytest.mark.asyncio
async def test_health():
    async with _client() as ac:
        r = await ac.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_tracking_lifecycle_in_mock_mode():
    async with _client() as ac:
        status = (await ac.get("/tracking/status")).json()
        assert status["success"] is True
        assert status["data"]["is_tracking"] is False
        assert status["data"]["toggle_label"] == "Start Tracking"

        r = await ac.post("/tracking/start")
        body = r.json()
        assert body["success"] is True
        assert body["data"]["is_tracking"] is True
        assert body["data"]["toggle_label"] == "Stop Tracking"

        again = (await ac.post("/tracking/start")).json()
        assert again["success"] is True
        assert again["data"]["is_tracking"] is True

        stop = (await ac.post("/tracking/stop")).json()
        assert stop["data"]["is_tracking"] is False
        assert stop["data"]["rep_count"] == 0
        assert stop["data"]["is_squatting"] is False


@pytest.mark.asyncio
async def test_tracking_toggle():
    async with _client() as ac:
        on = (await ac.post("/tracking/toggle")).json()
        assert on["data"]["is_tracking"] is True
        off = (await ac.post("/tracking/toggle")).json()
        assert off["data"]["is_tracking"] is False


@pytest.mark.asyncio
async def test_tracking_camera_unavailable(monkeypatch):
    class _NoCamera:
        def open(self):
            raise CameraUnavailableError("Could not open camera index 0")

        def release(self):
            pass

    monkeypatch.setattr(tracker, "_camera_factory", _NoCamera)
    async with _client() as ac:
        body = (await ac.post("/tracking/start")).json()
    assert body["success"] is False
    assert body["error"] == "camera_unavailable"
    assert body["data"]["is_tracking"] is False


@pytest.mark.asyncio
async def test_tracking_stream_placeholder():
    async with _client() as ac:
        r = await ac.get("/tracking/stream", params={"limit": 1})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("multipart/x-mixed-replace")
    assert r.content.startswith(b"--frame\r\nContent-Type: image/jpeg\r\n\r\n\xff\xd8")


@pytest.mark.asyncio
async def test_settings_defaults_and_masking():
    async with _client() as ac:
        r = await ac.get("/settings")
        data = r.json()["data"]
        assert data["selected_model"] == "gemini-3-flash-preview"
        assert data["theme"] == "dark"
        assert data["has_api_key"] is False

        r = await ac.post(
            "/settings",
            json={"api_key": "  AIzaSyExampleKey1234  ", "selected_model": "gemini-2.0-flash", "theme": "light"},
        )
        data = r.json()["data"]
        assert r.json()["success"] is True
        assert data["has_api_key"] is True
        assert data["api_key"].startswith("AIza")
        assert data["api_key"].endswith("1234")
        assert "SyExampleKey" not in data["api_key"]
        assert data["selected_model"] == "gemini-2.0-flash"
        assert data["theme"] == "light"

        bad = await ac.post("/settings", json={"theme": "neon"})
        assert bad.status_code == 422


@pytest.mark.asyncio
async def test_settings_write_requires_api_key_when_configured(monkeypatch):
    monkeypatch.setattr(settings_module, "get_settings", lambda: Settings(api_key="secret"))
    async with _client() as ac:
        denied = await ac.post("/settings", json={"theme": "light"})
        assert denied.status_code == 401
        ok = await ac.post("/settings", json={"theme": "light"}, headers={"X-API-Key": "secret"})
        assert ok.status_code == 200


@pytest.mark.asyncio
async def test_exercises_and_dashboard(db):
    base = datetime(2024, 3, 1, 8, 0)
    add_exercise_record(db, exercise="Squat", status="Correct", confidence=90,
                        timestamp_utc=base, image_url="https://img/1", source="training")
    add_exercise_record(db, exercise="Plank", status="Incorrect", confidence=80,
                        timestamp_utc=base + timedelta(minutes=5), image_url="https://img/2", source="test")

    async with _client() as ac:
        all_rows = (await ac.get("/exercises")).json()["data"]
        assert all_rows["count"] == 2
        assert [i["exercise"] for i in all_rows["items"]] == ["Plank", "Squat"]

        training = (await ac.get("/exercises", params={"source": "training"})).json()["data"]
        assert [i["exercise"] for i in training["items"]] == ["Squat"]

        limited = (await ac.get("/exercises", params={"limit": 1})).json()["data"]
        assert limited["count"] == 1

        dash = (await ac.get("/dashboard")).json()["data"]
    assert dash["total_analyzed"] == 2
    assert dash["correct_count"] == 1
    assert dash["accuracy"] == 50
    assert dash["avg_confidence"] == 85
    assert dash["issues_detected"] == 1
    assert [p["value"] for p in dash["pie"]] == [1, 1]
    assert [p["confidence"] for p in dash["timeline"]] == [90.0, 80.0]


@pytest.mark.asyncio
async def test_analyze_requires_image():
    async with _client() as ac:
        body = (await ac.post("/analyze", json={})).json()
    assert body["success"] is False
    assert body["error"] == "missing_image"


@pytest.mark.asyncio
async def test_analyze_requires_api_key():
    async with _client() as ac:
        body = (await ac.post("/analyze", json={"image_base64": "QUJD"})).json()
    assert body["success"] is False
    assert body["error"] == "missing_api_key"


@pytest.mark.asyncio
async def test_analyze_persists_test_record(monkeypatch):
    seen = {}

    async def fake_analyze(api_key, model_name, image_base64, system_instruction=None):
        seen.update(api_key=api_key, model=model_name, image=image_base64, instruction=system_instruction)
        return AnalysisResult(
            exercise="Squat", is_correct=True, score=93, feedback="Solid depth.", corrections=["Brace core"]
        )

    monkeypatch.setattr(analyze_module.gemini, "analyze_pose", fake_analyze)
    async with _client() as ac:
        await ac.post("/settings", json={"api_key": "k-1"})
        r = await ac.post("/analyze", json={"image_base64": "data:image/jpeg;base64,QUJD"})
        body = r.json()
        assert body["success"] is True
        assert body["data"]["analysis"]["isCorrect"] is True
        record = body["data"]["record"]
        assert record["source"] == "test"
        assert record["status"] == "Correct"
        assert record["confidence"] == 93.0
        assert record["feedback"] == "Solid depth."

        dash = (await ac.get("/dashboard")).json()["data"]
    assert seen["api_key"] == "k-1"
    assert seen["image"] == "QUJD"
    assert seen["model"] == "gemini-3-flash-preview"
    assert seen["instruction"]
    assert dash["total_analyzed"] == 1


@pytest.mark.asyncio
async def test_analyze_reports_gemini_errors(monkeypatch):
    async def failing(*args, **kwargs):
        raise GeminiError("No response from AI")

    monkeypatch.setattr(analyze_module.gemini, "analyze_pose", failing)
    async with _client() as ac:
        await ac.post("/settings", json={"api_key": "k-1"})
        body = (await ac.post("/analyze", json={"image_base64": "QUJD"})).json()
        rows = (await ac.get("/exercises")).json()["data"]
    assert body["success"] is False
    assert body["error"] == "No response from AI"
    assert rows["count"] == 0


@pytest.mark.asyncio
async def test_models_fall_back_to_defaults():
    async with _client() as ac:
        body = (await ac.get("/models")).json()
    assert body["success"] is True
    assert body["data"]["source"] == "default"
    names = [m["name"] for m in body["data"]["models"]]
    assert names[0] == "gemini-3-flash-preview"


@pytest.mark.asyncio
async def test_slow_camera_open_does_not_block_other_requests(monkeypatch):
    class _SlowCamera:
        def open(self):
            time.sleep(1.0)

        def read(self):
            return False, None

        def release(self):
            pass

    monkeypatch.setattr(tracker, "_camera_factory", _SlowCamera)

    async with _client() as ac:
        async def timed_health() -> float:
            await asyncio.sleep(0.1)
            t0 = time.perf_counter()
            r = await ac.get("/health")
            assert r.status_code == 200
            return time.perf_counter() - t0

        started, health_latency = await asyncio.gather(ac.post("/tracking/start"), timed_health())

    assert started.json()["data"]["is_tracking"] is True
    assert health_latency < 0.5


@pytest.mark.asyncio
async def test_analyze_non_json_gemini_reply_returns_envelope(monkeypatch):
    real_client = httpx.AsyncClient

    def _gemini_client(*args, **kwargs):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>proxy error</html>"))
        return real_client(transport=transport, timeout=kwargs.get("timeout"))

    monkeypatch.setattr(gemini_module.httpx, "AsyncClient", _gemini_client)
    async with _client() as ac:
        await ac.post("/settings", json={"api_key": "k-1"})
        r = await ac.post("/analyze", json={"image_base64": "AAAA"})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "No response from AI"
