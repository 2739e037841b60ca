"""Gemini REST integration (async, httpx).

- Scores a single exercise photo via ``generateContent`` with a JSON response schema
- Lists the Gemini models available to an API key
- Converts image URLs / data URIs to base64 payloads
"""
from __future__ import annotations

import base64
import json
from typing import Any, List, Optional

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from posecoach.core.config import DEFAULT_MODEL, get_settings


ANALYSIS_PROMPT = """
Analyze this fitness image.
1. Identify the exercise being performed.
2. Determine if the form is "Correct" or "Incorrect".
3. Give a confidence score (0-100) based on posture quality.
4. Provide brief feedback.
5. List up to 3 specific corrections if incorrect, or key points if correct.
"""

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "exercise": {"type": "STRING"},
        "isCorrect": {"type": "BOOLEAN"},
        "score": {"type": "NUMBER"},
        "feedback": {"type": "STRING"},
        "corrections": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["exercise", "isCorrect", "score", "feedback", "corrections"],
}


class GeminiError(RuntimeError):
    """Raised when the vision model call cannot produce an analysis."""


class ImageFetchError(GeminiError):
    """Raised when an image URL cannot be downloaded."""


class AnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exercise: str
    is_correct: bool = Field(alias="isCorrect")
    score: float
    feedback: str
    corrections: List[str] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: object) -> "AnalysisResult":
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise GeminiError(f"Malformed analysis response: {exc.error_count()} invalid field(s)") from exc


class AIModel(BaseModel):
    name: str
    version: str = ""
    display_name: str = ""


def split_data_uri(value: str) -> str:
    """Return the base64 payload of ``data:<mime>;base64,<payload>``."""
    return value.split(",", 1)[1] if "," in value else ""


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message") or "")
    return resp.text[:200]


def _response_text(body: object) -> str:
    if not isinstance(body, dict):
        return ""
    candidates = body.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


class GeminiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        default_model: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.timeout = float(timeout or settings.gemini_timeout)
        self.default_model = (default_model or settings.default_model or DEFAULT_MODEL).strip()

    async def analyze_pose(
        self,
        api_key: str,
        model_name: Optional[str],
        image_base64: str,
        system_instruction: Optional[str] = None,
    ) -> AnalysisResult:
        """Return the model's exercise classification, score and feedback for one image."""
        key = (api_key or "").strip()
        if not key:
            raise GeminiError("API Key is missing")
        target = (model_name or "").strip() or self.default_model
        if target.startswith("models/"):
            target = target[len("models/"):]

        body: dict[str, Any] = {
            "contents": [
                {
                    "parts": [
                        {"inlineData": {"mimeType": "image/jpeg", "data": image_base64}},
                        {"text": ANALYSIS_PROMPT},
                    ]
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        url = f"{self.base_url}/models/{target}:generateContent"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=body, headers={"x-goog-api-key": key})
        except httpx.HTTPError as exc:
            logger.warning("Gemini request failed: {}", exc)
            raise GeminiError(f"Gemini request failed: {exc}") from exc

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.warning("Gemini analysis error {}: {}", resp.status_code, message)
            if resp.status_code == 404 or "not found" in message.lower():
                raise GeminiError(
                    f"Model '{target}' not found or not supported. "
                    f"Please select a valid model in Settings (e.g., {self.default_model})."
                )
            raise GeminiError(f"Gemini error {resp.status_code}: {message}")

        try:
            reply = resp.json()
        except ValueError as exc:
            logger.warning("Gemini returned a non-JSON body: {}", resp.text[:200])
            raise GeminiError("No response from AI") from exc
        text = _response_text(reply)
        if not text:
            raise GeminiError("No response from AI")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise GeminiError("Malformed analysis response") from exc
        result = AnalysisResult.from_payload(payload)
        logger.info("Gemini analysis model={} exercise={} score={}", target, result.exercise, result.score)
        return result

    async def list_models(self, api_key: str) -> List[AIModel]:
        """Return Gemini models for ``api_key``; any failure yields an empty list."""
        key = (api_key or "").strip()
        if not key:
            return []
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(f"{self.base_url}/models", params={"key": key})
            if resp.status_code >= 400:
                logger.warning("Failed to list models: {} {}", resp.status_code, resp.text[:200])
                return []
            data = resp.json()
        except Exception as exc:
            logger.warning("Model fetch error: {}", exc)
            return []

        models: List[AIModel] = []
        for m in data.get("models") or []:
            name = str(m.get("name", ""))
            if "gemini" not in name:
                continue
            models.append(
                AIModel(
                    name=name.replace("models/", ""),
                    version=str(m.get("version", "")),
                    display_name=str(m.get("displayName", name)),
                )
            )
        return models

    async def url_to_base64(self, url: str) -> str:
        if url.startswith("data:"):
            return split_data_uri(url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                resp = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Image fetch error for {}: {}", url, exc)
            raise ImageFetchError(f"Could not fetch image URL: {exc}") from exc
        if resp.status_code >= 400:
            raise ImageFetchError(f"Could not fetch image URL (HTTP {resp.status_code})")
        return base64.b64encode(resp.content).decode("ascii")
