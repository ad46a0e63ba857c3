"""HTTP clients for the remote transcription and extraction services."""

from __future__ import annotations

import io
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx
import numpy as np
import soundfile as sf
from pydantic import ValidationError

from ..audio.types import AudioChunk
from ..config import ClientSettings
from ..document import CVDocument
from ..errors import ExtractionError, TranscriptionError

LOGGER = logging.getLogger("livescribe.network")


@dataclass(frozen=True, slots=True)
class TranscriptionResult:
    text: str
    processing_duration_ms: int
    confidence_band: str | None = None
    language: str | None = None


class TranscriptionService(Protocol):
    async def transcribe(self, chunk: AudioChunk, language: str | None = None) -> TranscriptionResult: ...


class ExtractionService(Protocol):
    async def extract(self, text: str, current: CVDocument) -> CVDocument: ...


def confidence_band(value: float | None) -> str | None:
    if value is None:
        return None
    if value >= 0.85:
        return "high"
    if value >= 0.6:
        return "medium"
    return "low"


def encode_flac(chunk: AudioChunk) -> bytes:
    samples = np.frombuffer(chunk.data, dtype=np.int16)
    if chunk.channels > 1:
        samples = samples.reshape(-1, chunk.channels)
    buffer = io.BytesIO()
    sf.write(buffer, samples, chunk.sample_rate, format="FLAC", subtype="PCM_16")
    return buffer.getvalue()


class _ServiceClient:
    def __init__(
        self,
        settings: ClientSettings,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    def _headers(self) -> dict:
        if not self.settings.api_key:
            return {}
        return {"X-API-Key": self.settings.api_key}

    def _url(self, path: str) -> str:
        base = self.settings.server_url.rstrip("/")
        return f"{base}{path}"

    async def close(self) -> None:
        await self._client.aclose()


class HttpTranscriptionClient(_ServiceClient):
    async def transcribe(self, chunk: AudioChunk, language: str | None = None) -> TranscriptionResult:
        language = language or self.settings.language
        started = time.perf_counter()
        try:
            files = {"file": (f"chunk-{chunk.sequence_id}.flac", encode_flac(chunk), "audio/flac")}
            data = {"language": language} if language else {}
            resp = await self._client.post(
                self._url(self.settings.transcribe_path),
                headers=self._headers(),
                files=files,
                data=data,
            )
            if resp.status_code == 401:
                raise TranscriptionError("Unauthorized: check API key")
            resp.raise_for_status()
            body = self._json(resp)
        except TranscriptionError:
            raise
        except httpx.HTTPStatusError as exc:
            raise TranscriptionError(f"Transcription failed: {exc.response.status_code}") from exc
        except Exception as exc:
            raise TranscriptionError(str(exc)) from exc
        if body.get("success") is False:
            raise TranscriptionError(body.get("error") or "Transcription failed")
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        duration = body.get("duration_ms")
        confidence = body.get("confidence")
        return TranscriptionResult(
            text=str(body.get("text") or ""),
            processing_duration_ms=int(duration) if isinstance(duration, (int, float)) else elapsed_ms,
            confidence_band=confidence_band(float(confidence)) if isinstance(confidence, (int, float)) else None,
            language=body.get("language") or language,
        )

    @staticmethod
    def _json(resp: httpx.Response) -> Dict[str, Any]:
        try:
            body = resp.json()
        except ValueError as exc:
            raise TranscriptionError(f"Invalid response: {exc}") from exc
        if not isinstance(body, dict):
            raise TranscriptionError("Invalid response: expected an object")
        return body


class HttpExtractionClient(_ServiceClient):
    async def extract(self, text: str, current: CVDocument) -> CVDocument:
        try:
            resp = await self._client.post(
                self._url(self.settings.extract_path),
                headers=self._headers(),
                json={"text": text, "currentCV": current.to_payload()},
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ExtractionError(f"Extraction failed: {exc.response.status_code}") from exc
        except Exception as exc:
            raise ExtractionError(str(exc)) from exc
        if not isinstance(body, dict) or not body.get("success") or not isinstance(body.get("cv"), dict):
            error = body.get("error") if isinstance(body, dict) else None
            raise ExtractionError(error or "Extraction returned no document")
        try:
            return CVDocument.model_validate(body["cv"])
        except ValidationError as exc:
            raise ExtractionError(f"Invalid document: {exc.error_count()} error(s)") from exc


__all__ = [
    "ExtractionService",
    "HttpExtractionClient",
    "HttpTranscriptionClient",
    "TranscriptionResult",
    "TranscriptionService",
    "confidence_band",
    "encode_flac",
]
