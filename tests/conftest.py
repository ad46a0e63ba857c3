"""Pytest configuration helpers and shared fakes."""

from __future__ import annotations

import asyncio
import math
import sys
from pathlib import Path
from typing import Callable, List

import numpy as np
import pytest


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without installing the package."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

from livescribe.audio.types import AudioChunk  # noqa: E402
from livescribe.document import CVDocument  # noqa: E402
from livescribe.errors import ExtractionError, TranscriptionError  # noqa: E402
from livescribe.services.network import TranscriptionResult  # noqa: E402

SAMPLE_RATE = 16_000


def pcm(duration_ms: int, amplitude: int = 12000, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Int16 mono PCM: a 220 Hz tone, or digital silence when amplitude is 0."""
    length = int(sample_rate * duration_ms / 1000)
    if amplitude == 0:
        return np.zeros(length, dtype=np.int16).tobytes()
    t = np.arange(length)
    wave = np.sin(2 * math.pi * 220 * t / sample_rate) * amplitude
    return wave.astype(np.int16).tobytes()


def make_chunk(sequence_id: int, *, generation: int = 1, size: int = 32000) -> AudioChunk:
    return AudioChunk(
        sequence_id=sequence_id,
        data=b"\x00" * size,
        started_at=float(sequence_id),
        ended_at=float(sequence_id) + size / 32000.0,
        sample_rate=SAMPLE_RATE,
        voiced_ms=1000,
        generation=generation,
    )


class FakeTranscriber:
    """Scripted transcription service.

    ``replies`` maps sequence id to text or an exception; ``gate`` (when set)
    holds every request until the test releases it.
    """

    def __init__(self, replies: dict | None = None, default: str = "hello") -> None:
        self.replies = replies or {}
        self.default = default
        self.calls: List[int] = []
        self.chunks: List[AudioChunk] = []
        self.active = 0
        self.max_active = 0
        self.gate: asyncio.Event | None = None

    async def transcribe(self, chunk: AudioChunk, language: str | None = None) -> TranscriptionResult:
        self.calls.append(chunk.sequence_id)
        self.chunks.append(chunk)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            reply = self.replies.get(chunk.sequence_id, self.default)
            if isinstance(reply, BaseException):
                raise reply
            return TranscriptionResult(text=reply, processing_duration_ms=120)
        finally:
            self.active -= 1


class FakeExtractor:
    def __init__(self, updates: List[CVDocument | Exception] | None = None) -> None:
        self.updates = list(updates or [])
        self.calls: List[tuple[str, CVDocument]] = []

    async def extract(self, text: str, current: CVDocument) -> CVDocument:
        self.calls.append((text, current))
        await asyncio.sleep(0)
        update = self.updates.pop(0) if self.updates else CVDocument()
        if isinstance(update, Exception):
            raise update
        return update


class FakeSource:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.on_buffer: Callable[[bytes], None] | None = None
        self.opened = 0
        self.closed = 0

    @property
    def active(self) -> bool:
        return self.on_buffer is not None

    async def open(self, on_buffer: Callable[[bytes], None]) -> None:
        self.opened += 1
        if self.error is not None:
            raise self.error
        self.on_buffer = on_buffer

    async def close(self) -> None:
        self.closed += 1
        self.on_buffer = None

    def push(self, data: bytes) -> None:
        assert self.on_buffer is not None, "source is not open"
        self.on_buffer(data)


@pytest.fixture()
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture()
def extraction_failure() -> ExtractionError:
    return ExtractionError("service down")


@pytest.fixture()
def transcription_failure() -> TranscriptionError:
    return TranscriptionError("network down")
