"""Dataclasses shared across audio helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Activity(str, Enum):
    SILENT = "silent"
    SPEAKING = "speaking"


class CutReason(str, Enum):
    SILENCE = "silence"
    TIMER = "timer"
    FLUSH = "flush"


@dataclass(slots=True)
class ActivityState:
    """VAD state; ``last_above_threshold`` is None until the first voiced sample."""

    activity: Activity = Activity.SILENT
    last_transition: float = 0.0
    last_above_threshold: float | None = None

    @property
    def speaking(self) -> bool:
        return self.activity is Activity.SPEAKING


@dataclass(frozen=True, slots=True)
class UtteranceBoundary:
    timestamp: float


@dataclass(frozen=True, slots=True)
class AudioChunk:
    """Finalized span of int16 PCM handed to the dispatcher.

    Timestamps are seconds on the session clock. ``generation`` tags the
    recording session that produced the chunk so late results can be ignored.
    """

    sequence_id: int
    data: bytes
    started_at: float
    ended_at: float
    sample_rate: int
    channels: int = 1
    voiced_ms: int = 0
    reason: CutReason = CutReason.FLUSH
    generation: int = 0

    def __post_init__(self) -> None:
        if self.ended_at <= self.started_at:
            raise ValueError(
                f"chunk {self.sequence_id} ends at {self.ended_at} before it starts at {self.started_at}"
            )

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def duration(self) -> float:
        return self.ended_at - self.started_at

    @property
    def audio_seconds(self) -> float:
        return self.size / float(self.sample_rate * self.channels * 2)
