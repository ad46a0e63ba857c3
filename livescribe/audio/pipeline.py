"""Segmentation pipeline: level scores -> VAD -> chunk scheduler."""

from __future__ import annotations

from typing import Callable, Optional

from ..config import PipelineConfig
from .level_monitor import level_score
from .scheduler import ChunkScheduler
from .types import AudioChunk, CutReason
from .vad import VoiceActivityDetector


class SegmentationPipeline:
    """One parameterized capture -> chunk path for every use case.

    The session drives ``append`` from the capture callback, ``observe`` from
    the level sampling loop and ``check_timer`` from the deadline timer.
    ``feed`` runs all three for one buffer, for offline or scripted input.
    """

    def __init__(
        self,
        config: PipelineConfig,
        on_chunk: Callable[[AudioChunk], None],
        *,
        on_discard: Callable[[AudioChunk], None] | None = None,
        generation: int = 0,
        first_sequence: int = 1,
    ) -> None:
        self.config = config
        self.vad = VoiceActivityDetector(config.volume_threshold, config.silence_window_ms)
        self.scheduler = ChunkScheduler(
            config,
            on_chunk,
            on_discard=on_discard,
            generation=generation,
            first_sequence=first_sequence,
        )
        self.closed = False

    @property
    def deadline(self) -> float | None:
        return self.scheduler.deadline

    def start(self, now: float) -> None:
        self.closed = False
        self.vad.reset(now)
        self.scheduler.start(now)

    def append(self, data: bytes, now: float) -> None:
        if self.closed:
            return
        voiced = level_score(data) > self.vad.threshold
        self.scheduler.append(data, now, voiced=voiced)

    def observe(self, score: float, now: float) -> Optional[AudioChunk]:
        if self.closed:
            return None
        boundary = self.vad.observe(score, now)
        if boundary is None:
            return None
        return self.scheduler.cut(boundary.timestamp, CutReason.SILENCE)

    def check_timer(self, now: float) -> Optional[AudioChunk]:
        if self.closed or not self.scheduler.due(now):
            return None
        if self.vad.speaking and self.scheduler.pending_voiced_ms < self.config.min_speech_ms:
            # speech onset right before the deadline; keep it with the rest of the utterance
            self.scheduler.rearm(now)
            return None
        self.vad.clear_pending(now)
        return self.scheduler.cut(now, CutReason.TIMER)

    def feed(self, data: bytes, now: float) -> None:
        self.append(data, now)
        self.observe(level_score(data), now)
        self.check_timer(now)

    def flush(self, now: float) -> Optional[AudioChunk]:
        """Final cut on stop; runs once, later calls are no-ops."""
        if self.closed:
            return None
        self.closed = True
        return self.scheduler.flush(now)
