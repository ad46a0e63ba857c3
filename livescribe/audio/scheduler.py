"""Chunk accumulation, cut decisions and the minimum-size gate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..config import PipelineConfig
from ..metrics import CHUNK_BYTES, CHUNK_COUNTER
from .types import AudioChunk, CutReason

LOGGER = logging.getLogger("livescribe.scheduler")


@dataclass(slots=True)
class SchedulerStats:
    captured_bytes: int = 0
    dispatched_bytes: int = 0
    discarded_bytes: int = 0
    dispatched_chunks: int = 0
    discarded_chunks: int = 0
    flushes: int = 0


class ChunkScheduler:
    """Accumulates raw buffers and finalizes them into chunks.

    A cut happens on an utterance boundary, when the max-duration deadline
    passes, or on the final flush. Every cut re-arms the deadline, so the two
    triggers never both fire for the same span of audio.
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
        self.on_chunk = on_chunk
        self.on_discard = on_discard
        self.generation = generation
        self.stats = SchedulerStats()
        self._buffers: List[bytes] = []
        self._pending_bytes = 0
        self._voiced_bytes = 0
        self._started_at: float | None = None
        self._last_at: float | None = None
        self._next_sequence = first_sequence
        self.deadline: float | None = None

    @property
    def pending_bytes(self) -> int:
        return self._pending_bytes

    @property
    def pending_voiced_ms(self) -> int:
        return int(round(self._seconds(self._voiced_bytes) * 1000))

    @property
    def next_sequence(self) -> int:
        return self._next_sequence

    def start(self, now: float) -> None:
        self.rearm(now)

    def append(self, data: bytes, now: float, *, voiced: bool = False) -> None:
        if not data:
            return
        if self._started_at is None:
            self._started_at = now - self._seconds(len(data))
        self._last_at = now
        self._buffers.append(bytes(data))
        self._pending_bytes += len(data)
        if voiced:
            self._voiced_bytes += len(data)
        self.stats.captured_bytes += len(data)

    def due(self, now: float) -> bool:
        return self.deadline is not None and now >= self.deadline

    def cut(self, now: float, reason: CutReason) -> Optional[AudioChunk]:
        """Finalize the accumulator; returns the chunk only if it was dispatched."""
        self.rearm(now)
        chunk = self._finalize(reason)
        if chunk is None:
            return None
        if not self._passes_gate(chunk):
            self.stats.discarded_bytes += chunk.size
            self.stats.discarded_chunks += 1
            CHUNK_COUNTER.labels(outcome="discarded").inc()
            CHUNK_BYTES.labels(outcome="discarded").inc(chunk.size)
            LOGGER.debug(
                "chunk %d discarded (%d bytes, %d ms voiced, %s)",
                chunk.sequence_id,
                chunk.size,
                chunk.voiced_ms,
                reason.value,
            )
            if self.on_discard:
                self.on_discard(chunk)
            return None
        self.stats.dispatched_bytes += chunk.size
        self.stats.dispatched_chunks += 1
        CHUNK_COUNTER.labels(outcome="dispatched").inc()
        CHUNK_BYTES.labels(outcome="dispatched").inc(chunk.size)
        self.on_chunk(chunk)
        return chunk

    def flush(self, now: float) -> Optional[AudioChunk]:
        self.stats.flushes += 1
        chunk = self.cut(now, CutReason.FLUSH)
        self.deadline = None
        return chunk

    def min_bytes_for(self, elapsed_s: float) -> int:
        scaled = int(elapsed_s * self.config.min_bytes_per_second)
        return max(self.config.min_chunk_bytes, scaled)

    def _passes_gate(self, chunk: AudioChunk) -> bool:
        if chunk.size < self.min_bytes_for(chunk.duration):
            return False
        return chunk.voiced_ms >= self.config.min_speech_ms

    def _finalize(self, reason: CutReason) -> Optional[AudioChunk]:
        if not self._buffers or self._started_at is None or self._last_at is None:
            return None
        data = b"".join(self._buffers)
        started_at = self._started_at
        ended_at = max(self._last_at, started_at + self._seconds(len(data)))
        voiced_ms = self.pending_voiced_ms
        chunk = AudioChunk(
            sequence_id=self._next_sequence,
            data=data,
            started_at=started_at,
            ended_at=ended_at,
            sample_rate=self.config.sample_rate,
            channels=self.config.channels,
            voiced_ms=voiced_ms,
            reason=reason,
            generation=self.generation,
        )
        self._next_sequence += 1
        self._buffers = []
        self._pending_bytes = 0
        self._voiced_bytes = 0
        self._started_at = None
        self._last_at = None
        return chunk

    def rearm(self, now: float) -> None:
        self.deadline = now + self.config.max_chunk_ms / 1000.0

    def _seconds(self, size: int) -> float:
        return size / float(self.config.bytes_per_second)
