"""Single-slot dispatcher for chunk transcription requests."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..audio.types import AudioChunk
from ..config import DispatchPolicy
from ..errors import TranscriptionError
from ..metrics import DISPATCH_COUNTER, TRANSCRIBE_LATENCY
from .logger import LogBuffer
from .network import TranscriptionResult, TranscriptionService

LOGGER = logging.getLogger("livescribe.dispatcher")


@dataclass(frozen=True, slots=True)
class DispatchOutcome:
    """Result of one dispatched chunk: exactly one of ``result``/``error`` is set."""

    chunk: AudioChunk
    result: TranscriptionResult | None = None
    error: TranscriptionError | None = None
    submitted_at: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


@dataclass(slots=True)
class DispatchStats:
    sent: int = 0
    succeeded: int = 0
    failed: int = 0
    dropped: int = 0
    coalesced: int = 0
    dropped_bytes: int = 0


OutcomeHandler = Callable[[DispatchOutcome], Awaitable[None]]


class Dispatcher:
    """Keeps at most one request in flight.

    A chunk submitted while busy is dropped (``DispatchPolicy.DROP``) or held
    as the single next chunk, replacing an older held one
    (``DispatchPolicy.LATEST``). The outcome handler runs inside the slot, so
    follow-up work such as extraction never overlaps another request.
    """

    def __init__(
        self,
        service: TranscriptionService,
        on_outcome: OutcomeHandler,
        *,
        policy: DispatchPolicy = DispatchPolicy.DROP,
        language: str | None = None,
        logger: LogBuffer | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.service = service
        self.on_outcome = on_outcome
        self.policy = DispatchPolicy(policy)
        self.language = language
        self.logger = logger
        self.clock = clock
        self.stats = DispatchStats()
        self._in_flight: Optional[AudioChunk] = None
        self._pending: Optional[AudioChunk] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._in_flight is not None

    @property
    def in_flight(self) -> Optional[AudioChunk]:
        return self._in_flight

    @property
    def pending(self) -> Optional[AudioChunk]:
        return self._pending

    def submit(self, chunk: AudioChunk) -> bool:
        """Send now, hold, or drop; True unless the chunk was dropped."""
        if self._in_flight is None:
            self._start(chunk)
            return True
        if self.policy is DispatchPolicy.DROP:
            self.stats.dropped += 1
            self.stats.dropped_bytes += chunk.size
            DISPATCH_COUNTER.labels(status="dropped").inc()
            self._note(f"Chunk {chunk.sequence_id} dropped (request in flight)", logging.WARNING)
            return False
        if self._pending is not None:
            replaced = self._pending
            self.stats.coalesced += 1
            self.stats.dropped_bytes += replaced.size
            DISPATCH_COUNTER.labels(status="coalesced").inc()
            LOGGER.debug("chunk %d replaced by %d", replaced.sequence_id, chunk.sequence_id)
        self._pending = chunk
        return True

    async def drain(self) -> None:
        """Wait until nothing is in flight or held."""
        while self._task is not None:
            await asyncio.shield(self._task)

    def _start(self, chunk: AudioChunk) -> None:
        self._in_flight = chunk
        self.stats.sent += 1
        self._task = asyncio.get_running_loop().create_task(self._run(chunk))

    async def _run(self, chunk: AudioChunk) -> None:
        try:
            outcome = await self._transcribe(chunk)
            try:
                await self.on_outcome(outcome)
            except Exception:
                LOGGER.exception("outcome handler failed for chunk %d", chunk.sequence_id)
        finally:
            self._in_flight = None
            self._task = None
            held, self._pending = self._pending, None
            if held is not None:
                self._start(held)

    async def _transcribe(self, chunk: AudioChunk) -> DispatchOutcome:
        submitted_at = self.clock()
        started = time.perf_counter()
        try:
            result = await self.service.transcribe(chunk, self.language)
        except TranscriptionError as exc:
            error = exc
        except Exception as exc:
            error = TranscriptionError(str(exc) or exc.__class__.__name__)
        else:
            TRANSCRIBE_LATENCY.observe(time.perf_counter() - started)
            self.stats.succeeded += 1
            DISPATCH_COUNTER.labels(status="success").inc()
            LOGGER.debug("chunk %d transcribed (%d chars)", chunk.sequence_id, len(result.text))
            return DispatchOutcome(chunk=chunk, result=result, submitted_at=submitted_at)
        self.stats.failed += 1
        DISPATCH_COUNTER.labels(status="error").inc()
        self._note(f"Transcription failed for chunk {chunk.sequence_id}: {error}", logging.WARNING)
        return DispatchOutcome(chunk=chunk, error=error, submitted_at=submitted_at)

    def _note(self, message: str, level: int = logging.INFO) -> None:
        if self.logger is not None:
            self.logger.add(message, level=level)
        else:
            LOGGER.log(level, message)
