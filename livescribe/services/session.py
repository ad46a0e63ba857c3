"""Recording session: wires capture, VAD chunking, dispatch and assembly."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from enum import Enum
from typing import Callable, Optional

from ..audio.capture import AudioSource
from ..audio.level_monitor import LevelMonitor
from ..audio.pipeline import SegmentationPipeline
from ..audio.types import AudioChunk
from ..config import PipelineConfig
from ..document import CVDocument
from ..errors import DeviceError
from ..store.document_store import DocumentStore
from .assembler import TranscriptAssembler
from .dispatcher import Dispatcher
from .logger import LogBuffer
from .network import ExtractionService, TranscriptionService

LOGGER = logging.getLogger("livescribe.session")


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"


class RecordingSession:
    """One microphone, one VAD, one accumulator and one dispatch slot.

    All session state is touched from the event loop only; the capture
    thread hands buffers over with ``call_soon_threadsafe``.
    """

    def __init__(
        self,
        source: AudioSource,
        transcriber: TranscriptionService,
        *,
        config: PipelineConfig | None = None,
        extractor: ExtractionService | None = None,
        assembler: TranscriptAssembler | None = None,
        language: str | None = None,
        logger: LogBuffer | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.config = config or PipelineConfig()
        self.logger = logger if logger is not None else LogBuffer()
        self.clock = clock
        self.assembler = assembler if assembler is not None else TranscriptAssembler(extractor, logger=self.logger)
        self.dispatcher = Dispatcher(
            transcriber,
            self.assembler.handle,
            policy=self.config.dispatch_policy,
            language=language,
            logger=self.logger,
            clock=clock,
        )
        self.monitor = LevelMonitor(self.config.level_interval_ms / 1000.0)
        self.state = SessionState.IDLE
        self.pipeline: Optional[SegmentationPipeline] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._next_sequence = 1

    @property
    def recording(self) -> bool:
        return self.state is SessionState.RECORDING

    @property
    def document(self) -> CVDocument:
        return self.assembler.document

    async def __aenter__(self) -> "RecordingSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def start(self) -> None:
        if self.state is not SessionState.IDLE:
            return
        self._loop = asyncio.get_running_loop()
        generation = self.assembler.begin_session()
        self.pipeline = SegmentationPipeline(
            self.config,
            self._dispatch,
            on_discard=self._discarded,
            generation=generation,
            first_sequence=self._next_sequence,
        )
        self.state = SessionState.RECORDING
        try:
            await self.source.open(self._on_buffer)
        except DeviceError as exc:
            self.state = SessionState.IDLE
            self.pipeline = None
            await self.source.close()
            self.logger.add(f"Microphone unavailable: {exc}. Check the device and try again.", level=logging.ERROR)
            raise
        try:
            now = self.clock()
            self.pipeline.start(now)
            self.monitor.start(self._on_level)
            self._timer_task = self._loop.create_task(self._deadline_loop())
        except BaseException:
            await self._teardown()
            self.state = SessionState.IDLE
            raise
        self.logger.add("Recording started")

    async def stop(self) -> None:
        """Release the device, flush once, and wait for in-flight work."""
        if self.state is not SessionState.RECORDING:
            return
        self.state = SessionState.STOPPING
        try:
            await self._teardown()
        finally:
            try:
                # let buffers already queued from the capture thread land first
                await asyncio.sleep(0)
                pipeline = self.pipeline
                if pipeline is not None:
                    pipeline.flush(self.clock())
                    self._next_sequence = pipeline.scheduler.next_sequence
                await self.dispatcher.drain()
            finally:
                self.state = SessionState.IDLE
        self.logger.add("Recording stopped")

    def reset(self) -> None:
        """Clear transcript and document; results still in flight are ignored."""
        self.assembler.reset()
        self.logger.add("Transcript cleared")

    def save_document(self, store: DocumentStore, title: str, document_id: int | None = None) -> int:
        if document_id is None:
            document_id = store.create(title, self.assembler.document)
        else:
            store.update(document_id, self.assembler.document)
        self.logger.add(f"Document {document_id} saved ({self.assembler.completion}% complete)")
        return document_id

    async def _teardown(self) -> None:
        timer, self._timer_task = self._timer_task, None
        if timer is not None:
            timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await timer
        try:
            await self.monitor.stop()
        finally:
            await self.source.close()

    def _on_buffer(self, data: bytes) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._ingest, data)

    def _ingest(self, data: bytes) -> None:
        if self.pipeline is None or self.state is SessionState.IDLE:
            return
        self.pipeline.append(data, self.clock())
        if self.state is SessionState.RECORDING:
            self.monitor.update(data)

    def _on_level(self, score: float) -> None:
        if self.pipeline is not None and self.state is SessionState.RECORDING:
            self.pipeline.observe(score, self.clock())

    async def _deadline_loop(self) -> None:
        while True:
            pipeline = self.pipeline
            if pipeline is None or pipeline.deadline is None:
                return
            delay = pipeline.deadline - self.clock()
            if delay > 0:
                await asyncio.sleep(delay)
                continue
            pipeline.check_timer(self.clock())

    def _dispatch(self, chunk: AudioChunk) -> None:
        self.logger.add(f"Chunk {chunk.sequence_id} ready ({chunk.size} bytes, {chunk.reason.value})")
        self.dispatcher.submit(chunk)

    def _discarded(self, chunk: AudioChunk) -> None:
        self.logger.add(f"Chunk {chunk.sequence_id} too small; discarded")
