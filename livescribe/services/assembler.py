"""Merges transcription outcomes into the transcript and the CV document."""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..document import CVDocument, completion_score, merge_documents
from ..errors import ExtractionError
from ..metrics import EXTRACTION_COUNTER
from .dispatcher import DispatchOutcome
from .logger import LogBuffer
from .network import ExtractionService

LOGGER = logging.getLogger("livescribe.assembler")


@dataclass(frozen=True, slots=True)
class TranscriptSegment:
    sequence_id: int
    text: str
    created_at: datetime
    processing_duration_ms: int
    confidence_band: str | None = None
    started_at: float = 0.0
    ended_at: float = 0.0


class TranscriptAssembler:
    """Holds the growing transcript and the accumulated document.

    Segments are kept in ``sequence_id`` order, whatever order results arrive
    in. Outcomes tagged with an older generation (a reset or restarted
    session) are ignored.
    """

    def __init__(
        self,
        extractor: ExtractionService | None = None,
        *,
        document: CVDocument | None = None,
        logger: LogBuffer | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.extractor = extractor
        self.document = document or CVDocument()
        self.logger = logger
        self._now = now
        self.generation = 0
        self.segments: List[TranscriptSegment] = []
        self.failed: List[int] = []
        self.empty: List[int] = []

    @property
    def completion(self) -> int:
        return completion_score(self.document)

    def begin_session(self) -> int:
        self.generation += 1
        return self.generation

    def reset(self, document: CVDocument | None = None) -> int:
        self.segments = []
        self.failed = []
        self.empty = []
        self.document = document or CVDocument()
        return self.begin_session()

    def text(self, separator: str = " ") -> str:
        return separator.join(segment.text for segment in self.segments)

    async def handle(self, outcome: DispatchOutcome) -> Optional[TranscriptSegment]:
        chunk = outcome.chunk
        if chunk.generation != self.generation:
            LOGGER.info(
                "ignoring chunk %d from generation %d (current %d)",
                chunk.sequence_id,
                chunk.generation,
                self.generation,
            )
            return None
        result = outcome.result
        if outcome.error is not None or result is None:
            self.failed.append(chunk.sequence_id)
            return None
        text = result.text.strip()
        if not text:
            self.empty.append(chunk.sequence_id)
            self._note(f"No speech detected in chunk {chunk.sequence_id}")
            return None
        segment = TranscriptSegment(
            sequence_id=chunk.sequence_id,
            text=text,
            created_at=self._now(),
            processing_duration_ms=result.processing_duration_ms,
            confidence_band=result.confidence_band,
            started_at=chunk.started_at,
            ended_at=chunk.ended_at,
        )
        self._insert(segment)
        self._note(f"Chunk {chunk.sequence_id} transcribed in {segment.processing_duration_ms} ms")
        if self.extractor is not None:
            await self._extract(text, chunk.generation)
        return segment

    def _insert(self, segment: TranscriptSegment) -> None:
        keys = [item.sequence_id for item in self.segments]
        index = bisect.bisect_right(keys, segment.sequence_id)
        self.segments.insert(index, segment)

    async def _extract(self, text: str, generation: int) -> None:
        extractor = self.extractor
        if extractor is None:
            return
        try:
            update = await extractor.extract(text, self.document)
        except ExtractionError as exc:
            EXTRACTION_COUNTER.labels(status="error").inc()
            self._note(f"Extraction failed, document unchanged: {exc}", logging.WARNING)
            return
        if generation != self.generation:
            LOGGER.info("discarding extraction for stale generation %d", generation)
            return
        self.document = merge_documents(self.document, update)
        EXTRACTION_COUNTER.labels(status="success").inc()
        self._note(f"Document updated ({self.completion}% complete)")

    def _note(self, message: str, level: int = logging.INFO) -> None:
        if self.logger is not None:
            self.logger.add(message, level=level)
        else:
            LOGGER.log(level, message)
