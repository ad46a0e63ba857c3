"""Transcript exports: plain text, numbered text and structured JSON."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List

from ..services.assembler import TranscriptSegment


def export_text(segments: Iterable[TranscriptSegment], separator: str = " ") -> str:
    return separator.join(segment.text for segment in segments)


def export_numbered(segments: Iterable[TranscriptSegment]) -> str:
    blocks = [
        f"[{order}] {segment.created_at.strftime('%H:%M:%S')}\n{segment.text}\n"
        for order, segment in enumerate(segments, start=1)
    ]
    return "\n".join(blocks)


def word_count(segments: Iterable[TranscriptSegment]) -> int:
    return sum(len(segment.text.split()) for segment in segments)


def export_structured(segments: Iterable[TranscriptSegment], *, exported_at: datetime | None = None) -> dict[str, Any]:
    segments = list(segments)
    items: List[dict[str, Any]] = []
    for order, segment in enumerate(segments, start=1):
        item: dict[str, Any] = {
            "order": order,
            "sequenceId": segment.sequence_id,
            "text": segment.text,
            "timestamp": _isoformat(segment.created_at),
            "processingDurationMs": segment.processing_duration_ms,
        }
        if segment.confidence_band:
            item["confidenceBand"] = segment.confidence_band
        items.append(item)
    return {
        "segments": items,
        "totalWords": word_count(segments),
        "exportedAt": _isoformat(exported_at or datetime.now(timezone.utc)),
    }


class TranscriptStore:
    """Writes transcript exports into a directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def save_text(self, segments: Iterable[TranscriptSegment], name: str | None = None, *, numbered: bool = True) -> Path:
        segments = list(segments)
        content = export_numbered(segments) if numbered else export_text(segments, "\n\n")
        path = self.directory / f"{name or self._stem()}.txt"
        path.write_text(content, encoding="utf-8")
        return path

    def save_json(self, segments: Iterable[TranscriptSegment], name: str | None = None) -> Path:
        path = self.directory / f"{name or self._stem()}.json"
        path.write_text(json.dumps(export_structured(segments), ensure_ascii=False, indent=2), encoding="utf-8")
        return path

    @staticmethod
    def _stem() -> str:
        return f"transcript-{int(datetime.now(timezone.utc).timestamp() * 1000)}"


def _isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


__all__ = ["TranscriptStore", "export_numbered", "export_structured", "export_text", "word_count"]
