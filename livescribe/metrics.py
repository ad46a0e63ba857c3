"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

CHUNK_COUNTER = Counter(
    "livescribe_chunks_total",
    "Chunks finalized by the scheduler",
    labelnames=("outcome",),
)

CHUNK_BYTES = Counter(
    "livescribe_chunk_bytes_total",
    "Audio bytes finalized by the scheduler",
    labelnames=("outcome",),
)

DISPATCH_COUNTER = Counter(
    "livescribe_dispatch_total",
    "Transcription dispatch outcomes",
    labelnames=("status",),
)

TRANSCRIBE_LATENCY = Histogram(
    "livescribe_transcribe_latency_seconds",
    "Round trip of one transcription request",
)

EXTRACTION_COUNTER = Counter(
    "livescribe_extraction_total",
    "Structured extraction outcomes",
    labelnames=("status",),
)
