"""Typed failures raised across the capture/transcription boundary."""

from __future__ import annotations


class LiveScribeError(Exception):
    pass


class DeviceError(LiveScribeError):
    """Input device could not be acquired (missing, busy or permission denied)."""


class TranscriptionError(LiveScribeError):
    pass


class ExtractionError(LiveScribeError):
    pass


class DocumentNotFoundError(LiveScribeError, KeyError):
    def __init__(self, document_id: int) -> None:
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id

    def __str__(self) -> str:
        return self.args[0]
