"""Audio capture, level sampling, VAD and chunk scheduling."""

from .pipeline import SegmentationPipeline
from .types import AudioChunk, CutReason, UtteranceBoundary

__all__ = ["AudioChunk", "CutReason", "SegmentationPipeline", "UtteranceBoundary"]
