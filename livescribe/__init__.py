"""Live voice transcription client: capture, VAD chunking, dispatch, assembly."""

__version__ = "0.1.0"

__all__ = ["__version__"]
