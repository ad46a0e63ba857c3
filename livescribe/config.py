"""Pipeline tuning and client settings resolved from the environment."""

from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from typing import Dict

from pydantic import BaseModel, Field


class DispatchPolicy(str, Enum):
    """What the dispatcher does with a chunk that arrives while one is in flight."""

    DROP = "drop"
    LATEST = "latest"


class PipelineConfig(BaseModel):
    volume_threshold: float = Field(default=12.0, ge=0.0, le=100.0)
    silence_window_ms: int = Field(default=1200, gt=0)
    max_chunk_ms: int = Field(default=5000, gt=0)
    min_chunk_bytes: int = Field(default=15000, ge=0)
    min_bytes_per_second: int = Field(default=16000, ge=0)
    min_speech_ms: int = Field(default=400, ge=0)
    dispatch_policy: DispatchPolicy = Field(default=DispatchPolicy.DROP)
    sample_rate: int = Field(default=16000, gt=0)
    channels: int = Field(default=1, ge=1)
    buffer_ms: int = Field(default=100, gt=0)
    level_interval_ms: int = Field(default=16, gt=0)

    @property
    def bytes_per_second(self) -> int:
        # int16 PCM
        return self.sample_rate * self.channels * 2

    @property
    def frames_per_buffer(self) -> int:
        return max(1, int(self.sample_rate * self.buffer_ms / 1000))


PRESETS: Dict[str, PipelineConfig] = {
    "live": PipelineConfig(),
    "document": PipelineConfig(
        volume_threshold=15.0,
        silence_window_ms=2000,
        max_chunk_ms=25000,
        min_chunk_bytes=20000,
        min_speech_ms=1000,
        dispatch_policy=DispatchPolicy.LATEST,
    ),
}


def preset(name: str, **overrides) -> PipelineConfig:
    try:
        base = PRESETS[name]
    except KeyError as exc:
        raise ValueError(f"Unknown preset '{name}' (choose from {', '.join(sorted(PRESETS))})") from exc
    if not overrides:
        return base.model_copy()
    return base.model_copy(update=overrides)


class ClientSettings(BaseModel):
    server_url: str = Field(default=os.getenv("LIVESCRIBE_SERVER_URL", "http://localhost:3000"))
    transcribe_path: str = Field(
        default=os.getenv("LIVESCRIBE_TRANSCRIBE_PATH", "/api/transcribe-live")
    )
    extract_path: str = Field(default=os.getenv("LIVESCRIBE_EXTRACT_PATH", "/api/extract-cv"))
    api_key: str | None = Field(default=os.getenv("LIVESCRIBE_API_KEY"))
    language: str | None = Field(default=os.getenv("LIVESCRIBE_LANGUAGE"))
    request_timeout: float = Field(default=float(os.getenv("LIVESCRIBE_REQUEST_TIMEOUT", "30")))
    data_dir: str = Field(default=os.getenv("LIVESCRIBE_DATA_DIR", "data"))
    preset: str = Field(default=os.getenv("LIVESCRIBE_PRESET", "live"))
    log_history: int = Field(default=int(os.getenv("LIVESCRIBE_LOG_HISTORY", "200")))


@lru_cache()
def get_settings() -> ClientSettings:
    return ClientSettings()
