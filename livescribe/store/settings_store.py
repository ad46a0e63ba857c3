"""Persistent user settings: endpoint, language and VAD tuning."""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from pathlib import Path

from ..config import ClientSettings, PipelineConfig, preset


@dataclass(slots=True)
class AppSettings:
    server_url: str = ""
    api_key: str = ""
    language: str = ""
    preset: str = "live"
    volume_threshold: float = 0.0
    silence_window_ms: int = 0
    max_chunk_ms: int = 0


class SettingsStore:
    """JSON-backed overrides; zero/empty values mean "use the preset/env default"."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._settings = self._load()

    def _load(self) -> AppSettings:
        if not self.path.exists():
            return AppSettings()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            raw = {}
        settings = AppSettings()
        settings.server_url = str(raw.get("server_url", ""))
        settings.api_key = str(raw.get("api_key", ""))
        settings.language = str(raw.get("language", ""))
        settings.preset = str(raw.get("preset", settings.preset))
        settings.volume_threshold = float(raw.get("volume_threshold", settings.volume_threshold))
        settings.silence_window_ms = int(raw.get("silence_window_ms", settings.silence_window_ms))
        settings.max_chunk_ms = int(raw.get("max_chunk_ms", settings.max_chunk_ms))
        return settings

    def get(self) -> AppSettings:
        return self._settings

    def update(self, **kwargs) -> AppSettings:
        for key, value in kwargs.items():
            if not hasattr(self._settings, key):
                continue
            current = getattr(self._settings, key)
            if isinstance(current, float):
                setattr(self._settings, key, float(value))
            elif isinstance(current, int):
                setattr(self._settings, key, int(value))
            else:
                setattr(self._settings, key, value or "")
        self._persist()
        return self._settings

    def pipeline_config(self) -> PipelineConfig:
        settings = self._settings
        overrides = {
            "volume_threshold": settings.volume_threshold,
            "silence_window_ms": settings.silence_window_ms,
            "max_chunk_ms": settings.max_chunk_ms,
        }
        return preset(settings.preset or "live", **{k: v for k, v in overrides.items() if v})

    def client_settings(self, base: ClientSettings) -> ClientSettings:
        settings = self._settings
        overrides = {
            "server_url": settings.server_url,
            "api_key": settings.api_key,
            "language": settings.language,
        }
        return base.model_copy(update={k: v for k, v in overrides.items() if v})

    def _persist(self) -> None:
        self.path.write_text(json.dumps(asdict(self._settings)), encoding="utf-8")
