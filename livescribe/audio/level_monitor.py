"""Live input level sampling for voice activity detection."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable

import numpy as np

LOGGER = logging.getLogger("livescribe.level")

FLOOR_DB = -60.0


def level_score(pcm: bytes | np.ndarray, *, floor_db: float = FLOOR_DB) -> float:
    """Map the RMS of an int16 frame onto a 0..100 activity score.

    ``floor_db`` dBFS and below read as 0, full scale reads as 100.
    """
    samples = np.frombuffer(pcm, dtype=np.int16) if isinstance(pcm, (bytes, bytearray, memoryview)) else np.asarray(pcm)
    if samples.size == 0:
        return 0.0
    normalized = samples.astype(np.float32) / 32768.0
    rms = float(np.sqrt(np.mean(normalized ** 2)))
    if rms <= 0.0:
        return 0.0
    dbfs = 20.0 * np.log10(rms)
    score = (dbfs - floor_db) / -floor_db * 100.0
    return float(max(0.0, min(100.0, score)))


class LevelMonitor:
    """Samples the most recent captured frame on a fixed redraw-like cadence."""

    def __init__(self, interval_s: float = 1 / 60, *, floor_db: float = FLOOR_DB) -> None:
        self.interval_s = interval_s
        self.floor_db = floor_db
        self._latest: bytes | None = None
        self._task: asyncio.Task | None = None
        self.level = 0.0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def update(self, frame: bytes) -> None:
        self._latest = frame

    def sample(self) -> float | None:
        if self._latest is None:
            return None
        self.level = level_score(self._latest, floor_db=self.floor_db)
        return self.level

    def start(self, on_level: Callable[[float], None]) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(on_level))

    async def stop(self) -> None:
        task, self._task = self._task, None
        self._latest = None
        self.level = 0.0
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _loop(self, on_level: Callable[[float], None]) -> None:
        while True:
            score = self.sample()
            if score is not None:
                on_level(score)
            await asyncio.sleep(self.interval_s)
