"""Bounded status log shown to the user, mirrored into ``logging``."""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Deque, List

LOGGER = logging.getLogger("livescribe.status")


class LogBuffer:
    def __init__(self, max_lines: int = 200) -> None:
        self._lines: Deque[str] = deque(maxlen=max(1, int(max_lines)))
        self._lock = threading.Lock()

    def add(self, message: str, *, level: int = logging.INFO) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        with self._lock:
            self._lines.append(f"[{stamp}] {message}")
        LOGGER.log(level, message)

    def get(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def last(self) -> str:
        with self._lock:
            return self._lines[-1] if self._lines else ""

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def __len__(self) -> int:
        return len(self._lines)


__all__ = ["LogBuffer"]
