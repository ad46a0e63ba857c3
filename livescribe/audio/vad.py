"""Threshold voice activity detector with a continuous-silence window."""

from __future__ import annotations

import logging

from .types import Activity, ActivityState, UtteranceBoundary

LOGGER = logging.getLogger("livescribe.vad")


class VoiceActivityDetector:
    """Tracks Silent/Speaking from level scores.

    Speaking starts on the first score above ``threshold``. Speaking ends only
    once every score for ``silence_window_ms`` has stayed at or below it; that
    transition yields exactly one ``UtteranceBoundary``.
    """

    def __init__(self, threshold: float, silence_window_ms: int) -> None:
        self.threshold = float(threshold)
        self.silence_window = silence_window_ms / 1000.0
        self.state = ActivityState()

    @property
    def speaking(self) -> bool:
        return self.state.speaking

    def reset(self, now: float) -> None:
        self.state = ActivityState(last_transition=now)

    def observe(self, score: float, now: float) -> UtteranceBoundary | None:
        state = self.state
        if score > self.threshold:
            state.last_above_threshold = now
            if not state.speaking:
                state.activity = Activity.SPEAKING
                state.last_transition = now
                LOGGER.debug("speech started at %.3f (score %.1f)", now, score)
            return None
        if not state.speaking:
            return None
        last = state.last_above_threshold if state.last_above_threshold is not None else state.last_transition
        if now - last < self.silence_window:
            return None
        state.activity = Activity.SILENT
        state.last_transition = now
        LOGGER.debug("utterance boundary at %.3f", now)
        return UtteranceBoundary(timestamp=now)

    def clear_pending(self, now: float) -> None:
        """Drop back to Silent without a boundary after a forced cut."""
        if self.state.speaking:
            self.state.activity = Activity.SILENT
            self.state.last_transition = now

    def set_threshold(self, value: float) -> None:
        self.threshold = float(value)

    def set_silence_window(self, value_ms: int) -> None:
        self.silence_window = value_ms / 1000.0
