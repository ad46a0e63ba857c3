"""Microphone capture pushing fixed-size int16 buffers."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

from ..config import PipelineConfig
from ..errors import DeviceError

LOGGER = logging.getLogger("livescribe.capture")

BufferCallback = Callable[[bytes], None]


class AudioSource(Protocol):
    """Push-model audio input. ``open`` acquires the device, ``close`` releases it."""

    async def open(self, on_buffer: BufferCallback) -> None: ...

    async def close(self) -> None: ...


class SoundDeviceSource:
    """``AudioSource`` over a sounddevice raw input stream.

    The PortAudio callback runs on its own thread; ``on_buffer`` must be
    thread-safe (the session hops back onto the event loop).
    """

    def __init__(self, config: PipelineConfig, *, device: str | int | None = None) -> None:
        self.config = config
        self.device = device
        self._stream = None
        self._on_buffer: Optional[BufferCallback] = None

    @property
    def active(self) -> bool:
        return self._stream is not None

    async def open(self, on_buffer: BufferCallback) -> None:
        if self._stream is not None:
            return
        self._on_buffer = on_buffer
        await asyncio.to_thread(self._open_stream)

    async def close(self) -> None:
        await asyncio.to_thread(self._close_stream)

    def __enter__(self) -> "SoundDeviceSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self._close_stream()

    def _open_stream(self) -> None:
        try:
            import sounddevice as sd
        except OSError as exc:
            raise DeviceError(f"Audio backend unavailable: {exc}") from exc
        try:
            stream = sd.RawInputStream(
                samplerate=self.config.sample_rate,
                channels=self.config.channels,
                dtype="int16",
                blocksize=self.config.frames_per_buffer,
                device=self.device,
                callback=self._callback,
            )
        except Exception as exc:
            raise DeviceError(f"Microphone unavailable: {exc}") from exc
        try:
            stream.start()
        except Exception as exc:
            stream.close()
            raise DeviceError(f"Microphone could not start: {exc}") from exc
        self._stream = stream
        LOGGER.info(
            "capture started (%d Hz, %d ch, %d ms buffers)",
            self.config.sample_rate,
            self.config.channels,
            self.config.buffer_ms,
        )

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
            LOGGER.info("capture stopped")

    def _callback(self, indata, frames, time_info, status) -> None:  # noqa: ARG002
        if status:
            LOGGER.debug("input status: %s", status)
        if self._on_buffer is not None and frames:
            self._on_buffer(bytes(indata))
