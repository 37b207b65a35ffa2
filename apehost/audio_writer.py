"""Streaming audio from the audio thread to disk without blocking it.

A :class:`StreamProducer` takes blocks of samples on the producing thread and
hands them to a background thread that encodes them into the output file. If
the buffer between the two is full, a write is refused rather than waited on.
"""

from __future__ import annotations

import struct
import threading
from collections import deque
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any, BinaryIO

import numpy as np

__all__ = [
    "BUFFER_SIZE",
    "AudioFormat",
    "WAV_FORMAT",
    "StreamProducer",
    "OutputFileManager",
]

BUFFER_SIZE = 1 << 16


@dataclass(frozen=True)
class AudioFormat:
    """A writable audio file format."""

    name: str
    extensions: tuple[str, ...]
    bit_depths: tuple[int, ...]


WAV_FORMAT = AudioFormat("WAV", (".wav", ".wave", ".bwf"), (8, 16, 24, 32))
_FORMATS = (WAV_FORMAT,)


class _WavWriter:
    """Writes RIFF/WAVE data; 32 bits are stored as IEEE float, fewer as integers."""

    def __init__(self, stream: BinaryIO, sample_rate: float, channels: int, bits: int) -> None:
        self._stream = stream
        self.sample_rate = int(round(sample_rate))
        self.channels = channels
        self.bits = bits
        self._data_size = 0
        self._stream.write(self._header())

    def _header(self) -> bytes:
        tag = 3 if self.bits == 32 else 1
        align = self.channels * (self.bits // 8)
        pad = self._data_size & 1
        fmt = struct.pack(
            "<IHHIIHH", 16, tag, self.channels, self.sample_rate,
            self.sample_rate * align, align, self.bits,
        )
        return (
            b"RIFF" + struct.pack("<I", 36 + self._data_size + pad) + b"WAVE"
            + b"fmt " + fmt + b"data" + struct.pack("<I", self._data_size)
        )

    def _encode(self, block: np.ndarray) -> bytes:
        interleaved = np.nan_to_num(block.T.reshape(-1).astype(np.float64))
        if self.bits == 32:
            return interleaved.astype("<f4").tobytes()
        scale = 1 << (self.bits - 1)
        ints = np.clip(np.round(interleaved * scale), -scale, scale - 1).astype(np.int64)
        if self.bits == 8:
            return (ints + 128).astype(np.uint8).tobytes()
        if self.bits == 16:
            return ints.astype("<i2").tobytes()
        return ints.astype("<i4").view(np.uint8).reshape(-1, 4)[:, :3].tobytes()

    def write(self, block: np.ndarray) -> None:
        encoded = self._encode(block)
        self._stream.write(encoded)
        self._data_size += len(encoded)

    def close(self) -> None:
        try:
            if self._data_size & 1:
                self._stream.write(b"\0")
            self._stream.seek(0)
            self._stream.write(self._header())
        finally:
            self._stream.close()


class StreamProducer:
    """Queues sample blocks for a background thread that writes them to a file."""

    def __init__(self, writer: Any, channels: int, buffer_size: int = BUFFER_SIZE) -> None:
        self._writer = writer
        self._channels = channels
        self._capacity = buffer_size
        self._blocks: deque[np.ndarray] = deque()
        self._pending = 0
        self._closed = False
        self._error: BaseException | None = None
        self._condition = threading.Condition()
        self._thread = threading.Thread(
            target=self._drain, name="Async audio file thread", daemon=True
        )
        self._thread.start()

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: Any) -> bool:
        """Queue one block, shaped (channels, frames); False if the buffer has no room."""
        block = np.atleast_2d(np.asarray(data, dtype=np.float32))
        if block.ndim != 2 or block.shape[0] != self._channels:
            raise ValueError(
                f"expected {self._channels} channels, got data of shape {block.shape}"
            )
        frames = block.shape[1]
        with self._condition:
            if self._closed:
                raise ValueError("write to a closed stream")
            if self._error is not None or self._pending + frames > self._capacity:
                return False
            if frames:
                self._blocks.append(block.copy())
                self._pending += frames
                self._condition.notify_all()
        return True

    def _drain(self) -> None:
        while True:
            with self._condition:
                while not self._blocks and not self._closed:
                    self._condition.wait()
                if not self._blocks:
                    return
                block = self._blocks.popleft()
            try:
                if self._error is None:
                    self._writer.write(block)
            except Exception as error:  # kept and raised again on close
                self._error = error
            with self._condition:
                self._pending -= block.shape[1]
                self._condition.notify_all()

    def close(self) -> None:
        """Write everything still queued and finish the file."""
        with self._condition:
            if self._closed:
                return
            self._closed = True
            self._condition.notify_all()
        self._thread.join()
        self._writer.close()
        if self._error is not None:
            raise self._error

    def __enter__(self) -> "StreamProducer":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class OutputFileManager:
    """Chooses formats for output files and opens streams to them."""

    @classmethod
    def select_format(cls, path: str | PathLike[str]) -> AudioFormat | None:
        """The format matching the path's extension, or None."""
        extension = Path(path).suffix.lower()
        for audio_format in _FORMATS:
            if extension in audio_format.extensions:
                return audio_format
        return None

    @classmethod
    def create_producer(
        cls,
        path: str | PathLike[str],
        sample_rate: float,
        channels: int,
        bits: int,
        quality: int = 0,
    ) -> StreamProducer:
        """Open an output file and return a producer streaming into it.

        ``quality`` applies to compressed formats only and is ignored for WAV.
        """
        file = Path(path)
        audio_format = cls.select_format(file)
        if audio_format is None:
            raise ValueError(f"No audio format for {file}")
        if bits not in audio_format.bit_depths or channels < 1 or sample_rate <= 0:
            raise ValueError(f"Couldn't create audio output file at {file}")
        try:
            stream = file.open("wb")
        except OSError as error:
            raise OSError(f"Couldn't create audio output file at {file}") from error
        try:
            writer = _WavWriter(stream, sample_rate, channels, bits)
        except BaseException:
            stream.close()
            raise
        return StreamProducer(writer, channels, BUFFER_SIZE)