"""Audio files loaded in full for plugins, with Hermite resampling.

Files are read from RIFF/WAVE containers holding integer PCM (8, 16, 24 or
32 bits) or IEEE float (32 or 64 bits) samples. Integer samples are scaled so
that full negative scale maps to -1.0.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any

import numpy as np

__all__ = ["UnsupportedFormatError", "hermite4", "AudioFile"]

_PCM = 0x0001
_FLOAT = 0x0003
_EXTENSIBLE = 0xFFFE


class UnsupportedFormatError(ValueError):
    """Raised when no available codec can read a file."""


def hermite4(offset: Any, ym1: Any, y0: Any, y1: Any, y2: Any) -> Any:
    """Four-point Hermite interpolation between ``y0`` and ``y1`` at ``offset``.

    Works element-wise on numpy arrays as well as on plain numbers.
    """
    c = (y1 - ym1) * 0.5
    v = y0 - y1
    w = c + v
    a = w + v + (y2 - y0) * 0.5
    b_neg = w + a
    return (((a * offset) - b_neg) * offset + c) * offset + y0


def _decode_samples(raw: bytes, tag: int, bits: int) -> np.ndarray:
    if tag == _PCM:
        if bits == 8:
            values = np.frombuffer(raw, dtype=np.uint8).astype(np.float64) - 128.0
            return values / 128.0
        if bits == 16:
            return np.frombuffer(raw, dtype="<i2").astype(np.float64) / (1 << 15)
        if bits == 24:
            triples = np.frombuffer(raw, dtype=np.uint8).reshape(-1, 3).astype(np.int64)
            values = triples[:, 0] | (triples[:, 1] << 8) | (triples[:, 2] << 16)
            values = np.where(values >= 1 << 23, values - (1 << 24), values)
            return values.astype(np.float64) / (1 << 23)
        if bits == 32:
            return np.frombuffer(raw, dtype="<i4").astype(np.float64) / (1 << 31)
    elif tag == _FLOAT:
        if bits == 32:
            return np.frombuffer(raw, dtype="<f4").astype(np.float64)
        if bits == 64:
            return np.frombuffer(raw, dtype="<f8")
    raise UnsupportedFormatError(f"unsupported sample encoding (tag {tag:#x}, {bits} bits)")


def _decode_wav(raw: bytes) -> tuple[float, np.ndarray]:
    if len(raw) < 12 or raw[:4] != b"RIFF" or raw[8:12] != b"WAVE":
        raise UnsupportedFormatError("not a RIFF/WAVE stream")

    fmt: bytes | None = None
    data: bytes | None = None
    position = 12
    while position + 8 <= len(raw):
        chunk_id = raw[position : position + 4]
        (size,) = struct.unpack_from("<I", raw, position + 4)
        body = raw[position + 8 : position + 8 + size]
        if chunk_id == b"fmt ":
            fmt = body
        elif chunk_id == b"data":
            data = body
        position += 8 + size + (size & 1)

    if fmt is None or data is None or len(fmt) < 16:
        raise UnsupportedFormatError("missing format or data chunk")

    tag, channels, rate, _, _, bits = struct.unpack_from("<HHIIHH", fmt)
    if tag == _EXTENSIBLE and len(fmt) >= 26:
        (tag,) = struct.unpack_from("<H", fmt, 24)
    if channels == 0 or bits == 0:
        raise UnsupportedFormatError("stream declares no channels or no sample size")

    frame_bytes = channels * ((bits + 7) // 8)
    frames = len(data) // frame_bytes
    samples = _decode_samples(data[: frames * frame_bytes], tag, bits)
    columns = samples.reshape(frames, channels).T.astype(np.float32)
    return float(rate), np.ascontiguousarray(columns)


@dataclass
class AudioFile:
    """Audio held as one float32 row per channel."""

    name: str
    sample_rate: float
    data: np.ndarray
    fractional_length: float | None = None

    def __post_init__(self) -> None:
        data = np.asarray(self.data, dtype=np.float32)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        if data.ndim != 2:
            raise ValueError(f"audio data must be (channels, samples), got shape {data.shape}")
        self.data = data
        if self.fractional_length is None:
            self.fractional_length = float(data.shape[1])

    @property
    def channels(self) -> int:
        return int(self.data.shape[0])

    @property
    def samples(self) -> int:
        return int(self.data.shape[1])

    @classmethod
    def from_path(cls, path: str | PathLike[str]) -> "AudioFile":
        """Load a whole audio file."""
        file = Path(path)
        if not file.is_file():
            raise FileNotFoundError(f"File not found: {file}")
        try:
            sample_rate, data = _decode_wav(file.read_bytes())
        except UnsupportedFormatError as error:
            raise UnsupportedFormatError(f"No available codecs for: {file}") from error
        return cls(file.name, sample_rate, data)

    def resampled(self, sample_rate: float) -> "AudioFile":
        """A copy of this audio at another sample rate, by Hermite interpolation."""
        if sample_rate <= 0:
            raise ValueError(f"sample rate must be positive, got {sample_rate}")
        if sample_rate == self.sample_rate:
            raise ValueError("audio is already at the requested sample rate")

        source_samples = self.samples
        channels = self.channels
        fractional = source_samples * sample_rate / self.sample_rate

        if source_samples == 0:
            empty = np.zeros((channels, 0), dtype=np.float32)
            return AudioFile(self.name, sample_rate, empty, fractional)

        count = math.ceil(source_samples * (sample_rate / self.sample_rate))
        inverse_ratio = self.sample_rate / sample_rate

        x = np.arange(count, dtype=np.float64) * inverse_ratio
        x0 = x.astype(np.int64)
        offset = (x - x0).astype(np.float32)

        # Column j of the padded block holds source sample j - 1; reads past
        # either end land on zeros.
        padded = np.zeros((channels, source_samples + 4), dtype=np.float32)
        padded[:, 1 : source_samples + 1] = self.data
        last = padded.shape[1] - 1

        def taps(shift: int) -> np.ndarray:
            return padded[:, np.clip(x0 + shift, 0, last)]

        result = hermite4(offset, taps(0), taps(1), taps(2), taps(3))
        return AudioFile(self.name, sample_rate, result.astype(np.float32), fractional)