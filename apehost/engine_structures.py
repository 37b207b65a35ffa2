"""Auxiliary data structures used by the audio engine."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import numpy as np

__all__ = [
    "PluginExchangeReason",
    "TransientPluginOptions",
    "EngineCommandType",
    "linear_filter",
    "AuxMatrix",
    "ChannelNamePool",
    "TracerState",
    "EngineCommand",
    "TRACE_CAP",
]

TRACE_CAP = 10
_NAME_LENGTH = 100


class PluginExchangeReason(enum.Flag):
    """Why a plugin was handed between the engine and the controller."""

    EXCHANGED = 1 << 0
    CRASH = 1 << 1


class TransientPluginOptions(enum.IntFlag):
    """Options travelling with a plugin being transferred to the engine."""

    NONE = 0
    ALWAYS_TAKE_ENGINE_VALUE = 1


class EngineCommandType(enum.Enum):
    TRANSFER = 7


def _interpolate(buffer: np.ndarray, positions: np.ndarray) -> np.ndarray:
    size = len(buffer)
    base = np.floor(positions).astype(np.int64)
    fraction = positions - base

    def sample(index: np.ndarray) -> np.ndarray:
        inside = (index >= 0) & (index < size)
        clipped = np.clip(index, 0, max(size - 1, 0))
        taken = buffer[clipped] if size else np.zeros(len(index), dtype=np.float64)
        return np.where(inside, taken, 0.0)

    y0 = sample(base)
    y1 = sample(base + 1)
    return y0 + fraction * (y1 - y0)


def linear_filter(buffer: Sequence[float], x: float) -> float:
    """Linearly interpolate ``buffer`` at fractional position ``x``; zero outside."""
    data = np.asarray(buffer, dtype=np.float64)
    return float(_interpolate(data, np.asarray([x], dtype=np.float64))[0])


class AuxMatrix:
    """A set of equally long float32 channels sharing one growable storage block."""

    def __init__(self) -> None:
        self._length = 0
        self._data = np.zeros(0, dtype=np.float32)
        self._rows: list[np.ndarray | None] = []

    def resize_channels(self, length: int) -> None:
        """Set the channel count; new channels are unbound until the next buffer resize."""
        del self._rows[length:]
        self._rows.extend([None] * (length - len(self._rows)))

    def soft_buffer_resize(self, length: int) -> None:
        """Set the channel length, growing (never shrinking) the shared storage."""
        needed = length * len(self._rows)
        if needed > self._data.size:
            grown = np.zeros(needed, dtype=np.float32)
            grown[: self._data.size] = self._data
            self._data = grown
        self._rows = [self._data[length * i : length * (i + 1)] for i in range(len(self._rows))]
        self._length = length

    def _row(self, index: int) -> np.ndarray:
        row = self._rows[index]
        if row is None:
            raise ValueError(f"channel {index} has no buffer; call soft_buffer_resize first")
        return row

    def copy(self, buffers: Iterable[Sequence[float]], index: int) -> None:
        """Copy each buffer into consecutive channels starting at ``index``."""
        for offset, buffer in enumerate(buffers):
            source = np.asarray(buffer, dtype=np.float32)
            self._row(index + offset)[:] = source[: self._length]

    def accumulate(
        self, buffers: Iterable[Sequence[float]], index: int, start: float, end: float
    ) -> None:
        """Add each buffer, scaled by a ramp from ``start`` to ``end``, into the channels."""
        length = self._length
        with np.errstate(divide="ignore", invalid="ignore"):
            progress = np.arange(length, dtype=np.float32) / np.float32(length - 1)
            ramp = np.float32(start) + progress * np.float32(end - start)
            for offset, buffer in enumerate(buffers):
                source = np.asarray(buffer, dtype=np.float32)[:length]
                self._row(index + offset)[:] += source * ramp

    def clear(self, index: int, count: int) -> None:
        """Zero ``count`` channels starting at ``index``."""
        for channel in range(index, index + count):
            self._row(channel)[:] = 0.0

    def copy_resample(self, buffer: Sequence[float], index: int) -> None:
        """Copy ``buffer`` into a channel, linearly resampled to the channel length."""
        source = np.asarray(buffer, dtype=np.float32)
        if len(source) == self._length:
            self.copy([source], index)
            return
        ratio = len(source) / self._length
        positions = np.arange(self._length, dtype=np.float64) * ratio
        self._row(index)[:] = _interpolate(source.astype(np.float64), positions)

    def __getitem__(self, index: int) -> np.ndarray | None:
        return self._rows[index]

    def __len__(self) -> int:
        return len(self._rows)


class ChannelNamePool:
    """A stack of fixed-size name buffers, indexed from the top."""

    def __init__(self, initial_count: int, buffer_length: int) -> None:
        self._names = [bytearray(buffer_length) for _ in range(initial_count)]

    def dequeue(self) -> str:
        """Pop the top buffer and return the name it holds."""
        raw = self._names.pop()
        return bytes(raw).split(b"\0", 1)[0].decode("utf-8", errors="replace")

    def enqueue(self, name: str | bytes) -> None:
        """Push a name back onto the pool."""
        self._names.append(bytearray(name.encode("utf-8") if isinstance(name, str) else name))

    def __getitem__(self, index: int) -> bytearray:
        if not 0 <= index < len(self._names):
            raise IndexError(f"name index {index} out of range")
        return self._names[len(self._names) - (1 + index)]

    def __len__(self) -> int:
        return len(self._names)


class TracerState:
    """Collects traces emitted by a plugin into an auxiliary matrix."""

    def __init__(self) -> None:
        self._matrix: AuxMatrix | None = None
        self._pool = ChannelNamePool(TRACE_CAP, _NAME_LENGTH)
        self._num_traces = 0
        self._trace_counter = 0
        self._matrix_offset = 0
        self._first_phase = True

    def begin_phase(self, matrix: AuxMatrix | None, offset: int) -> None:
        self._matrix = matrix
        self._matrix_offset = offset
        self._trace_counter = 0

    def end_phase(self) -> None:
        self._first_phase = False
        self._matrix = None
        self._matrix_offset = 0

    def handle_trace(self, names: Sequence[str | None], values: Sequence[float]) -> None:
        """Record one trace: its name chain (first phase only) and its values."""
        if self._trace_counter >= TRACE_CAP or self._matrix is None:
            return

        if self._first_phase:
            buffer = self._pool[self._num_traces]
            written = 0
            for position, name in enumerate(names):
                if name is None:
                    break
                raw = name.encode("utf-8").split(b"\0", 1)[0]
                count = max(0, min(len(raw), len(buffer) - written))
                buffer[written : written + count] = raw[:count]
                written += count

                if position + 1 < len(names):
                    if written + 4 >= len(buffer):
                        break
                    buffer[written : written + 4] = b" -> "
                    written += 4

            self._num_traces += 1

        channel = self._trace_counter + self._matrix_offset
        if channel >= len(self._matrix):
            return

        self._matrix.copy_resample(values, channel)
        self._trace_counter += 1

    @property
    def changes_pending(self) -> bool:
        return self._first_phase

    @property
    def trace_count(self) -> int:
        return self._num_traces

    def dequeue_name(self) -> str:
        return self._pool.dequeue()


@dataclass
class EngineCommand:
    """A command exchanged between the controller and the audio engine."""

    state: Any
    tracer: TracerState | None
    reason: PluginExchangeReason
    options: TransientPluginOptions = TransientPluginOptions.NONE
    type: EngineCommandType = EngineCommandType.TRANSFER

    @classmethod
    def create(
        cls, state: Any, options: TransientPluginOptions = TransientPluginOptions.NONE
    ) -> "EngineCommand":
        """A transfer of a fresh plugin into the engine, with a new tracer."""
        return cls(state, TracerState(), PluginExchangeReason.EXCHANGED, options)

    @classmethod
    def returned(
        cls, state: Any, tracer: TracerState | None, reason: PluginExchangeReason
    ) -> "EngineCommand":
        """A transfer of a plugin back out of the engine."""
        return cls(state, tracer, reason)


# ``math`` kept for callers computing ramps alongside the matrix.
_ = math