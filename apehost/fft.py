"""Fourier transforms offered to plugins, in single or double precision."""

from __future__ import annotations

import enum
from typing import Any

import numpy as np

__all__ = ["DataType", "FFTOptions", "PluginFFT"]


class DataType(enum.Enum):
    SINGLE = enum.auto()
    DOUBLE = enum.auto()


class FFTOptions(enum.IntFlag):
    """Transform options; without ``FORWARD`` the transform is the inverse."""

    INVERSE = 0
    FORWARD = 1
    REAL = 2
    NON_SCALED = 4


def _transform(signal: np.ndarray, options: FFTOptions) -> np.ndarray:
    if options & FFTOptions.FORWARD:
        return np.fft.fft(signal)
    result = np.fft.ifft(signal)
    if options & FFTOptions.NON_SCALED:
        result = result * len(signal)
    return result


class PluginFFT:
    """A fixed-size FFT; computed in double precision whatever the data type."""

    _real_dtype: Any = np.float64
    _complex_dtype: Any = np.complex128

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError(f"FFT size must be positive, got {size}")
        self._size = size

    @property
    def size(self) -> int:
        return self._size

    @classmethod
    def factory(cls, size: int, data_type: DataType) -> "PluginFFT":
        """Create an FFT of ``size`` points for the given data type."""
        if data_type is DataType.SINGLE:
            return _SingleFFT(size)
        if data_type is DataType.DOUBLE:
            return _DoubleFFT(size)
        raise ValueError("Trying to create an unsupported FFT")

    def transform(self, data: Any, options: FFTOptions) -> np.ndarray:
        """Transform the first ``size`` items of ``data`` and return the complex result.

        With ``REAL`` set, ``data`` holds real samples; otherwise complex ones.
        """
        dtype = self._real_dtype if options & FFTOptions.REAL else self._complex_dtype
        source = np.asarray(data, dtype=dtype).ravel()
        if len(source) < self._size:
            raise ValueError(f"expected at least {self._size} values, got {len(source)}")
        signal = source[: self._size].astype(np.complex128)
        return _transform(signal, options).astype(self._complex_dtype)


class _SingleFFT(PluginFFT):
    _real_dtype = np.float32
    _complex_dtype = np.complex64


class _DoubleFFT(PluginFFT):
    pass