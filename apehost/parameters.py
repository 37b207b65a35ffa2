"""Parameters created by plugins, bound to the plugin's parameter slots."""

from __future__ import annotations

import math
import re
import threading
from dataclasses import dataclass
from typing import Sequence

from .commands import (
    Normalizer,
    ParameterRecord,
    ParameterType,
    Transformer,
    linear_normalize,
    linear_scale,
)
from .parameter_manager import ExternalParameterTraits

__all__ = [
    "ParameterSlot",
    "PluginParameter",
    "NormalParameter",
    "BooleanParameter",
    "ListParameter",
]

_NUMBER = re.compile(r"\s*([-+]?(?:inf(?:inity)?|(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?))", re.I)
_TRUE_WORDS = {"true", "on", "yes", "1"}
_FALSE_WORDS = {"false", "off", "no", "0"}


@dataclass
class ParameterSlot:
    """The plugin-visible state of a parameter for the current block."""

    next: float = 0.0
    old: float = 0.0
    step: float = 0.0
    changed: bool = False


def _leading_number(text: str) -> float:
    match = _NUMBER.match(text)
    if match is None:
        raise ValueError(f"cannot interpret {text!r} as a number")
    return float(match.group(1))


def _is_decibel_units(text: str) -> bool:
    return "db" in text or "dB" in text


class PluginParameter(ExternalParameterTraits):
    """A parameter whose values are swapped into a plugin's slot once per block."""

    def __init__(self, slot: ParameterSlot | None = None) -> None:
        self.slot = slot if slot is not None else ParameterSlot()
        self._next_value = self.slot.next
        self._flag = False
        self._flag_lock = threading.Lock()

    @classmethod
    def from_record(cls, record: ParameterRecord) -> "PluginParameter":
        """Create the parameter a record describes."""
        if record.type is ParameterType.SCALED_FLOAT:
            return NormalParameter(
                record.name,
                record.unit,
                record.value,
                record.transformer,
                record.normalizer,
                record.minimum,
                record.maximum,
            )
        if record.type is ParameterType.BOOLEAN:
            return BooleanParameter(record.name, record.value)
        if record.type is ParameterType.LIST:
            return ListParameter(record.name, record.value, record.values)
        raise ValueError("Unknown mapping from parameter record to plugin parameter")

    @property
    def value(self) -> float:
        """The value the plugin is heading for in the current block."""
        return self.slot.next

    def set_parameter_realtime(self, value: float) -> None:
        """Queue a new value for the next block."""
        with self._flag_lock:
            self._next_value = float(value)
            self._flag = True

    def swap_parameters(self, frame_size: int) -> None:
        """Advance the slot to the queued value, with a per-sample step over the block."""
        if frame_size <= 0:
            raise ValueError(f"frame size must be positive, got {frame_size}")
        with self._flag_lock:
            changed, self._flag = self._flag, False
            next_value = self._next_value
        slot = self.slot
        slot.old = slot.next
        slot.next = next_value
        slot.step = (slot.next - slot.old) / frame_size
        slot.changed = changed


class NormalParameter(PluginParameter):
    """A continuous parameter scaled onto [minimum, maximum], with a unit."""

    def __init__(
        self,
        name: str,
        unit: str,
        slot: ParameterSlot | None,
        transformer: Transformer | None,
        normalizer: Normalizer | None,
        minimum: float,
        maximum: float,
    ) -> None:
        super().__init__(slot)
        self._name = name
        self.unit = unit
        self._transformer = transformer or linear_scale
        self._normalizer = normalizer or linear_normalize
        self.minimum = minimum
        self.maximum = maximum
        self._is_db = _is_decibel_units(unit)

    def format(self, value: float) -> str:
        number = format(float(value), ".6g")
        return f"{number} {self.unit}" if self.unit else number

    def interpret(self, text: str) -> float:
        """Parse a number, ignoring a trailing unit.

        Text in decibels given to a parameter that is not itself in decibels is
        converted to a linear amplitude.
        """
        if not self._is_db and _is_decibel_units(text):
            decibels = _leading_number(text)
            if math.isinf(decibels) and decibels < 0:
                return 0.0
            return 10.0 ** (decibels / 20.0)
        return _leading_number(text)

    def transform(self, value: float) -> float:
        return self._transformer(value, self.minimum, self.maximum)

    def normalize(self, value: float) -> float:
        return self._normalizer(value, self.minimum, self.maximum)

    def name(self) -> str:
        return self._name


class BooleanParameter(PluginParameter):
    """An on/off parameter."""

    def __init__(self, name: str, slot: ParameterSlot | None) -> None:
        super().__init__(slot)
        self._name = name

    def format(self, value: float) -> str:
        return "true" if value > 0.5 else "false"

    def interpret(self, text: str) -> float:
        word = text.strip().lower()
        if word in _TRUE_WORDS:
            return 1.0
        if word in _FALSE_WORDS:
            return 0.0
        return 1.0 if _leading_number(word) > 0.5 else 0.0

    def transform(self, value: float) -> float:
        return 1.0 if value > 0.5 else 0.0

    def normalize(self, value: float) -> float:
        return 1.0 if value > 0.5 else 0.0

    def name(self) -> str:
        return self._name


class ListParameter(PluginParameter):
    """A parameter choosing one of a list of named values.

    Transformed values are indices into the list.
    """

    def __init__(self, name: str, slot: ParameterSlot | None, values: Sequence[str]) -> None:
        super().__init__(slot)
        self._name = name
        self.values = list(values)

    def _index(self, value: float) -> int:
        last = len(self.values) - 1
        return min(max(int(math.floor(float(value) + 0.5)), 0), max(last, 0))

    def format(self, value: float) -> str:
        if not self.values:
            raise ValueError(f"parameter {self._name!r} has no values")
        return self.values[self._index(value)]

    def interpret(self, text: str) -> float:
        wanted = text.strip().lower()
        for index, choice in enumerate(self.values):
            if choice.lower() == wanted:
                return float(index)
        raise ValueError(f"{text!r} is not one of {self.values}")

    def transform(self, value: float) -> float:
        steps = len(self.values) - 1
        if steps <= 0:
            return 0.0
        clamped = min(max(float(value), 0.0), 1.0)
        return float(math.floor(clamped * steps + 0.5))

    def normalize(self, value: float) -> float:
        steps = len(self.values) - 1
        if steps <= 0:
            return 0.0
        return self._index(value) / steps

    def name(self) -> str:
        return self._name

    def quantization(self) -> int:
        return len(self.values)