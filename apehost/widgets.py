"""Widgets created by plugins: meters, formatted labels and plots."""

from __future__ import annotations

import enum
import math
import sys
from dataclasses import dataclass, field
from typing import Any, Sequence

from .commands import FormatLabelRecord, MeterRecord, PlotRecord, WidgetRecord, WidgetType
from .formatting import ValueRef

__all__ = [
    "PluginWidgetType",
    "PlotTrace",
    "PluginWidget",
    "MeterWidget",
    "LabelWidget",
    "PlotWidget",
]


class PluginWidgetType(enum.Enum):
    METER = enum.auto()
    LABEL = enum.auto()
    PLOT = enum.auto()


def _read(ref: Any) -> float:
    return float(ref.value if isinstance(ref, ValueRef) else ref)


def _clamp_unit(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def _is_normal(value: float) -> bool:
    return math.isfinite(value) and abs(value) >= sys.float_info.min


@dataclass
class PlotTrace:
    """The path of a plot: its points, whether it was rescaled, and whether it is invalid."""

    points: list[tuple[float, float]] = field(default_factory=list)
    scaled: bool = False
    invalid: bool = False


class PluginWidget:
    """A widget created from a plugin's widget record."""

    def __init__(self, widget_type: PluginWidgetType, name: str) -> None:
        self.type = widget_type
        self.name = name

    @classmethod
    def from_record(cls, record: WidgetRecord) -> "PluginWidget":
        """Create the widget a record describes."""
        if not isinstance(record, WidgetRecord):
            raise TypeError(f"{type(record).__name__} is not a widget record")
        if record.widget_type is WidgetType.METER:
            return MeterWidget(record)
        if record.widget_type is WidgetType.PLOT:
            return PlotWidget(record)
        if record.widget_type is WidgetType.LABEL:
            return LabelWidget(record)
        raise ValueError("Unknown mapping from widget record to plugin widget")


class MeterWidget(PluginWidget):
    """A meter showing a live level and an optional live peak, both clamped to [0, 1]."""

    def __init__(self, record: MeterRecord) -> None:
        super().__init__(PluginWidgetType.METER, record.name)
        self._value = record.value
        self._peak = record.peak

    def level(self) -> float:
        return _clamp_unit(_read(self._value))

    def peak(self) -> float | None:
        if self._peak is None:
            return None
        return _clamp_unit(_read(self._peak))


class LabelWidget(PluginWidget):
    """A label whose text is formatted again from live references on each read."""

    def __init__(self, record: FormatLabelRecord) -> None:
        super().__init__(PluginWidgetType.LABEL, record.name)
        self._format_string = record.string_value

    def text(self) -> str:
        return self._format_string.get()


class PlotWidget(PluginWidget):
    """A plot of a live sequence of values."""

    def __init__(self, record: PlotRecord) -> None:
        # Plots are laid out and repainted like labels.
        super().__init__(PluginWidgetType.LABEL, record.name)
        self._values: Sequence[float] = record.values

    def trace(self, top: float, height: float) -> PlotTrace:
        """Compute the plot path inside a band starting at ``top`` of the given height.

        Values within [-1, 1] span the band; if any value lies outside, the path
        is rescaled vertically to fit the band. A non-normal coordinate marks the
        trace invalid.
        """
        values = self._values
        if not values:
            return PlotTrace()

        half = height / 2.0
        points = [(0.0, -float(values[0]) * half + top + half)]
        should_scale = False

        for i, raw in enumerate(values[1:], start=1):
            y = -float(raw) * half + top + half
            if not _is_normal(y):
                return PlotTrace(invalid=True)
            points.append((float(i), y))
            if not should_scale and abs(float(raw)) > 1:
                should_scale = True

        if should_scale:
            ys = [y for _, y in points]
            low, high = min(ys), max(ys)
            if high > low:
                factor = height / (high - low)
                points = [(x, top + (y - low) * factor) for x, y in points]

        return PlotTrace(points, should_scale)