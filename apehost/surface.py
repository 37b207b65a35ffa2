"""Layout of a plugin's surface, a scrollable container and a locked text label.

A plugin surface places parameter controls in a grid filling most of the
area, meters in a column on the right and widgets in a row at the bottom.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any, Iterable, Sequence

__all__ = [
    "SPACE",
    "Rect",
    "layout_components",
    "SurfaceLayout",
    "ScrollableContainer",
    "TextControl",
]

SPACE = 90
_MARGIN = 5


@dataclass(frozen=True)
class Rect:
    """An integer rectangle; widths and heights never go below zero."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def reduced(self, amount: int) -> "Rect":
        """Shrink by ``amount`` on every side."""
        return Rect(
            self.x + amount,
            self.y + amount,
            max(0, self.width - 2 * amount),
            max(0, self.height - 2 * amount),
        )

    def with_left(self, left: int) -> "Rect":
        """Move the left edge, keeping the right edge."""
        return Rect(left, self.y, max(0, self.right - left), self.height)

    def with_top(self, top: int) -> "Rect":
        """Move the top edge, keeping the bottom edge."""
        return Rect(self.x, top, self.width, max(0, self.bottom - top))

    def without_right(self, amount: int) -> "Rect":
        return replace(self, width=self.width - min(amount, self.width))

    def without_bottom(self, amount: int) -> "Rect":
        return replace(self, height=self.height - min(amount, self.height))

    def with_position(self, x: int, y: int) -> "Rect":
        return replace(self, x=x, y=y)


def _as_rect(item: Rect | tuple[int, int]) -> Rect:
    if isinstance(item, Rect):
        return item
    width, height = item
    return Rect(0, 0, int(width), int(height))


def layout_components(sizes: Iterable[Rect | tuple[int, int]], bounds: Rect) -> list[Rect]:
    """Place components in a grid of cells as large as the largest component.

    ``sizes`` holds each component's current bounds, or its (width, height).
    The new bounds are returned in order. If every component has zero width
    or zero height, the bounds are returned unchanged.
    """
    rects = [_as_rect(item) for item in sizes]
    if not rects:
        return []

    cell_width = max(r.width for r in rects)
    cell_height = max(r.height for r in rects)
    if cell_width == 0 or cell_height == 0:
        return rects

    columns = max(1, bounds.width // cell_width)
    return [
        r.with_position(
            bounds.x + cell_width * (i % columns),
            bounds.y + cell_height * (i // columns),
        )
        for i, r in enumerate(rects)
    ]


class SurfaceLayout:
    """The three areas of a plugin surface of a given size."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    @property
    def local_bounds(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    def control_space(self) -> Rect:
        return self.local_bounds.without_right(SPACE).without_bottom(SPACE).reduced(_MARGIN)

    def metering_space(self) -> Rect:
        return self.local_bounds.with_left(self.width - SPACE).reduced(_MARGIN)

    def widget_space(self) -> Rect:
        return self.local_bounds.with_top(self.height - SPACE).reduced(_MARGIN)

    def arrange(
        self,
        controls: Sequence[Rect | tuple[int, int]],
        meters: Sequence[Rect | tuple[int, int]],
        widgets: Sequence[Rect | tuple[int, int]],
    ) -> tuple[list[Rect], list[Rect], list[Rect]]:
        """Lay out controls, meters and widgets in their areas."""
        return (
            layout_components(controls, self.control_space()),
            layout_components(meters, self.metering_space()),
            layout_components(widgets, self.widget_space()),
        )


class ScrollableContainer:
    """A view onto a taller virtual area, moved by a scroll bar.

    The scroll bar's range runs over [0, 1]; ``range_size`` is the visible
    fraction of it.
    """

    def __init__(self, height: int, virtual_height: int, range_size: float) -> None:
        if not 0.0 <= range_size < 1.0:
            raise ValueError(f"range size must lie in [0, 1), got {range_size}")
        self.height = height
        self.virtual_height = virtual_height
        self._range_size = float(range_size)
        self._range_start = 0.0

    def value(self) -> float:
        """The scroll position in [0, 1]."""
        return self._range_start / (1.0 - self._range_size)

    def set_value(self, value: float) -> None:
        """Scroll to a position in [0, 1]; positions outside are clamped."""
        limit = 1.0 - self._range_size
        self._range_start = min(max(float(value) * limit, 0.0), limit)

    def offset(self) -> int:
        """The vertical position of the virtual area relative to the view."""
        return int(-self.value() * (self.virtual_height - self.height))


class TextControl:
    """A text label whose text may be set and read from several threads."""

    def __init__(
        self,
        text: str = "",
        font_size: float = 0.0,
        colour: Any = None,
        font_name: str = "",
    ) -> None:
        self._lock = threading.Lock()
        self._text = text
        self.font_size = font_size
        self.colour = colour
        self.font_name = font_name

    def set_text(self, text: str) -> None:
        with self._lock:
            self._text = str(text)

    def text(self) -> str:
        with self._lock:
            return self._text