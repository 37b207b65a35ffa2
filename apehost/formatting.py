"""Printf-style strings that keep references to their arguments.

A :class:`ReferenceFormattedString` is built from a format string and a set of
value references.  Every call to :meth:`ReferenceFormattedString.get` formats
the string again with the values the references hold at that moment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator

__all__ = ["ValueRef", "ReferenceFormattedString"]


@dataclass
class ValueRef:
    """A mutable cell whose current value is read each time a string is formatted."""

    value: Any = None


def _wrap_int(value: Any, bits: int, signed: bool) -> str:
    number = int(value) & ((1 << bits) - 1)
    if signed and number >= 1 << (bits - 1):
        number -= 1 << bits
    return str(number)


def _render_pointer(value: Any) -> str:
    address = int(value)
    return f"{address:#x}" if address else "0"


def _render_float(value: Any) -> str:
    return format(float(value), "g")


def _render_char(value: Any) -> str:
    if isinstance(value, str):
        return value[:1]
    return chr(int(value) & 0xFF)


def _render_string(value: Any) -> str:
    # Only the leading character of a referenced string is ever shown.
    return str(value)[:1]


_Renderer = Callable[[Any], str]

_PLAIN: dict[str, _Renderer] = {
    "x": _render_pointer,
    "u": lambda v: _wrap_int(v, 32, signed=False),
    "i": lambda v: _wrap_int(v, 32, signed=True),
    "d": lambda v: _wrap_int(v, 32, signed=True),
    "f": _render_float,
    "c": _render_char,
    "s": _render_string,
}

_LONG: dict[str, _Renderer] = {
    "f": _render_float,
    "d": _render_float,
    "u": lambda v: _wrap_int(v, 64, signed=False),
    "i": lambda v: _wrap_int(v, 64, signed=True),
}


@dataclass(frozen=True)
class _BoundValue:
    renderer: _Renderer
    source: Any

    def render(self) -> str:
        value = self.source.value if isinstance(self.source, ValueRef) else self.source
        if value is None:
            return ""
        return self.renderer(value)


class ReferenceFormattedString:
    """A format string bound to value references, re-rendered on every ``get``.

    Each argument is a :class:`ValueRef` (read at format time), ``None`` (a null
    reference, rendered as nothing) or a plain constant.
    """

    def __init__(self, fmt: str, *args: Any) -> None:
        self._format = fmt
        self._values: list[_BoundValue] = list(self._bind(iter(args)))

    def _bind(self, args: Iterator[Any]) -> Iterator[_BoundValue]:
        fmt = self._format
        size = len(fmt)

        def next_argument() -> Any:
            try:
                return next(args)
            except StopIteration:
                raise TypeError(f"format {fmt!r} needs more arguments than given") from None

        i = 0
        while i < size:
            if fmt[i] != "%":
                i += 1
                continue

            delta = size - i
            if delta == 1:
                break
            i += 1

            renderer: _Renderer | None = None
            if fmt[i] == "l":
                if delta != 2:
                    i += 1
                    renderer = _LONG.get(fmt[i])
                    if renderer is None:
                        i -= 1
            else:
                renderer = _PLAIN.get(fmt[i])

            if renderer is not None:
                yield _BoundValue(renderer, next_argument())
            i += 1

    def get(self) -> str:
        """Format the string with the current values of the references."""
        fmt = self._format
        size = len(fmt)
        pieces: list[str] = []
        count = 0
        i = 0

        while i < size:
            delta = size - i
            if fmt[i] == "%":
                i += 1
                if delta == 1:
                    break
                if fmt[i] == "l":
                    i += 1
                if delta == 2:
                    break
                if fmt[i] != "%" and count < len(self._values):
                    pieces.append(self._values[count].render())
                    count += 1
                    i += 1
                    continue
            pieces.append(fmt[i])
            i += 1

        return "".join(pieces)

    def __str__(self) -> str:
        return self.get()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._format!r})"