"""Commands a plugin issues while it is being activated.

During activation a plugin registers parameters and widgets. The host records
each request in a :class:`PluginCommandQueue` and turns the records into live
parameters and widgets once activation finishes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Iterable, Iterator, Sequence

from .formatting import ReferenceFormattedString, ValueRef

__all__ = [
    "linear_scale",
    "linear_normalize",
    "CommandType",
    "CommandBase",
    "WidgetType",
    "WidgetRecord",
    "MeterRecord",
    "PlotRecord",
    "FormatLabelRecord",
    "ParameterType",
    "ParameterRecord",
    "PluginCommandQueue",
]

Transformer = Callable[[float, float, float], float]
Normalizer = Callable[[float, float, float], float]


def linear_scale(value: float, minimum: float, maximum: float) -> float:
    """Map a normalized value in [0, 1] linearly onto [minimum, maximum]."""
    return minimum + value * (maximum - minimum)


def linear_normalize(value: float, minimum: float, maximum: float) -> float:
    """Map a value in [minimum, maximum] linearly back onto [0, 1]."""
    return (value - minimum) / (maximum - minimum)


class CommandType(enum.Enum):
    PARAMETER = enum.auto()
    WIDGET = enum.auto()


class CommandBase:
    """Base of every queued command.

    ``class_counter`` is the position of the command among the commands of the
    same concrete class, assigned when it is enqueued.
    """

    command_type: ClassVar[CommandType]
    class_counter: int = 0


class WidgetType(enum.Enum):
    METER = enum.auto()
    PLOT = enum.auto()
    LABEL = enum.auto()


class WidgetRecord(CommandBase):
    """Base of the records describing widgets."""

    command_type: ClassVar[CommandType] = CommandType.WIDGET
    widget_type: ClassVar[WidgetType]


@dataclass
class MeterRecord(WidgetRecord):
    """A level meter reading a live value and an optional live peak."""

    widget_type: ClassVar[WidgetType] = WidgetType.METER

    name: str
    value: ValueRef
    peak: ValueRef | None = None


@dataclass
class PlotRecord(WidgetRecord):
    """A plot of a live sequence of values."""

    widget_type: ClassVar[WidgetType] = WidgetType.PLOT

    name: str
    values: Sequence[float]

    @property
    def num_values(self) -> int:
        return len(self.values)


class FormatLabelRecord(WidgetRecord):
    """A label showing a printf-style string bound to live references."""

    widget_type: ClassVar[WidgetType] = WidgetType.LABEL

    def __init__(self, name: str, fmt: str, *args: Any) -> None:
        self.name = name
        self.string_value = ReferenceFormattedString(fmt, *args)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.string_value!r})"


class ParameterType(enum.Enum):
    BOOLEAN = enum.auto()
    TYPED_KNOB = enum.auto()
    SCALED_FLOAT = enum.auto()
    LIST = enum.auto()


@dataclass
class ParameterRecord(CommandBase):
    """A request from a plugin to create a parameter."""

    command_type: ClassVar[CommandType] = CommandType.PARAMETER

    type: ParameterType
    name: str
    unit: str = ""
    values: list[str] = field(default_factory=list)
    value: Any = None
    minimum: float = 0.0
    maximum: float = 1.0
    knob_type: int = 0
    transformer: Transformer | None = None
    normalizer: Normalizer | None = None

    @classmethod
    def bool_flag(cls, name: str, value: Any) -> "ParameterRecord":
        """An on/off parameter."""
        return cls(ParameterType.BOOLEAN, name, value=value)

    @classmethod
    def value_list(cls, name: str, value: Any, values: Iterable[str]) -> "ParameterRecord":
        """A parameter choosing one of ``values``."""
        return cls(ParameterType.LIST, name, value=value, values=list(values))

    @classmethod
    def normal_parameter(
        cls,
        name: str,
        unit: str,
        value: Any,
        transformer: Transformer | None,
        normalizer: Normalizer | None,
        minimum: float,
        maximum: float,
    ) -> "ParameterRecord":
        """A scaled float parameter; missing scaling functions default to linear."""
        return cls(
            ParameterType.SCALED_FLOAT,
            name,
            unit=unit,
            value=value,
            minimum=minimum,
            maximum=maximum,
            transformer=transformer or linear_scale,
            normalizer=normalizer or linear_normalize,
        )


class PluginCommandQueue:
    """The ordered commands given by a plugin during activation."""

    def __init__(self) -> None:
        self._commands: list[CommandBase] = []
        self._class_counters: dict[type, int] = {}

    def enqueue(self, command: CommandBase) -> CommandBase:
        """Append a command, numbering it among commands of its class."""
        if not isinstance(command, CommandBase):
            raise TypeError(f"cannot enqueue {type(command).__name__}")
        kind = type(command)
        command.class_counter = self._class_counters.get(kind, 0)
        self._class_counters[kind] = command.class_counter + 1
        self._commands.append(command)
        return command

    def __getitem__(self, index: int) -> CommandBase:
        return self._commands[index]

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self) -> Iterator[CommandBase]:
        return iter(self._commands)