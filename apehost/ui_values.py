"""Values behind the editor's command buttons, and the commands they trigger.

A :class:`UIValue` is a normalized value in [0, 1] that tells its listeners
whenever it is set. :class:`UICommandState` owns the compile, activation,
clean and precision values and turns changes to them into
:class:`UICommand` requests. A refused request sets the value back.
"""

from __future__ import annotations

import enum
import math
from typing import Any, Callable, Mapping, Protocol, Sequence

__all__ = [
    "ValueListener",
    "UIValue",
    "UICommand",
    "FPrecision",
    "PRECISION_CHOICES",
    "UICommandState",
]

PRECISION_CHOICES = ("32-bit", "64-bit", "80-bit")


class ValueListener(Protocol):
    """Anything told about changes to a :class:`UIValue`."""

    def value_changed(self, sender: Any, value: "UIValue") -> None: ...


class UIValue:
    """A normalized value that notifies its listeners when set.

    With ``choices`` the value selects one of them; otherwise it is a plain
    number in [0, 1].
    """

    def __init__(self, choices: Sequence[str] | None = None) -> None:
        self._value = 0.0
        self._choices = tuple(choices) if choices else ()
        self._listeners: dict[int, ValueListener] = {}

    def add_listener(self, listener: ValueListener) -> None:
        self._listeners[id(listener)] = listener

    def remove_listener(self, listener: ValueListener) -> None:
        self._listeners.pop(id(listener), None)

    def set_value(self, value: float, sender: Any = None) -> None:
        """Store a value and tell every listener, naming ``sender`` as its origin."""
        self._value = float(value)
        for listener in list(self._listeners.values()):
            listener.value_changed(sender, self)

    @property
    def normalized_value(self) -> float:
        return self._value

    def set_normalized_value(self, value: float) -> None:
        """Set the value with no sender, as a user or the host would."""
        self.set_value(value, None)

    @property
    def choice_index(self) -> int:
        """The index of the selected choice; 0 when there are no choices."""
        steps = len(self._choices) - 1
        if steps <= 0:
            return 0
        clamped = min(max(self._value, 0.0), 1.0)
        return int(math.floor(clamped * steps + 0.5))

    def text(self) -> str:
        """The display text of the value."""
        if self._choices:
            return self._choices[self.choice_index]
        return format(self._value, ".6g")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value})"


class UICommand(enum.Enum):
    INVALID = enum.auto()
    RECOMPILE = enum.auto()
    ACTIVATE = enum.auto()
    ASYNC_ACTIVATE = enum.auto()
    DEACTIVATE = enum.auto()
    CLEAN = enum.auto()


class FPrecision(enum.Enum):
    FP32 = 0
    FP64 = 1
    FP80 = 2


class UICommandState:
    """The editor's command values, forwarding their changes as commands.

    ``perform_command`` is called with a :class:`UICommand` and returns whether
    it was carried out; if not, the value that caused it is toggled back.
    """

    def __init__(self, perform_command: Callable[[UICommand], bool]) -> None:
        self._perform_command = perform_command
        self.compile = UIValue()
        self.activation_state = UIValue()
        self.clean = UIValue()
        self.precision = UIValue(PRECISION_CHOICES)
        for value in (self.clean, self.compile, self.activation_state, self.precision):
            value.add_listener(self)

    @property
    def precision_mode(self) -> FPrecision:
        return FPrecision(self.precision.choice_index)

    def change_value_externally(self, value: UIValue, new_value: float) -> None:
        """Set a value without it being taken as a command."""
        value.set_value(new_value, self)

    def serialize(self) -> dict[str, float]:
        return {
            "compile": self.compile.normalized_value,
            "activation_state": self.activation_state.normalized_value,
            "precision": self.precision.normalized_value,
        }

    def deserialize(self, data: Mapping[str, float]) -> None:
        """Restore the values in order; each restored value acts as a command."""
        try:
            restored = [
                (self.compile, float(data["compile"])),
                (self.activation_state, float(data["activation_state"])),
                (self.precision, float(data["precision"])),
            ]
        except KeyError as error:
            raise ValueError(f"missing command state {error.args[0]!r}") from None
        for value, number in restored:
            value.set_normalized_value(number)

    def value_changed(self, sender: Any, value: UIValue) -> None:
        if sender is self:
            return

        toggled = value.normalized_value > 0.5

        if value is self.precision or (value is self.compile and toggled):
            command = UICommand.RECOMPILE
        elif value is self.activation_state:
            command = UICommand.ACTIVATE if toggled else UICommand.DEACTIVATE
        elif value is self.clean:
            command = UICommand.CLEAN
        else:
            return

        if not self._perform_command(command):
            self.change_value_externally(value, 0.0 if toggled else 1.0)