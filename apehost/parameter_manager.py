"""Host-facing parameters whose formatting and scaling can be swapped at run time.

The manager owns a fixed number of low-level parameters: the normalized values
the host automates. Formatting, parsing, scaling and naming of each parameter
go through a hot-swappable trait, so a recompiled plugin can change how its
parameters look without the host seeing the parameter set change. Indices
without a trait fall back to a linear [0, 1] range and plain number formatting.
"""

from __future__ import annotations

import abc
import threading
from typing import Callable, Protocol

__all__ = [
    "NUM_PARAMETERS",
    "UNNAMED",
    "AutomationListener",
    "ExternalParameterTraits",
    "LowLevelParameter",
    "ParameterManager",
]

NUM_PARAMETERS = 50
UNNAMED = "unnamed"

RealtimeListener = Callable[[int, float], None]


def _clamp_unit(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


def _default_format(value: float) -> str:
    return format(float(value), ".6g")


def _default_interpret(text: str) -> float:
    try:
        return float(text.strip())
    except ValueError:
        raise ValueError(f"cannot interpret {text!r} as a number") from None


class AutomationListener(Protocol):
    """Receives parameter changes that the host must be told about."""

    def send_param_change(self, index: int, value: float) -> None: ...

    def begin_change_gesture(self, index: int) -> None: ...

    def end_change_gesture(self, index: int) -> None: ...


class ExternalParameterTraits(abc.ABC):
    """Formatting, parsing, scaling and naming of one parameter."""

    @abc.abstractmethod
    def format(self, value: float) -> str:
        """Render a transformed value as display text."""

    @abc.abstractmethod
    def interpret(self, text: str) -> float:
        """Parse display text into a transformed value; raise ValueError on failure."""

    @abc.abstractmethod
    def transform(self, value: float) -> float:
        """Map a normalized value onto the parameter's own range."""

    @abc.abstractmethod
    def normalize(self, value: float) -> float:
        """Map a value in the parameter's range back onto [0, 1]."""

    @abc.abstractmethod
    def name(self) -> str:
        """The parameter's display name."""

    def quantization(self) -> int:
        """The number of discrete steps, or 0 for a continuous parameter."""
        return 0


class LowLevelParameter:
    """The ground-truth normalized value of one host parameter.

    Everything but the value itself is deferred to ``callbacks`` (normally the
    owning :class:`ParameterManager`) by the parameter's identifier.
    """

    def __init__(self, identifier: int, callbacks: "ParameterManager") -> None:
        self.identifier = identifier
        self._callbacks = callbacks
        self._value = 0.0

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, new_value: float) -> None:
        self._value = _clamp_unit(new_value)

    def name(self) -> str:
        return self._callbacks.name(self.identifier)

    def format(self, value: float) -> str:
        return self._callbacks.format(self.identifier, value)

    def interpret(self, text: str) -> float:
        return self._callbacks.interpret(self.identifier, text)

    def transform(self, value: float) -> float:
        return self._callbacks.transform(self.identifier, value)

    def normalize(self, value: float) -> float:
        return self._callbacks.normalize(self.identifier, value)

    def quantization(self) -> int:
        return self._callbacks.quantization(self.identifier)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identifier}, value={self._value})"


class ParameterManager:
    """A fixed set of host parameters with swappable traits."""

    def __init__(
        self,
        num_parameters: int = NUM_PARAMETERS,
        listener: AutomationListener | None = None,
    ) -> None:
        if num_parameters < 0:
            raise ValueError(f"parameter count must not be negative, got {num_parameters}")
        self._listener = listener
        self._lock = threading.Lock()
        self._parameters = [LowLevelParameter(i, self) for i in range(num_parameters)]
        self._traits: list[ExternalParameterTraits | None] = [None] * num_parameters
        self._realtime_listeners: list[RealtimeListener] = []

    def __len__(self) -> int:
        return len(self._parameters)

    def _parameter(self, index: int) -> LowLevelParameter:
        if not 0 <= index < len(self._parameters):
            raise IndexError(f"parameter index {index} out of range")
        return self._parameters[index]

    def _check_trait_index(self, index: int) -> None:
        if not 0 <= index < len(self._traits):
            raise IndexError(f"parameter index {index} out of range")

    def _trait(self, index: int) -> ExternalParameterTraits | None:
        if 0 <= index < len(self._traits):
            return self._traits[index]
        return None

    def _notify_realtime(self, index: int, value: float) -> None:
        for listener in list(self._realtime_listeners):
            listener(index, value)

    def set_parameter(self, index: int, value: float) -> None:
        """Set a parameter from the host with a normalized value, clamped to [0, 1]."""
        parameter = self._parameter(index)
        parameter.value = value
        self._notify_realtime(index, parameter.value)

    def update_from_ui(self, index: int, value: float) -> None:
        """Set a parameter from the user interface and tell the host about it."""
        parameter = self._parameter(index)
        if self._listener is not None:
            self._listener.begin_change_gesture(index)
        parameter.value = value
        self._notify_realtime(index, parameter.value)
        if self._listener is not None:
            self._listener.send_param_change(index, parameter.value)
            self._listener.end_change_gesture(index)

    def get_parameter(self, index: int) -> float:
        """The normalized value of a parameter."""
        return self._parameter(index).value

    def parameter_name(self, index: int) -> str:
        return self._parameter(index).name()

    def parameter_text(self, index: int) -> str:
        """The display text of a parameter's current value."""
        parameter = self._parameter(index)
        return self.format(index, self.transform(index, parameter.value))

    def emplace_trait(self, index: int, trait: ExternalParameterTraits) -> None:
        self._check_trait_index(index)
        with self._lock:
            self._traits[index] = trait

    def clear_trait(self, index: int) -> None:
        self._check_trait_index(index)
        with self._lock:
            self._traits[index] = None

    def clear_trait_if_matching(self, index: int, trait: ExternalParameterTraits) -> None:
        """Clear the trait at ``index`` only if it is still ``trait``."""
        self._check_trait_index(index)
        with self._lock:
            if self._traits[index] is trait:
                self._traits[index] = None

    def add_realtime_listener(self, listener: RealtimeListener) -> None:
        """Call ``listener(index, value)`` on every parameter change."""
        if listener not in self._realtime_listeners:
            self._realtime_listeners.append(listener)

    def remove_realtime_listener(self, listener: RealtimeListener) -> None:
        if listener in self._realtime_listeners:
            self._realtime_listeners.remove(listener)

    def format(self, index: int, value: float) -> str:
        trait = self._trait(index)
        return trait.format(value) if trait is not None else _default_format(value)

    def interpret(self, index: int, text: str) -> float:
        trait = self._trait(index)
        return trait.interpret(text) if trait is not None else _default_interpret(text)

    def transform(self, index: int, value: float) -> float:
        trait = self._trait(index)
        return trait.transform(value) if trait is not None else float(value)

    def normalize(self, index: int, value: float) -> float:
        trait = self._trait(index)
        return trait.normalize(value) if trait is not None else float(value)

    def name(self, index: int) -> str:
        trait = self._trait(index)
        return trait.name() if trait is not None else UNNAMED

    def quantization(self, index: int) -> int:
        trait = self._trait(index)
        return trait.quantization() if trait is not None else 0