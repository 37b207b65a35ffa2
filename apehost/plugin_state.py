"""The lifecycle of one compiled plugin inside the host.

A :class:`PluginState` drives a project through the code generator. It
creates, compiles and initializes the project, then activates it, collecting
the parameters and widgets the plugin asks for. It feeds audio and events to
the plugin and disables it again.

Every call into plugin code is guarded. A plugin that raises is marked as
misbehaving, and later calls into it are skipped until it is disabled.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence

import numpy as np

from .commands import ParameterRecord, PluginCommandQueue, WidgetRecord
from .parameter_manager import ParameterManager
from .parameters import PluginParameter
from .project import Project
from .widgets import PluginWidget

__all__ = [
    "Status",
    "IOConfig",
    "EventType",
    "Event",
    "PluginError",
    "AbortError",
    "CompileError",
    "InitError",
    "CreateError",
    "DisabledError",
    "InvalidStateError",
    "PluginState",
]

_log = logging.getLogger(__name__)


class Status(enum.Enum):
    """Results reported by plugin code, and the state of a plugin."""

    OK = enum.auto()
    ERROR = enum.auto()
    WAIT = enum.auto()
    READY = enum.auto()
    DISABLED = enum.auto()
    HANDLED = enum.auto()
    NOT_IMPLEMENTED = enum.auto()


@dataclass(frozen=True)
class IOConfig:
    """The channel counts, block size and sample rate a plugin runs with."""

    inputs: int = 0
    outputs: int = 0
    block_size: int = 0
    sample_rate: float = 0.0


class EventType(enum.Enum):
    PLAY_STATE_CHANGED = enum.auto()
    IO_CHANGED = enum.auto()


@dataclass(frozen=True)
class Event:
    """An event sent to a plugin; ``playing`` or ``config`` is set by its type."""

    type: EventType
    playing: bool | None = None
    config: IOConfig | None = None


class PluginError(RuntimeError):
    """Base of the errors raised while managing a plugin."""


class AbortError(PluginError):
    """Raised by plugin code that aborts itself."""


class CompileError(PluginError):
    pass


class InitError(PluginError):
    pass


class CreateError(PluginError):
    pass


class DisabledError(PluginError):
    pass


class InvalidStateError(PluginError):
    """Raised when an operation is asked for in a state that does not allow it."""


class Engine(Protocol):
    """What a plugin state needs from the host engine."""

    parameter_manager: ParameterManager

    def set_triggering_channel(self, channel: int) -> None: ...


class CodeGenerator(Protocol):
    """The compiler front end that runs a project's code."""

    def create_project(self, project: Project) -> bool: ...

    def compile_project(self, project: Project) -> bool: ...

    def init_project(self, project: Project) -> bool: ...

    def activate_project(self, project: Project) -> Status: ...

    def disable_project(self, project: Project, abnormal: bool) -> Status: ...

    def process_replacing(
        self, project: Project, inputs: list[np.ndarray], outputs: list[np.ndarray], frames: int
    ) -> Status: ...

    def on_event(self, project: Project, event: Event) -> Status: ...

    def release_project(self, project: Project) -> None: ...


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise InvalidStateError(message)


class PluginState:
    """One created, compiled and initialized project, and its activation state."""

    def __init__(self, engine: Engine, generator: CodeGenerator, project: Project) -> None:
        self._engine = engine
        self._generator = generator
        self.project = project

        self._state = Status.DISABLED
        self._config = IOConfig()
        self._playing = False
        self._enabled = False
        self._disabling = False
        self._aborting = False
        self._processing = False
        self._abnormal = False
        self._activating = False
        self._trigger_set_through_api = False
        self._closed = False

        self.parameters: list[PluginParameter] = []
        self.widgets: list[PluginWidget] = []
        self.audio_files: list[Any] = []
        self.ffts: list[Any] = []
        self.original_files: dict[str, Any] = {}
        self.output_files: list[Any] = []
        self._command_queue: PluginCommandQueue | None = None

        self._input_buffer = np.zeros((0, 0), dtype=np.float32)
        self._output_buffer = np.zeros((0, 0), dtype=np.float32)
        self.last_process_ns = 0

        project.iface = self

        if not generator.create_project(project):
            raise CreateError("Error creating project...")

        try:
            if not generator.compile_project(project):
                raise CompileError("Error compiling project...")
            if not generator.init_project(project):
                raise InitError("Error initializing project...")
        except BaseException:
            generator.release_project(project)
            raise

        # Slot 0 is reserved; output files are numbered from 1.
        self.output_files.append(None)

    @property
    def state(self) -> Status:
        return self._state

    @property
    def config(self) -> IOConfig:
        return self._config

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def is_disabling(self) -> bool:
        return self._disabling

    @property
    def is_aborting(self) -> bool:
        return self._aborting

    @property
    def play_state(self) -> bool:
        return self._playing

    @property
    def command_queue(self) -> PluginCommandQueue | None:
        """The queue collecting the plugin's commands while it is being activated."""
        return self._command_queue

    def set_aborting(self) -> None:
        self._aborting = True

    def api_trigger_override(self) -> None:
        """Note that the plugin chose its own triggering channel."""
        self._trigger_set_through_api = True

    def set_play_state(self, playing: bool) -> None:
        _require(self._enabled or self._activating, "plugin is neither enabled nor activating")
        if playing == self._playing:
            return
        self._playing = playing
        self._dispatch_event("playStateChanged()", Event(EventType.PLAY_STATE_CHANGED, playing=playing))

    def sync_parameters_to_engine(self, take_engine_values: bool) -> None:
        """Copy parameter values from the engine into the plugin, or the other way."""
        manager = self._engine.parameter_manager
        if take_engine_values:
            for index, parameter in enumerate(self.parameters):
                parameter.set_parameter_realtime(manager.get_parameter(index))
            return

        if not self._trigger_set_through_api:
            self._engine.set_triggering_channel(self._config.inputs + 1)
        for index, parameter in enumerate(self.parameters):
            manager.set_parameter(index, parameter.value)

    def parameter_changed(self, local_handle: int, value: float) -> None:
        """Forward an engine parameter change to the plugin's parameter, if it has one."""
        if 0 <= local_handle < len(self.parameters):
            self.parameters[local_handle].set_parameter_realtime(value)

    def set_config(self, config: IOConfig) -> None:
        """Resize the plugin's buffers and tell it about the new configuration."""
        _require(self._enabled or self._activating, "plugin is neither enabled nor activating")
        _require(not self._playing, "cannot change the configuration while playing")
        if config == self._config:
            return

        self._input_buffer = np.zeros((config.inputs, config.block_size), dtype=np.float32)
        self._output_buffer = np.zeros((config.outputs, config.block_size), dtype=np.float32)
        self._config = config

        self._dispatch_event("ioChanged() event", Event(EventType.IO_CHANGED, config=config))

    def process_replacing(
        self, inputs: Sequence[Sequence[float]], outputs: Sequence[np.ndarray], frames: int
    ) -> bool:
        """Run one block through the plugin; False if it is disabled or fails."""
        if not self._enabled:
            return False

        self._processing = True

        def run() -> Status:
            config = self._config
            plugin_inputs = []
            for channel in range(config.inputs):
                row = self._input_buffer[channel, :frames]
                row[:] = np.asarray(inputs[channel], dtype=np.float32)[:frames]
                plugin_inputs.append(row)
            plugin_outputs = [self._output_buffer[c, :frames] for c in range(config.outputs)]

            for parameter in self.parameters:
                parameter.swap_parameters(frames)

            start = time.perf_counter_ns()
            result = self._generator.process_replacing(
                self.project, plugin_inputs, plugin_outputs, frames
            )
            self.last_process_ns = time.perf_counter_ns() - start

            for channel, row in enumerate(plugin_outputs):
                outputs[channel][:frames] = row
            return result

        status, failed = self._call("processReplacing()", run)
        self._abnormal = status is not Status.OK or failed
        self._processing = False
        return status is Status.OK and not failed

    def initialize_activation(self) -> bool:
        """Start activating the plugin; it may enqueue commands until finalized."""
        _require(not self._enabled, "plugin is already enabled")
        _require(self._state is Status.DISABLED, "plugin is not disabled")
        _require(not self._activating, "plugin is already activating")

        self._activating = True
        self._trigger_set_through_api = False
        self._aborting = False
        self._command_queue = PluginCommandQueue()

        status, failed = self._call(
            "activating project", lambda: self._generator.activate_project(self.project)
        )
        if failed or status is not Status.READY:
            self._state = Status.ERROR
            return False
        return True

    def finalize_activation(self) -> bool:
        """Turn the queued commands into parameters and widgets, and enable the plugin."""
        _require(not self._enabled, "plugin is already enabled")
        _require(self._state is Status.DISABLED, "plugin is not disabled")
        _require(self._activating, "plugin is not activating")

        self._consume_commands()
        self._command_queue = None

        self._state = Status.READY
        self._enabled = True
        self._activating = False
        return True

    def disable_project(self) -> bool:
        """Stop and disable the plugin, releasing its parameters and widgets."""
        _require(self._enabled, "plugin is not enabled")
        _require(self._state is Status.READY, "plugin is not ready")

        self.set_play_state(False)
        self._disabling = True

        status, failed = self._call(
            "Disabling plugin",
            lambda: self._generator.disable_project(self.project, self._abnormal),
            always=True,
        )
        self._state = Status.ERROR if status is not Status.OK or failed else Status.DISABLED

        self._disabling = False
        self._cleanup_resources()
        self._abnormal = False
        self._enabled = False
        return self._state is Status.DISABLED

    def close(self) -> None:
        """Disable the plugin if it is enabled and release the project."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._enabled:
                self.disable_project()
        finally:
            self._generator.release_project(self.project)

    def __enter__(self) -> "PluginState":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _dispatch_event(self, reason: str, event: Event) -> Status:
        status, _ = self._call(reason, lambda: self._generator.on_event(self.project, event))
        return status

    def _consume_commands(self) -> None:
        for command in self._command_queue or ():
            if isinstance(command, ParameterRecord):
                self.parameters.append(PluginParameter.from_record(command))
            elif isinstance(command, WidgetRecord):
                self.widgets.append(PluginWidget.from_record(command))

        manager = self._engine.parameter_manager
        for index, parameter in enumerate(self.parameters):
            manager.emplace_trait(index, parameter)
        manager.add_realtime_listener(self.parameter_changed)

    def _cleanup_resources(self) -> None:
        manager = self._engine.parameter_manager
        manager.remove_realtime_listener(self.parameter_changed)
        for index, parameter in enumerate(self.parameters):
            if index < len(manager):
                manager.clear_trait_if_matching(index, parameter)
        self.parameters.clear()
        self.widgets.clear()

    def _call(
        self, reason: str, function: Callable[[], Status], always: bool = False
    ) -> tuple[Status, bool]:
        """Run plugin code; return its status and whether it failed."""
        if not always and (self._abnormal or self._state is Status.ERROR):
            return self._state, True

        try:
            return function(), False
        except AbortError as error:
            _log.warning(
                '[PluginState] : Plugin aborted at operation: %s: "%s". Plugin disabled.',
                reason, error,
            )
        except RuntimeError as error:
            _log.warning(
                '[PluginState] : Runtime error at operation: %s: "%s". Plugin disabled.',
                reason, error,
            )
        except Exception as error:
            _log.warning(
                '[PluginState] : Unknown exception at operation: %s: "%s". Plugin disabled.',
                reason, error,
            )

        self._abnormal = True
        return Status.ERROR, True