import logging

import numpy as np
import pytest

from apehost.commands import ParameterRecord
from apehost.parameter_manager import UNNAMED, ParameterManager
from apehost.parameters import ParameterSlot
from apehost.plugin_state import (
    AbortError,
    CompileError,
    CreateError,
    EventType,
    InitError,
    InvalidStateError,
    IOConfig,
    PluginState,
    Status,
)
from apehost.project import Project


class FakeEngine:
    def __init__(self, count=8):
        self.parameter_manager = ParameterManager(count)
        self.channels = []

    def set_triggering_channel(self, channel):
        self.channels.append(channel)


class FakeGenerator:
    def __init__(self, create=True, compile=True, init=True,
                 activate=Status.READY, disable=Status.OK):
        self.results = {"create": create, "compile": compile, "init": init}
        self.activate_status = activate
        self.disable_status = disable
        self.calls = []
        self.events = []
        self.commands = []
        self.event_error = None
        self.process_error = None

    def create_project(self, project):
        self.calls.append("create")
        return self.results["create"]

    def compile_project(self, project):
        self.calls.append("compile")
        return self.results["compile"]

    def init_project(self, project):
        self.calls.append("init")
        return self.results["init"]

    def activate_project(self, project):
        self.calls.append("activate")
        for command in self.commands:
            project.iface.command_queue.enqueue(command)
        return self.activate_status

    def disable_project(self, project, abnormal):
        self.calls.append(("disable", abnormal))
        return self.disable_status

    def process_replacing(self, project, inputs, outputs, frames):
        self.calls.append("process")
        if self.process_error is not None:
            raise self.process_error
        for source, dest in zip(inputs, outputs):
            dest[:] = source * 2
        return Status.OK

    def on_event(self, project, event):
        self.events.append(event)
        if self.event_error is not None:
            raise self.event_error
        return Status.HANDLED

    def release_project(self, project):
        self.calls.append("release")


CONFIG = IOConfig(inputs=2, outputs=2, block_size=16, sample_rate=44100.0)


def make_active(generator=None, engine=None):
    generator = generator or FakeGenerator()
    engine = engine or FakeEngine()
    state = PluginState(engine, generator, Project(project_name="demo"))
    assert state.initialize_activation()
    state.set_config(CONFIG)
    assert state.finalize_activation()
    return state, generator, engine


def test_construction_runs_create_compile_init():
    generator = FakeGenerator()
    project = Project()
    state = PluginState(FakeEngine(), generator, project)
    assert generator.calls == ["create", "compile", "init"]
    assert project.iface is state
    assert state.state is Status.DISABLED
    assert state.output_files == [None]


def test_create_failure_does_not_release():
    generator = FakeGenerator(create=False)
    with pytest.raises(CreateError):
        PluginState(FakeEngine(), generator, Project())
    assert generator.calls == ["create"]


@pytest.mark.parametrize(
    "flags, error",
    [({"compile": False}, CompileError), ({"init": False}, InitError)],
)
def test_later_failures_release_project(flags, error):
    generator = FakeGenerator(**flags)
    with pytest.raises(error):
        PluginState(FakeEngine(), generator, Project())
    assert generator.calls[-1] == "release"


def test_activation_builds_parameters_and_traits():
    generator = FakeGenerator()
    generator.commands = [
        ParameterRecord.bool_flag("Bypass", ParameterSlot()),
        ParameterRecord.value_list("Mode", ParameterSlot(), ["a", "b"]),
    ]
    state, _, engine = make_active(generator)
    assert state.is_enabled
    assert state.state is Status.READY
    assert state.command_queue is None
    assert len(state.parameters) == 2
    assert engine.parameter_manager.name(0) == "Bypass"
    assert engine.parameter_manager.name(1) == "Mode"


def test_activation_not_ready_sets_error():
    generator = FakeGenerator(activate=Status.OK)
    state = PluginState(FakeEngine(), generator, Project())
    assert state.initialize_activation() is False
    assert state.state is Status.ERROR
    with pytest.raises(InvalidStateError):
        state.finalize_activation()


def test_set_config_dispatches_once():
    state, generator, _ = make_active()
    io_events = [e for e in generator.events if e.type is EventType.IO_CHANGED]
    assert len(io_events) == 1
    assert io_events[0].config == CONFIG
    state.set_config(CONFIG)
    assert len([e for e in generator.events if e.type is EventType.IO_CHANGED]) == 1
    assert state.config == CONFIG


def test_play_state_requires_enabled():
    state = PluginState(FakeEngine(), FakeGenerator(), Project())
    with pytest.raises(InvalidStateError):
        state.set_play_state(True)


def test_play_state_event_and_config_locked_while_playing():
    state, generator, _ = make_active()
    state.set_play_state(True)
    assert state.play_state is True
    assert generator.events[-1].type is EventType.PLAY_STATE_CHANGED
    assert generator.events[-1].playing is True
    count = len(generator.events)
    state.set_play_state(True)
    assert len(generator.events) == count
    with pytest.raises(InvalidStateError):
        state.set_config(IOConfig(1, 1, 8, 48000.0))


def test_process_replacing_runs_plugin():
    state, _, _ = make_active()
    inputs = [np.arange(8, dtype=np.float32), np.ones(8, dtype=np.float32)]
    outputs = [np.zeros(8, dtype=np.float32) for _ in range(2)]
    assert state.process_replacing(inputs, outputs, 8) is True
    np.testing.assert_allclose(outputs[0], inputs[0] * 2)
    np.testing.assert_allclose(outputs[1], inputs[1] * 2)
    assert state.is_processing is False


def test_process_replacing_when_disabled_returns_false():
    generator = FakeGenerator()
    state = PluginState(FakeEngine(), generator, Project())
    assert state.process_replacing([], [], 4) is False
    assert "process" not in generator.calls


def test_process_failure_skips_later_calls_and_reports_abnormal():
    state, generator, _ = make_active()
    generator.process_error = ValueError("bad")
    inputs = [np.zeros(4, dtype=np.float32)] * 2
    outputs = [np.zeros(4, dtype=np.float32) for _ in range(2)]
    assert state.process_replacing(inputs, outputs, 4) is False
    generator.process_error = None
    assert state.process_replacing(inputs, outputs, 4) is False
    assert generator.calls.count("process") == 1
    assert state.disable_project() is True
    assert ("disable", True) in generator.calls


def test_abort_in_event_is_logged_and_disables(caplog):
    state, generator, _ = make_active()
    generator.event_error = AbortError("stop")
    with caplog.at_level(logging.WARNING):
        state.set_play_state(True)
    assert "Plugin aborted" in caplog.text
    generator.event_error = None
    inputs = [np.zeros(4, dtype=np.float32)] * 2
    outputs = [np.zeros(4, dtype=np.float32) for _ in range(2)]
    assert state.process_replacing(inputs, outputs, 4) is False
    assert "process" not in generator.calls


def test_engine_changes_reach_plugin_parameters():
    generator = FakeGenerator()
    generator.commands = [ParameterRecord.bool_flag("Bypass", ParameterSlot())]
    state, _, engine = make_active(generator)
    engine.parameter_manager.set_parameter(0, 0.75)
    inputs = [np.zeros(4, dtype=np.float32)] * 2
    outputs = [np.zeros(4, dtype=np.float32) for _ in range(2)]
    state.process_replacing(inputs, outputs, 4)
    assert state.parameters[0].value == pytest.approx(0.75)
    assert state.parameters[0].slot.changed is True


def test_sync_parameters_to_engine():
    generator = FakeGenerator()
    generator.commands = [ParameterRecord.bool_flag("Bypass", ParameterSlot())]
    state, _, engine = make_active(generator)
    state.parameters[0].set_parameter_realtime(0.25)
    inputs = [np.zeros(4, dtype=np.float32)] * 2
    outputs = [np.zeros(4, dtype=np.float32) for _ in range(2)]
    state.process_replacing(inputs, outputs, 4)
    state.sync_parameters_to_engine(False)
    assert engine.parameter_manager.get_parameter(0) == pytest.approx(0.25)
    assert engine.channels == [CONFIG.inputs + 1]
    state.api_trigger_override()
    state.sync_parameters_to_engine(False)
    assert engine.channels == [CONFIG.inputs + 1]


def test_parameter_changed_ignores_unknown_handle():
    generator = FakeGenerator()
    generator.commands = [ParameterRecord.bool_flag("Bypass", ParameterSlot())]
    state, _, _ = make_active(generator)
    state.parameter_changed(5, 0.9)
    state.parameter_changed(0, 0.4)
    state.parameters[0].swap_parameters(1)
    assert state.parameters[0].value == pytest.approx(0.4)


def test_disable_clears_traits_and_stops_playing():
    generator = FakeGenerator()
    generator.commands = [ParameterRecord.bool_flag("Bypass", ParameterSlot())]
    state, _, engine = make_active(generator)
    state.set_play_state(True)
    assert state.disable_project() is True
    assert state.play_state is False
    assert state.is_enabled is False
    assert state.state is Status.DISABLED
    assert state.parameters == []
    assert engine.parameter_manager.name(0) == UNNAMED


def test_disable_failure_sets_error():
    state, _, _ = make_active(FakeGenerator(disable=Status.ERROR))
    assert state.disable_project() is False
    assert state.state is Status.ERROR


def test_close_disables_and_releases_once():
    state, generator, _ = make_active()
    with state:
        pass
    state.close()
    assert generator.calls.count("release") == 1
    assert ("disable", False) in generator.calls
    assert state.is_enabled is False


def test_set_aborting_flag():
    state = PluginState(FakeEngine(), FakeGenerator(), Project())
    assert state.is_aborting is False
    state.set_aborting()
    assert state.is_aborting is True
    assert state.initialize_activation() is True
    assert state.is_aborting is False