import pytest

from apehost.commands import (
    CommandType,
    FormatLabelRecord,
    MeterRecord,
    ParameterRecord,
    ParameterType,
    PlotRecord,
    PluginCommandQueue,
    WidgetRecord,
    WidgetType,
    linear_normalize,
    linear_scale,
)
from apehost.formatting import ValueRef


def test_linear_scale_value():
    assert linear_scale(0.25, 2.0, 6.0) == pytest.approx(3.0)


@pytest.mark.parametrize("x", [0.0, 0.1, 0.5, 0.9, 1.0])
def test_scale_normalize_round_trip(x):
    assert linear_normalize(linear_scale(x, -4.0, 12.0), -4.0, 12.0) == pytest.approx(x)


def test_normalize_endpoints():
    assert linear_normalize(-3.0, -3.0, 7.0) == 0.0
    assert linear_normalize(7.0, -3.0, 7.0) == 1.0


def test_queue_counts_per_class():
    queue = PluginCommandQueue()
    first = queue.enqueue(MeterRecord("a", ValueRef(0.0)))
    param = queue.enqueue(ParameterRecord.bool_flag("p", None))
    second = queue.enqueue(MeterRecord("b", ValueRef(0.0)))
    assert [first.class_counter, second.class_counter] == [0, 1]
    assert param.class_counter == 0


def test_queue_indexing_and_iteration():
    queue = PluginCommandQueue()
    commands = [ParameterRecord.bool_flag(f"p{i}", None) for i in range(3)]
    for command in commands:
        queue.enqueue(command)
    assert len(queue) == len(commands)
    assert queue[1] is commands[1]
    assert list(queue) == commands


def test_queue_rejects_non_commands():
    with pytest.raises(TypeError):
        PluginCommandQueue().enqueue("not a command")


def test_bool_flag():
    slot = object()
    record = ParameterRecord.bool_flag("bypass", slot)
    assert record.type is ParameterType.BOOLEAN
    assert record.name == "bypass"
    assert record.value is slot
    assert record.transformer is None
    assert record.command_type is CommandType.PARAMETER


def test_value_list_copies_values():
    values = ["sine", "square"]
    record = ParameterRecord.value_list("wave", None, values)
    values.append("saw")
    assert record.type is ParameterType.LIST
    assert record.values == ["sine", "square"]


def test_normal_parameter_defaults_to_linear():
    record = ParameterRecord.normal_parameter("gain", "dB", None, None, None, -24.0, 6.0)
    assert record.type is ParameterType.SCALED_FLOAT
    assert record.transformer is linear_scale
    assert record.normalizer is linear_normalize
    assert (record.minimum, record.maximum, record.unit) == (-24.0, 6.0, "dB")


def test_normal_parameter_keeps_custom_functions():
    def transform(v, lo, hi):
        return v

    def normalize(v, lo, hi):
        return v

    record = ParameterRecord.normal_parameter("f", "Hz", None, transform, normalize, 0.0, 1.0)
    assert record.transformer is transform
    assert record.normalizer is normalize


def test_widget_records_types():
    meter = MeterRecord("m", ValueRef(0.0))
    plot = PlotRecord("p", [1.0, 2.0])
    label = FormatLabelRecord("l", "plain")
    assert meter.widget_type is WidgetType.METER
    assert plot.widget_type is WidgetType.PLOT
    assert label.widget_type is WidgetType.LABEL
    assert all(isinstance(r, WidgetRecord) and r.command_type is CommandType.WIDGET
               for r in (meter, plot, label))
    assert plot.num_values == 2


def test_format_label_tracks_reference():
    ref = ValueRef(3)
    record = FormatLabelRecord("count", "x=%d", ref)
    assert record.string_value.get() == "x=3"
    ref.value = 42
    assert record.string_value.get() == "x=42"