# apehost

`apehost` is the host side of an environment for writing audio plugins while
they run. It keeps track of what a plugin registers, feeds it audio and
events, and contains the plugin's failures.

## Modules

- **`apehost.formatting`**: `ReferenceFormattedString` holds a printf-style
  format string whose arguments are `ValueRef` cells (or plain constants, or
  `None`). Each call to `get()` renders the string again from the values the
  cells hold at that moment.
- **`apehost.engine_structures`**: `AuxMatrix` (float32 channels sharing one
  growable block, with copy, ramped accumulate, clear and linear resampling),
  `linear_filter`, `ChannelNamePool`, `TracerState` (captures up to ten
  traces and their names), and `EngineCommand` with `create` and `returned`.
- **`apehost.project`**: the `Project` dataclass and its `CodeState`.
- **`apehost.commands`**: records a plugin queues during activation:
  `ParameterRecord` (`bool_flag`, `value_list`, `normal_parameter`),
  `MeterRecord`, `PlotRecord`, `FormatLabelRecord`, and the
  `PluginCommandQueue` that numbers commands per class. `linear_scale` and
  `linear_normalize` are the default scaling functions.
- **`apehost.widgets`**: `PluginWidget.from_record` builds a `MeterWidget`
  (`level()`, `peak()`, clamped to [0, 1]), a `LabelWidget` (`text()`) or a
  `PlotWidget` (`trace(top, height)` returning a `PlotTrace`).
- **`apehost.fft`**: `PluginFFT.factory(size, DataType.SINGLE | DataType.DOUBLE)`
  and `transform(data, options)` using `FFTOptions` (`FORWARD`, `REAL`,
  `NON_SCALED`; without `FORWARD` the transform is the inverse, scaled by
  `1/N` unless `NON_SCALED` is set).
- **`apehost.parameter_manager`**: `ParameterManager` owns a fixed number of
  `LowLevelParameter`s (50 by default) with normalized values clamped to
  [0, 1]. Formatting, parsing, scaling, naming and quantization go through
  swappable `ExternalParameterTraits`; indices without a trait are called
  `"unnamed"` and use a linear [0, 1] range. Realtime listeners are called
  with `(index, value)` on every change.
- **`apehost.parameters`**: `PluginParameter.from_record` builds a
  `NormalParameter`, `BooleanParameter` or `ListParameter`. Each writes its
  value into a `ParameterSlot` once per block through `swap_parameters`.
- **`apehost.audio_file`**: `AudioFile.from_path` loads a RIFF/WAVE file
  (integer PCM of 8, 16, 24 or 32 bits, or 32/64-bit float) as one float32
  row per channel. `resampled(rate)` converts it with 4-point Hermite
  interpolation (`hermite4`).
- **`apehost.audio_writer`**: `OutputFileManager.create_producer` opens a WAV
  file and returns a `StreamProducer`. The producer accepts
  `(channels, frames)` blocks and encodes them on a background thread.
  `write` returns `False` instead of blocking when its buffer is full.
  32-bit output is stored as float, smaller depths as integers.
- **`apehost.label_queue`**: `LabelQueue` shows each queued message for its
  timeout in milliseconds, then falls back to a default message. Call
  `pulse()` regularly to advance it.
- **`apehost.ui_values`**: `UIValue` and `UICommandState`, which turn changes
  to the compile, activation, clean and precision values into `UICommand`s.
  A refused command sets its value back.
- **`apehost.surface`**: `Rect`, `layout_components`, `SurfaceLayout` (the
  control grid, meter column and widget row of a plugin surface),
  `ScrollableContainer` and the thread-safe `TextControl`.
- **`apehost.plugin_state`**: `PluginState` drives a `Project` through a code
  generator you supply: create, compile, initialize, then
  `initialize_activation` / `finalize_activation`, `process_replacing`,
  events, and `disable_project`. An exception raised by plugin code is
  logged and marks the plugin as misbehaving. Later calls into it are then
  skipped until it is disabled, and the exception is not re-raised.

## Installation

```
pip install .
```

## Examples

A label that always shows the latest value:

```python
from apehost.formatting import ReferenceFormattedString, ValueRef

gain = ValueRef(0.5)
label = ReferenceFormattedString("gain: %f", gain)
label.get()      # "gain: 0.5"
gain.value = 0.75
label.get()      # "gain: 0.75"
```

A round trip through the FFT:

```python
import numpy as np
from apehost.fft import PluginFFT, DataType, FFTOptions

fft = PluginFFT.factory(8, DataType.DOUBLE)
signal = np.arange(8, dtype=np.complex128)
spectrum = fft.transform(signal, FFTOptions.FORWARD)
restored = fft.transform(spectrum, FFTOptions.INVERSE)
```

A status queue driven by your own clock:

```python
from apehost.label_queue import LabelQueue

now = [0]
queue = LabelQueue(clock=lambda: now[0])
queue.set_default_message("Ready", "white")
queue.push_message("Compiled", "green", 1000)
queue.pulse()
queue.text()     # "Compiled"
now[0] = 2000
queue.pulse()
queue.text()     # "Ready"
```

## What the package does not do

- It has no compiler or code generator. `PluginState` calls an object you
  pass in that provides `create_project`, `compile_project`, `init_project`,
  `activate_project`, `disable_project`, `process_replacing`, `on_event` and
  `release_project`.
- It has no audio engine of its own. The engine object you pass must provide
  a `parameter_manager` and `set_triggering_channel`.
- It draws nothing. Widgets and surfaces compute values, text and layout
  rectangles, but there is no window, editor or plugin format.
- It reads and writes WAV files only.
- It offers no command-line program.

## Running the tests

```
pip install .[test]
pytest
```