"""Host-side building blocks for a live audio plugin environment: parameters, widgets, FFTs, WAV I/O and plugin state."""

__version__ = "0.4.0"