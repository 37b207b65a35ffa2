[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "apehost"
version = "0.4.0"
description = "Host-side building blocks for a live audio plugin programming environment: parameters, widgets, FFTs, WAV files and plugin state."
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["audio", "plugin", "dsp", "fft", "parameters", "resampling", "wav"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["apehost"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
