"""The project record passed between the host, the code generator and compilers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

__all__ = ["CodeState", "Project"]


class CodeState(enum.Enum):
    """Lifecycle stage of a project's code."""

    NONE = enum.auto()
    CREATED = enum.auto()
    COMPILED = enum.auto()
    INITIALIZED = enum.auto()
    DISABLED = enum.auto()
    ACTIVATED = enum.auto()
    RELEASED = enum.auto()


@dataclass
class Project:
    """Information about the current project, its compiler and its state."""

    source_string: str | None = None
    root_path: str | None = None
    project_name: str | None = None
    arguments: str | None = None
    trace_lines: list[int] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    language_id: str | None = None
    compiler: Any = None
    iface: Any = None
    state: CodeState = CodeState.NONE

    @property
    def n_files(self) -> int:
        return len(self.files)

    def release(self) -> None:
        """Drop the project's owned data; the compiler binding is not owned and stays."""
        self.source_string = None
        self.root_path = None
        self.project_name = None
        self.arguments = None
        self.trace_lines = []
        self.files = []

    def __enter__(self) -> "Project":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()