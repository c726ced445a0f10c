"""
Structured progress events emitted while the toolchain runs.

Each event corresponds to one recognised marker line in the toolchain output.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class CompilationStarted:
    """The compiler announced how many source files it is about to compile."""

    file_count: int


@dataclass(frozen=True)
class ArtifactPackaged:
    """An intermediate archive was written (e.g. the classes jar)."""

    path: str


@dataclass(frozen=True)
class BuildCompleted:
    """The final extension artifact was written."""

    path: str


ProgressEvent = Union[CompilationStarted, ArtifactPackaged, BuildCompleted]


def describe_event(event: ProgressEvent) -> str:
    """Return a one-line, human readable description of an event."""
    if isinstance(event, CompilationStarted):
        noun = "file" if event.file_count == 1 else "files"
        return f"Compiling {event.file_count} source {noun}"
    if isinstance(event, ArtifactPackaged):
        return f"Packaged archive: {event.path}"
    if isinstance(event, BuildCompleted):
        return f"Extension built: {event.path}"
    raise TypeError(f"Unknown progress event: {event!r}")
