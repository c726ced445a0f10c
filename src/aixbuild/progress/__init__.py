"""
Progress reporting for running builds.

The parser recognises marker lines in the toolchain output and the stream
carries the resulting events to a consumer on another thread.
"""

from .events import (
    ArtifactPackaged,
    BuildCompleted,
    CompilationStarted,
    ProgressEvent,
    describe_event,
)
from .parser import ProgressParser, parse_line
from .stream import ProgressStream

__all__ = [
    "ArtifactPackaged",
    "BuildCompleted",
    "CompilationStarted",
    "ProgressEvent",
    "describe_event",
    "ProgressParser",
    "parse_line",
    "ProgressStream",
]
