"""
Incremental parser turning raw toolchain output into progress events.

The parser is fed output chunks as they arrive. Chunks may split a line
anywhere, so only complete lines are matched; the trailing partial line is
held until the next chunk or until flush() is called at end of stream.
"""

import re
from typing import Callable, List, Pattern, Tuple

from .events import ArtifactPackaged, BuildCompleted, CompilationStarted, ProgressEvent

# Rule table: one compiled pattern per recognised marker line. The first
# matching rule wins.
_RULES: List[Tuple[Pattern[str], Callable[[re.Match], ProgressEvent]]] = [
    (re.compile(r"Compiling (\d+) source files?"),
     lambda m: CompilationStarted(file_count=int(m.group(1)))),
    (re.compile(r"Building jar: (.+)"),
     lambda m: ArtifactPackaged(path=m.group(1).strip())),
    (re.compile(r"Extension built: (.+)"),
     lambda m: BuildCompleted(path=m.group(1).strip())),
]


def parse_line(line: str) -> List[ProgressEvent]:
    """Return the events contributed by one complete output line."""
    for pattern, build in _RULES:
        match = pattern.search(line)
        if match:
            return [build(match)]
    return []


class ProgressParser:
    """
    Stateful line assembler over a single output stream.

    Use one parser per stream; interleaving stdout and stderr chunks in one
    parser would splice unrelated partial lines together.
    """

    def __init__(self):
        self._buffer = ""

    def parse(self, chunk: str) -> List[ProgressEvent]:
        """
        Feed a chunk of output and return the events of every line it completes.

        Args:
            chunk: Raw text as read from the stream, possibly empty

        Returns:
            Events in output order
        """
        if not chunk:
            return []
        data = self._buffer + chunk
        lines = data.splitlines(keepends=True)
        if lines and not lines[-1].endswith(("\n", "\r")):
            self._buffer = lines.pop()
        else:
            self._buffer = ""

        events: List[ProgressEvent] = []
        for line in lines:
            events.extend(parse_line(line.rstrip("\r\n")))
        return events

    def flush(self) -> List[ProgressEvent]:
        """Parse whatever partial line is still buffered at end of stream."""
        remainder, self._buffer = self._buffer, ""
        if not remainder:
            return []
        return parse_line(remainder)

    @property
    def pending(self) -> str:
        """The buffered partial line."""
        return self._buffer
