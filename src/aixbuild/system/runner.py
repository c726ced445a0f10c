"""
Subprocess execution for the external build toolchain.

ProcessRunner starts the toolchain in its own session, drains both output
streams on reader threads, and waits for the exit while watching the
deadline and the caller's cancellation event. A run that times out or is
cancelled has its whole process tree terminated and reaped before the
corresponding error is raised.
"""

import logging
import os
import re
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, IO, List, Optional, Sequence, Union

from ..validation import (
    BuildCancelledError,
    ProcessError,
    SpawnError,
    ToolchainTimeoutError,
)
from .processes import collect_descendants, terminate_process_tree

logger = logging.getLogger(__name__)

# How often the wait loop re-checks the cancellation event and the deadline.
WAIT_POLL_INTERVAL = 0.1
# How long to wait for the reader threads after the process exits.
READER_JOIN_TIMEOUT = 5.0
# Trailing output lines quoted in the message of a failed run.
DIAGNOSTIC_TAIL_LINES = 10

_SECRET_PROPERTY = re.compile(r"^(-D[^=]*(?:password|passwd|secret)[^=]*=).*$", re.IGNORECASE)

OutputCallback = Callable[[str, str], None]


@dataclass(frozen=True)
class ProcessOutput:
    """Captured result of a completed toolchain run."""

    stdout: str
    stderr: str
    exit_code: int
    pid: int
    duration: float

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


def redact_arguments(args: Sequence[str]) -> List[str]:
    """Mask the value of any -D definition whose name looks like a secret."""
    return [_SECRET_PROPERTY.sub(r"\1******", arg) for arg in args]


def diagnostic_tail(stdout: str, stderr: str, max_lines: int = DIAGNOSTIC_TAIL_LINES) -> str:
    """Last non-blank lines of stderr, or of stdout when stderr is empty."""
    for text in (stderr, stdout):
        lines = [line.rstrip() for line in text.splitlines() if line.strip()]
        if lines:
            return "\n".join(lines[-max_lines:])
    return ""


class _StreamReader(threading.Thread):
    """Drain one pipe, keeping every chunk and forwarding it to a callback."""

    def __init__(self, name: str, pipe: IO[str], on_output: Optional[OutputCallback]):
        super().__init__(name=f"aixbuild-{name}-reader", daemon=True)
        self.stream_name = name
        self._pipe = pipe
        self._on_output = on_output
        self._chunks: List[str] = []

    def run(self) -> None:
        try:
            for chunk in iter(self._pipe.readline, ""):
                self._chunks.append(chunk)
                if self._on_output is not None:
                    try:
                        self._on_output(self.stream_name, chunk)
                    except Exception as e:
                        logger.warning(f"Output callback failed on {self.stream_name}: {e}")
        except ValueError:
            # Pipe closed underneath us after the process was killed.
            pass
        finally:
            try:
                self._pipe.close()
            except OSError:
                pass

    @property
    def text(self) -> str:
        return "".join(self._chunks)


class ProcessRunner:
    """
    Runs toolchain commands to completion with a deadline and cancellation.
    """

    def __init__(self, termination_grace: float = 3.0,
                 poll_interval: float = WAIT_POLL_INTERVAL):
        """
        Args:
            termination_grace: Seconds between SIGTERM and SIGKILL when stopping a run
            poll_interval: Seconds between checks of the deadline and cancel event
        """
        self.termination_grace = termination_grace
        self.poll_interval = poll_interval

    def execute(
        self,
        command: Union[str, Sequence[str]],
        args: Sequence[str] = (),
        workdir: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        on_output: Optional[OutputCallback] = None,
    ) -> ProcessOutput:
        """
        Run ``command + args`` and wait for it to finish.

        Args:
            command: Executable, or executable plus leading arguments
            args: Arguments appended to ``command``
            workdir: Working directory of the child
            env: Entries overlaid on the inherited environment
            timeout: Seconds before the run is stopped; None waits indefinitely
            cancel_event: When set, the run is stopped
            on_output: Called as ``on_output(stream_name, chunk)`` for each
                chunk, with stream_name "stdout" or "stderr"

        Returns:
            ProcessOutput of a run that exited with status 0

        Raises:
            SpawnError: If the executable cannot be started
            ProcessError: If the exit status is non-zero
            ToolchainTimeoutError: If the run exceeded ``timeout``
            BuildCancelledError: If ``cancel_event`` was set during the run
        """
        argv = [command] if isinstance(command, str) else list(command)
        argv.extend(args)
        display = " ".join(redact_arguments(argv))

        child_env = os.environ.copy()
        if env:
            child_env.update(env)

        start = time.monotonic()
        try:
            process = subprocess.Popen(
                argv,
                cwd=workdir,
                env=child_env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            raise SpawnError(f"Failed to start '{argv[0]}': {e}", command=display) from e

        logger.info(f"Started '{display}' with PID {process.pid} in {workdir or os.getcwd()}")

        readers = [
            _StreamReader("stdout", process.stdout, on_output),
            _StreamReader("stderr", process.stderr, on_output),
        ]
        for reader in readers:
            reader.start()

        deadline = start + timeout if timeout is not None else None
        stop_reason: Optional[str] = None
        exit_code: Optional[int] = None

        while exit_code is None:
            if cancel_event is not None and cancel_event.is_set():
                stop_reason = "cancelled"
                break
            if deadline is not None and time.monotonic() >= deadline:
                stop_reason = "timeout"
                break
            wait_for = self.poll_interval
            if deadline is not None:
                wait_for = max(0.0, min(wait_for, deadline - time.monotonic()))
            try:
                exit_code = process.wait(timeout=wait_for)
            except subprocess.TimeoutExpired:
                continue

        if stop_reason is not None:
            self._stop(process, display)

        for reader in readers:
            reader.join(READER_JOIN_TIMEOUT)
            if reader.is_alive():
                logger.warning(
                    f"{reader.stream_name} of PID {process.pid} still open after exit; "
                    "a detached descendant may be holding it"
                )

        duration = time.monotonic() - start
        stdout, stderr = readers[0].text, readers[1].text

        if stop_reason == "timeout":
            raise ToolchainTimeoutError(
                f"'{argv[0]}' timed out after {timeout} seconds",
                timeout=timeout,
                pid=process.pid,
                stdout=stdout,
                stderr=stderr,
            )
        if stop_reason == "cancelled":
            raise BuildCancelledError(
                f"'{argv[0]}' was cancelled after {duration:.1f} seconds",
                pid=process.pid,
                stdout=stdout,
                stderr=stderr,
            )

        logger.debug(f"PID {process.pid} exited with code {exit_code} after {duration:.2f}s")
        if exit_code != 0:
            message = f"'{display}' exited with code {exit_code}"
            tail = diagnostic_tail(stdout, stderr)
            if tail:
                message = f"{message}:\n{tail}"
            raise ProcessError(
                message,
                exit_code=exit_code,
                stdout=stdout,
                stderr=stderr,
            )

        return ProcessOutput(
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            pid=process.pid,
            duration=duration,
        )

    def _stop(self, process: subprocess.Popen, display: str) -> None:
        """Terminate the run's whole tree and reap the direct child."""
        descendants = collect_descendants(process.pid)
        terminate_process_tree(
            process.pid,
            name=f"'{display}'",
            grace_period=self.termination_grace,
            descendants=descendants,
            process_group=process.pid,
        )
        try:
            process.wait(timeout=self.termination_grace + 1.0)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
