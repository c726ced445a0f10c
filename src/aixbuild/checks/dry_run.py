"""
Build dry-run phase.

Runs the clean, compile and package targets through the ProcessRunner and
checks that packaging produced an artifact. This phase mutates the project's
build directories, so it runs under the project lock.
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Sequence

from ..artifacts import discover_artifact
from ..models.config import AppConfig
from ..models.report import PhaseResult
from ..progress import BuildCompleted, ProgressParser
from ..system.locks import ProjectLockRegistry
from ..system.runner import ProcessRunner
from ..validation import AixBuildError, ArtifactError, BuildCancelledError

logger = logging.getLogger(__name__)

DRY_RUN_TARGETS = ("clean", "compile", "package")


class DryRunPhase:
    """Any toolchain failure here is an error."""

    name = "Build"

    def __init__(self, config: AppConfig, runner: ProcessRunner, lock_registry: ProjectLockRegistry,
                 targets: Sequence[str] = DRY_RUN_TARGETS):
        self.config = config
        self.runner = runner
        self.lock_registry = lock_registry
        self.targets = tuple(targets)

    def run(self, project_path: Path, cancel_event: Optional[threading.Event] = None) -> PhaseResult:
        result = PhaseResult(name=self.name)
        if not (project_path / self.config.layout.descriptor).is_file():
            result.error(f"Cannot test build: {self.config.layout.descriptor} not found")
            return result

        with self.lock_registry.lock_for(project_path, self.config.toolchain.lock_timeout):
            announced = None
            for target in self.targets:
                parser = ProgressParser()
                try:
                    output = self.runner.execute(
                        self.config.toolchain.command,
                        [target],
                        workdir=project_path,
                        timeout=self.config.toolchain.dry_run_timeout,
                        cancel_event=cancel_event,
                    )
                except BuildCancelledError:
                    result.error(f"Build test cancelled during target '{target}'")
                    return result
                except AixBuildError as e:
                    result.error(f"Build target '{target}' failed: {e}")
                    return result
                events = parser.parse(output.stdout) + parser.flush()
                for event in events:
                    if isinstance(event, BuildCompleted):
                        announced = event.path
                logger.info(f"Dry-run target '{target}' passed in {output.duration:.1f}s")

            if announced is not None:
                announced_path = Path(announced)
                if not announced_path.is_absolute():
                    announced_path = project_path / announced_path
                if not announced_path.is_file():
                    result.error(f"Expected {self.config.layout.artifact_suffix} file not found: {announced}")
                    return result
            try:
                discover_artifact(project_path, self.config.layout, announced)
            except ArtifactError as e:
                result.error(str(e))
        return result
