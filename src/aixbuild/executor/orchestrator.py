"""
Build orchestration for App Inventor extension projects.

BuildOrchestrator drives one build attempt through its stages:

    Idle -> Cleaning (optional) -> Preparing -> Invoking -> Succeeded | Failed

Failures of the toolchain itself (spawn failure, non-zero exit, timeout,
cancellation, missing artifact) end in the Failed state and are returned as
an unsuccessful BuildResult that is also recorded in the project's history.
Missing inputs (project directory, build descriptor, signing material) are
raised as PreconditionError before anything is touched and are not recorded.
"""

import logging
import shutil
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from ..artifacts import discover_artifact
from ..checks.dependencies import scan_dependencies
from ..checks.descriptor import extract_targets
from ..config import get_config
from ..models.build import BuildRequest, BuildResult, BuildStats, ExtensionArtifact
from ..models.config import AppConfig
from ..models.report import DependencyDescriptor
from ..progress import BuildCompleted, ProgressEvent, ProgressParser, ProgressStream, describe_event
from ..storage.history import HistoryStore
from ..system.locks import ProjectLockRegistry, get_lock_registry
from ..system.runner import ProcessRunner
from ..validation import (
    AixBuildError,
    PreconditionError,
    ValidationError,
    validate_enum_choice,
)

logger = logging.getLogger(__name__)

OPTIMIZATION_LEVELS = ["none", "standard", "aggressive"]

COVERAGE_TARGET = "test-coverage"
OPTIMIZED_TARGET = "package-optimized"
SIGNED_TARGET = "package-signed"

_REDACTED = "******"


def _redact_properties(properties: Dict[str, str]) -> Dict[str, str]:
    return {
        name: (_REDACTED if "password" in name.lower() else value)
        for name, value in properties.items()
    }


def _as_flag(value: bool) -> str:
    return "true" if value else "false"


class BuildOrchestrator:
    """
    Coordinates build attempts against extension projects.

    One orchestrator can serve many projects and many threads; operations on
    the same project are serialized through the project lock registry.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        runner: Optional[ProcessRunner] = None,
        lock_registry: Optional[ProjectLockRegistry] = None,
        record_history: bool = True,
    ):
        """
        Args:
            config: Application configuration; the global configuration if omitted
            runner: Process runner used for toolchain invocations
            lock_registry: Registry providing per-project locks
            record_history: Record every build attempt in the project history
        """
        self.config = config or get_config()
        self.runner = runner or ProcessRunner(
            termination_grace=self.config.toolchain.termination_grace
        )
        self.lock_registry = lock_registry or get_lock_registry()
        self.record_history = record_history

    @property
    def layout(self):
        return self.config.layout

    def history(self, project_path: Union[str, Path]) -> HistoryStore:
        """Return the history store of a project, sharing this orchestrator's locks."""
        return HistoryStore(
            project_path,
            layout=self.layout,
            config=self.config.history,
            lock_registry=self.lock_registry,
        )

    # --- Preconditions and directories ---

    def _check_preconditions(self, project_path: Path) -> None:
        if not project_path.is_dir():
            raise PreconditionError(f"Project directory does not exist: {project_path}")
        descriptor = project_path / self.layout.descriptor
        if not descriptor.is_file():
            raise PreconditionError(f"Build file not found: {descriptor}")

    def _remove_output_dirs(self, project_path: Path) -> None:
        for name in (self.layout.build_dir, self.layout.dist_dir):
            directory = project_path / name
            if directory.exists():
                shutil.rmtree(directory)
        logger.info(f"Cleaned build directories of {project_path.name}")

    def _ensure_output_dirs(self, project_path: Path) -> None:
        for name in (self.layout.build_dir, self.layout.dist_dir):
            (project_path / name).mkdir(parents=True, exist_ok=True)

    def clean(self, project_path: Union[str, Path]) -> None:
        """
        Remove the build and distribution directories of a project.

        Idempotent: cleaning an already clean project is a no-op.

        Raises:
            PreconditionError: If the project directory does not exist
        """
        project_path = Path(project_path)
        if not project_path.is_dir():
            raise PreconditionError(f"Project directory does not exist: {project_path}")
        with self.lock_registry.lock_for(project_path, self.config.toolchain.lock_timeout):
            self._remove_output_dirs(project_path)

    # --- Invocation ---

    @staticmethod
    def build_arguments(request: BuildRequest) -> List[str]:
        """Serialize a request as ``<target> -Dname=value ...``."""
        args = [request.target]
        args.extend(f"-D{name}={value}" for name, value in request.properties.items())
        return args

    def discover_artifact(self, project_path: Union[str, Path],
                          announced: Optional[str] = None) -> ExtensionArtifact:
        """Identify the artifact produced by a build; see artifacts.discover_artifact."""
        return discover_artifact(project_path, self.layout, announced)

    def build_extension(
        self,
        request: BuildRequest,
        progress: Optional[ProgressStream] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BuildResult:
        """
        Run one build attempt.

        Args:
            request: What to build and how
            progress: Receives progress events as they are parsed; closed when
                the attempt ends
            cancel_event: Setting it stops the running toolchain

        Returns:
            The BuildResult, successful or not

        Raises:
            PreconditionError: If the project directory or build descriptor is missing
            ProjectBusyError: If the project lock is not acquired within the lock timeout
        """
        try:
            project_path = request.project_path
            self._check_preconditions(project_path)
            with self.lock_registry.lock_for(project_path, self.config.toolchain.lock_timeout):
                result = self._run(request, progress, cancel_event)
                if self.record_history:
                    self.history(project_path).record(result)
            return result
        finally:
            if progress is not None:
                progress.close()

    def _run(self, request: BuildRequest, progress: Optional[ProgressStream],
             cancel_event: Optional[threading.Event]) -> BuildResult:
        project_path = request.project_path
        start = time.monotonic()
        events: List[ProgressEvent] = []
        parsers = {"stdout": ProgressParser(), "stderr": ProgressParser()}
        line_level = logging.INFO if request.verbose else logging.DEBUG

        def emit(new_events: Sequence[ProgressEvent]) -> None:
            for event in new_events:
                events.append(event)
                logger.info(describe_event(event))
                if progress is not None:
                    progress.publish(event)

        def on_output(stream_name: str, chunk: str) -> None:
            logger.log(line_level, f"[{stream_name}] {chunk.rstrip()}")
            emit(parsers[stream_name].parse(chunk))

        def elapsed_ms() -> int:
            return int(round((time.monotonic() - start) * 1000))

        public_properties = _redact_properties(request.properties)
        logger.info(f"Building {project_path.name}: target '{request.target}'")

        output = ""
        try:
            if request.clean:
                self._remove_output_dirs(project_path)
            self._ensure_output_dirs(project_path)

            process_output = self.runner.execute(
                self.config.toolchain.command,
                self.build_arguments(request),
                workdir=project_path,
                timeout=self.config.toolchain.build_timeout,
                cancel_event=cancel_event,
                on_output=on_output,
            )
            output = process_output.output
            for parser in parsers.values():
                emit(parser.flush())

            artifact = None
            if request.discover_artifact:
                announced = next(
                    (e.path for e in reversed(events) if isinstance(e, BuildCompleted)), None
                )
                artifact = self.discover_artifact(project_path, announced)
        except (AixBuildError, OSError) as e:
            for parser in parsers.values():
                emit(parser.flush())
            output = output or getattr(e, "output", "")
            duration = elapsed_ms()
            logger.error(f"Build of {project_path.name} failed after {duration} ms: {e}")
            return BuildResult(
                success=False,
                target=request.target,
                duration_ms=duration,
                output=output,
                error=str(e),
                properties=public_properties,
                events=tuple(events),
                exception=e,
            )

        duration = elapsed_ms()
        if artifact is not None:
            logger.info(
                f"Built {artifact.name} ({artifact.size_formatted}) in {duration} ms"
            )
        else:
            logger.info(f"Target '{request.target}' completed in {duration} ms")
        return BuildResult(
            success=True,
            target=request.target,
            duration_ms=duration,
            output=output,
            artifact=artifact,
            properties=public_properties,
            events=tuple(events),
        )

    # --- Specialized builds ---

    def has_coverage_agent(self, project_path: Union[str, Path]) -> bool:
        """Whether the library directory contains a JaCoCo jar."""
        libs_dir = Path(project_path) / self.layout.libs_dir
        if not libs_dir.is_dir():
            return False
        return any("jacoco" in p.name.lower() for p in libs_dir.iterdir() if p.is_file())

    def build_with_coverage(
        self,
        request: BuildRequest,
        progress: Optional[ProgressStream] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BuildResult:
        """
        Run the coverage target and attach the HTML report when one is produced.

        Raises:
            PreconditionError: If no JaCoCo jar is present in the library directory
        """
        if not self.has_coverage_agent(request.project_path):
            if progress is not None:
                progress.close()
            raise PreconditionError("JaCoCo not found. Please install JaCoCo for coverage analysis.")

        coverage_request = request.with_overrides(
            COVERAGE_TARGET, {"coverage.enabled": "true"}, discover_artifact=False
        )
        result = self.build_extension(coverage_request, progress, cancel_event)
        if not result.success:
            return result

        report = request.project_path / self.layout.coverage_dir / "index.html"
        if not report.is_file():
            logger.warning(f"Coverage build finished but no report at {report}")
            return result
        logger.info(f"Coverage report: {report.as_uri()}")
        return BuildResult(
            success=result.success,
            target=result.target,
            duration_ms=result.duration_ms,
            output=result.output,
            artifact=result.artifact,
            error=result.error,
            properties=result.properties,
            events=result.events,
            coverage_report=report,
        )

    def build_optimized(
        self,
        request: BuildRequest,
        level: str = "aggressive",
        obfuscate: bool = False,
        shrink_resources: bool = False,
        progress: Optional[ProgressStream] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BuildResult:
        """
        Run the optimizing package target.

        Raises:
            PreconditionError: If ``level`` is not a known optimization level
        """
        try:
            level = validate_enum_choice(level, OPTIMIZATION_LEVELS, field_name="optimization level",
                                         case_sensitive=False)
        except ValidationError as e:
            if progress is not None:
                progress.close()
            raise PreconditionError(str(e)) from e

        optimized_request = request.with_overrides(OPTIMIZED_TARGET, {
            "optimize.enabled": "true",
            "optimize.level": level,
            "optimize.obfuscate": _as_flag(obfuscate),
            "optimize.resources": _as_flag(shrink_resources),
        })
        return self.build_extension(optimized_request, progress, cancel_event)

    def sign_extension(
        self,
        request: BuildRequest,
        keystore: Union[str, Path, None],
        alias: Optional[str],
        password: str = "",
        progress: Optional[ProgressStream] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BuildResult:
        """
        Run the signing package target.

        The password is passed to the toolchain only; it is masked in logs
        and in the returned result.

        Raises:
            PreconditionError: If the keystore or alias is missing, or the
                keystore file does not exist
        """
        try:
            if not keystore or not alias:
                raise PreconditionError("Keystore and alias are required for signing")
            keystore_path = Path(keystore)
            if not keystore_path.is_absolute():
                keystore_path = request.project_path / keystore_path
            if not keystore_path.is_file():
                raise PreconditionError(f"Keystore not found: {keystore_path}")
        except PreconditionError:
            if progress is not None:
                progress.close()
            raise

        signed_request = request.with_overrides(SIGNED_TARGET, {
            "sign.enabled": "true",
            "sign.keystore": str(keystore_path),
            "sign.alias": alias,
            "sign.password": password or "",
        })
        return self.build_extension(signed_request, progress, cancel_event)

    # --- Read-only queries ---

    def get_build_targets(self, project_path: Union[str, Path]) -> List[str]:
        """Target names declared in the build descriptor, in declaration order."""
        descriptor = Path(project_path) / self.layout.descriptor
        if not descriptor.is_file():
            return []
        try:
            return extract_targets(descriptor.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            logger.warning(f"Failed to read build targets from {descriptor}: {e}")
            return []

    def get_build_dependencies(self, project_path: Union[str, Path]) -> List[DependencyDescriptor]:
        """Library jars of the project."""
        return scan_dependencies(Path(project_path) / self.layout.libs_dir)

    def get_build_stats(self, project_path: Union[str, Path]) -> BuildStats:
        """Aggregate statistics over the project's build history."""
        return self.history(project_path).stats()
