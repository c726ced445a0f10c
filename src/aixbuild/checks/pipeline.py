"""
Validation pipeline.

Runs the validation phases against a project and merges their findings into
one ValidationReport. Phases are independent: a fault inside one phase is
trapped and turned into a single finding, and never stops the phases after
it.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from ..config import get_config
from ..models.config import AppConfig
from ..models.report import PhaseResult, ValidationReport
from ..system.locks import ProjectLockRegistry, get_lock_registry
from ..system.runner import ProcessRunner
from ..validation import ErrorSeverity, handle_error
from .code_quality import CodeQualityPhase
from .dependencies import DependencyPhase
from .dry_run import DryRunPhase
from .environment import EnvironmentPhase, ToolProbe, default_probes
from .structure import StructurePhase

logger = logging.getLogger(__name__)


@dataclass
class ValidationOptions:
    """Opt-in phases and scheduling for a validation run."""

    build: bool = False
    code_quality: bool = False
    # Run the read-only phases on a thread pool.
    parallel: bool = False


class ValidationPipeline:
    """
    Structure, environment, dependency, build dry-run and code quality phases.

    Each ``validate_*`` method runs one phase unguarded and returns its
    PhaseResult; ``validate_all`` runs the selected phases with fault
    trapping and merges them in that declared order.
    """

    def __init__(self, config: Optional[AppConfig] = None,
                 runner: Optional[ProcessRunner] = None,
                 lock_registry: Optional[ProjectLockRegistry] = None,
                 probes: Optional[Sequence[ToolProbe]] = None,
                 max_workers: int = 4):
        self.config = config or get_config()
        self.runner = runner or ProcessRunner(termination_grace=self.config.toolchain.termination_grace)
        self.lock_registry = lock_registry or get_lock_registry()
        self.probes = list(probes) if probes is not None else default_probes(self.config)
        self.max_workers = max_workers

    def validate_structure(self, project_path: Union[str, Path]) -> PhaseResult:
        return StructurePhase(self.config.layout, self.config.validation).run(Path(project_path))

    def validate_environment(self) -> PhaseResult:
        return EnvironmentPhase(self.runner, self.probes, timeout=self.config.toolchain.probe_timeout).run()

    def validate_dependencies(self, project_path: Union[str, Path]) -> PhaseResult:
        return DependencyPhase(self.config.layout, self.config.validation).run(Path(project_path))

    def validate_build(self, project_path: Union[str, Path],
                       cancel_event: Optional[threading.Event] = None) -> PhaseResult:
        """Dry-run clean, compile and package; runs under the project lock."""
        phase = DryRunPhase(self.config, self.runner, self.lock_registry)
        return phase.run(Path(project_path), cancel_event=cancel_event)

    def validate_code_quality(self, project_path: Union[str, Path]) -> PhaseResult:
        return CodeQualityPhase(self.config.layout, self.config.validation).run(Path(project_path))

    def validate_all(self, project_path: Union[str, Path],
                     options: Optional[ValidationOptions] = None,
                     cancel_event: Optional[threading.Event] = None) -> ValidationReport:
        """
        Run every selected phase and merge the findings.

        Args:
            project_path: Root of the extension project
            options: Which opt-in phases to run and whether to parallelize
            cancel_event: Set to abort the build dry-run

        Returns:
            ValidationReport whose findings are ordered by phase
        """
        options = options or ValidationOptions()
        path = Path(project_path)

        # (name, callable, read_only, faults_are_warnings)
        phases: List[Tuple[str, Callable[[], PhaseResult], bool, bool]] = [
            ("Structure", lambda: self.validate_structure(path), True, False),
            ("Environment", self.validate_environment, True, False),
            ("Dependency", lambda: self.validate_dependencies(path), True, False),
        ]
        if options.build:
            phases.append(("Build", lambda: self.validate_build(path, cancel_event), False, False))
        if options.code_quality:
            phases.append(("Code quality", lambda: self.validate_code_quality(path), True, True))

        logger.info(f"Validating {path} with phases: {', '.join(name for name, *_ in phases)}")

        if options.parallel:
            results = self._run_parallel(phases)
        else:
            results = [self._run_guarded(name, func, lenient) for name, func, _, lenient in phases]

        report = ValidationReport.from_phases(results, project_path=str(path))
        logger.info(
            f"Validation of {path} finished: {'VALID' if report.valid else 'INVALID'} "
            f"({len(report.errors)} errors, {len(report.warnings)} warnings)"
        )
        return report

    def _run_parallel(self, phases: List[Tuple[str, Callable[[], PhaseResult], bool, bool]]) -> List[PhaseResult]:
        pending: Dict[int, Future] = {}
        results: Dict[int, PhaseResult] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="ValidationWorker") as pool:
            for index, (name, func, read_only, lenient) in enumerate(phases):
                if read_only:
                    pending[index] = pool.submit(self._run_guarded, name, func, lenient)
            # The dry-run mutates the project and stays on the calling thread.
            for index, (name, func, read_only, lenient) in enumerate(phases):
                if not read_only:
                    results[index] = self._run_guarded(name, func, lenient)
            for index, future in pending.items():
                results[index] = future.result()
        return [results[index] for index in range(len(phases))]

    @staticmethod
    def _run_guarded(name: str, func: Callable[[], PhaseResult], lenient: bool) -> PhaseResult:
        try:
            return func()
        except Exception as e:
            handle_error(
                error=e,
                context=f"{name.lower()} validation",
                severity=ErrorSeverity.WARNING if lenient else ErrorSeverity.ERROR,
                reraise=False,
                logger=logger,
            )
            result = PhaseResult(name=name)
            message = f"{name} validation failed: {e}"
            if lenient:
                result.warn(message)
            else:
                result.error(message)
            return result
