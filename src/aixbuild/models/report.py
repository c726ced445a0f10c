"""
Validation report models.

A validation run is made of independent phases; each phase contributes a
PhaseResult and the pipeline concatenates them into one ValidationReport.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional


@dataclass
class PhaseResult:
    """
    Errors and warnings contributed by one validation phase.
    """

    name: str
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def extend(self, other: "PhaseResult") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass
class ValidationReport:
    """
    Aggregated result of a validation run. Never persisted.

    ``valid`` is derived from the error list; warnings never affect it.
    """

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    project_path: Optional[str] = None
    phases: List[PhaseResult] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @classmethod
    def from_phases(cls, phases: Iterable[PhaseResult],
                    project_path: Optional[str] = None) -> "ValidationReport":
        report = cls(project_path=project_path)
        for phase in phases:
            report.errors.extend(phase.errors)
            report.warnings.extend(phase.warnings)
            report.phases.append(phase)
        return report


@dataclass(frozen=True)
class DependencyDescriptor:
    """
    One library file found in the project's library directory.
    """

    name: str
    version: Optional[str]
    file_name: str
    size: int
    size_formatted: str
