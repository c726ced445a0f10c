"""
Build data models.

This module defines the request/result pair of one build invocation, the
artifact descriptor discovered after a successful build, the persisted
history record, and the aggregate statistics computed over the history.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..progress.events import ProgressEvent
from ..validation import AixBuildError


@dataclass
class BuildRequest:
    """
    Parameters of a single build invocation.
    """

    project_path: Path
    # Toolchain target to invoke, e.g. "package".
    target: str = "package"
    # Remove the build and distribution directories before building.
    clean: bool = False
    # Log every line of toolchain output at INFO instead of DEBUG.
    verbose: bool = False
    # Named properties passed to the toolchain as -Dname=value.
    properties: Dict[str, str] = field(default_factory=dict)
    # When False, success does not require an artifact in the distribution directory.
    discover_artifact: bool = True

    def __post_init__(self):
        self.project_path = Path(self.project_path)

    def with_overrides(self, target: str, properties: Dict[str, str],
                       discover_artifact: Optional[bool] = None) -> "BuildRequest":
        """Return a copy with a different target and extra properties merged in."""
        merged = dict(self.properties)
        merged.update(properties)
        return BuildRequest(
            project_path=self.project_path,
            target=target,
            clean=self.clean,
            verbose=self.verbose,
            properties=merged,
            discover_artifact=(
                self.discover_artifact if discover_artifact is None else discover_artifact
            ),
        )


@dataclass(frozen=True)
class ExtensionArtifact:
    """
    The packaged extension file found in the distribution directory.
    """

    name: str
    path: Path
    size: int
    size_formatted: str
    modified: datetime
    created: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": str(self.path),
            "size": self.size,
            "sizeFormatted": self.size_formatted,
            "modified": self.modified.isoformat(),
            "created": self.created.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtensionArtifact":
        return cls(
            name=data["name"],
            path=Path(data["path"]),
            size=int(data["size"]),
            size_formatted=data.get("sizeFormatted", ""),
            modified=datetime.fromisoformat(data["modified"]),
            created=datetime.fromisoformat(data["created"]),
        )


@dataclass(frozen=True)
class BuildResult:
    """
    Outcome of one BuildOrchestrator invocation. Immutable once returned.
    """

    success: bool
    target: str
    duration_ms: int
    output: str = ""
    artifact: Optional[ExtensionArtifact] = None
    error: Optional[str] = None
    properties: Dict[str, str] = field(default_factory=dict)
    events: Tuple[ProgressEvent, ...] = ()
    coverage_report: Optional[Path] = None
    # The exception behind a failed build, for callers that prefer raising.
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    def raise_for_error(self) -> None:
        """Re-raise the failure behind this result, if any."""
        if self.success:
            return
        if self.exception is not None:
            raise self.exception
        raise AixBuildError(self.error or "Build failed")


@dataclass(frozen=True)
class BuildRecord:
    """
    One entry of the persisted build history.
    """

    timestamp: datetime
    duration_ms: int
    success: bool
    artifact: Optional[ExtensionArtifact]
    output_excerpt: str

    @classmethod
    def from_result(cls, result: BuildResult, excerpt_chars: int = 1000,
                    timestamp: Optional[datetime] = None) -> "BuildRecord":
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            duration_ms=result.duration_ms,
            success=result.success,
            artifact=result.artifact,
            output_excerpt=(result.output or "")[:excerpt_chars],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "duration": self.duration_ms,
            "success": self.success,
            "artifact": self.artifact.to_dict() if self.artifact else None,
            "outputExcerpt": self.output_excerpt,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildRecord":
        artifact = data.get("artifact")
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            duration_ms=int(data["duration"]),
            success=bool(data["success"]),
            artifact=ExtensionArtifact.from_dict(artifact) if artifact else None,
            output_excerpt=data.get("outputExcerpt", ""),
        )


@dataclass
class BuildStats:
    """
    Aggregate statistics over a project's build history.
    """

    project: str
    build_count: int = 0
    success_count: int = 0
    average_duration_ms: float = 0.0
    last_build: Optional[BuildRecord] = None
    largest_artifact: Optional[ExtensionArtifact] = None
    smallest_artifact: Optional[ExtensionArtifact] = None

    @property
    def success_rate(self) -> float:
        if self.build_count == 0:
            return 0.0
        return self.success_count / self.build_count
