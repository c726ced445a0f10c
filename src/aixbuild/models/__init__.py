"""
Data models for the build orchestration core.

Configuration Models:
- Toolchain invocation settings, project layout, history retention and
  validation thresholds

Build Models:
- Build requests and results, discovered artifacts
- Persisted history records and aggregate statistics

Report Models:
- Per-phase validation results and the aggregated validation report
- Library dependency descriptors
"""

from .config import AppConfig, HistoryConfig, ProjectLayout, ToolchainConfig, ValidationConfig

from .build import BuildRecord, BuildRequest, BuildResult, BuildStats, ExtensionArtifact

from .report import DependencyDescriptor, PhaseResult, ValidationReport

__all__ = [
    # Configuration
    "AppConfig",
    "HistoryConfig",
    "ProjectLayout",
    "ToolchainConfig",
    "ValidationConfig",
    # Build
    "BuildRecord",
    "BuildRequest",
    "BuildResult",
    "BuildStats",
    "ExtensionArtifact",
    # Reports
    "DependencyDescriptor",
    "PhaseResult",
    "ValidationReport",
]
