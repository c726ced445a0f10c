"""
Configuration data models.

This module contains the configuration structures for the external toolchain,
the on-disk layout of an extension project, the build history and the
validation thresholds.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ToolchainConfig:
    """
    How the external build toolchain is invoked, loaded from `[toolchain]`.
    """

    # Command prefix for the toolchain, e.g. ["ant"]; the target and -D
    # definitions are appended to it.
    command: List[str] = field(default_factory=lambda: ["ant"])
    # Upper bound for a single build invocation (seconds).
    build_timeout: float = 300.0
    # Upper bound for a `-version` environment probe (seconds).
    probe_timeout: float = 5.0
    # Upper bound for each step of the validation dry-run (seconds).
    dry_run_timeout: float = 60.0
    # Grace period between SIGTERM and SIGKILL when stopping a build (seconds).
    termination_grace: float = 3.0
    # How long to wait for another operation on the same project; None waits forever.
    lock_timeout: Optional[float] = None


@dataclass
class ProjectLayout:
    """
    File and directory names of an extension project, loaded from `[layout]`.
    """

    descriptor: str = "build.xml"
    source_dir: str = "src"
    assets_dir: str = "assets"
    libs_dir: str = "libs"
    build_dir: str = "build"
    dist_dir: str = "dist"
    coverage_dir: str = "coverage"
    artifact_suffix: str = ".aix"
    history_file: str = ".aix-build-history.json"
    source_suffixes: List[str] = field(default_factory=lambda: [".java", ".kt"])


@dataclass
class HistoryConfig:
    """
    Retention settings for the per-project build history, loaded from `[history]`.
    """

    max_records: int = 50
    output_excerpt_chars: int = 1000


@dataclass
class ValidationConfig:
    """
    Thresholds used by the validation phases, loaded from `[validation]`.
    """

    mandatory_libraries: List[str] = field(
        default_factory=lambda: ["appinventor-components.jar", "android.jar"]
    )
    max_library_size_mb: int = 100
    # Project-wide size thresholds; exceeding one draws a warning.
    max_project_size_mb: int = 100
    max_source_files: int = 100
    max_libraries_total_mb: int = 50
    max_line_length: int = 120
    java_min_version: str = "11"
    java_recommended_version: str = "11"
    ant_min_version: str = "1.9"
    kotlin_min_version: str = "1.8"


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)
    layout: ProjectLayout = field(default_factory=ProjectLayout)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
