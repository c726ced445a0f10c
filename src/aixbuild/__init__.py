"""
aixbuild: Build orchestration and validation for App Inventor extensions.

This package drives an external toolchain (Apache Ant by default) to compile
and package extension projects into `.aix` artifacts, and validates that a
project is buildable and well formed.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Error taxonomy, error handling and input validation
- system: Subprocess execution, process-tree cleanup and per-project locks
- progress: Progress events parsed from toolchain output
- executor: Build orchestration
- checks: Validation phases and the validation pipeline
- storage: Per-project build history
- reporting: Text, JSON and HTML reports, history charts
- cli: Command-line interface

Usage:
    From command line:
        aixbuild build path/to/extension --clean
        aixbuild validate path/to/extension --build --format html -o report.html

    Programmatically:
        from aixbuild import BuildOrchestrator, BuildRequest
        result = BuildOrchestrator().build_extension(BuildRequest("path/to/extension"))
"""

# Main interfaces
from .config import clear_config_cache, get_config, set_config_path
from .executor import BuildOrchestrator
from .checks import ValidationOptions, ValidationPipeline
from .storage import HistoryStore
from .cli import main_cli

# Model classes for external use
from .models import (
    AppConfig,
    BuildRecord,
    BuildRequest,
    BuildResult,
    BuildStats,
    DependencyDescriptor,
    ExtensionArtifact,
    ValidationReport,
)

# Progress reporting
from .progress import ProgressParser, ProgressStream

# Errors
from .validation import (
    AixBuildError,
    ArtifactError,
    BuildCancelledError,
    PersistenceError,
    PreconditionError,
    ProcessError,
    ProjectBusyError,
    SpawnError,
    ToolchainTimeoutError,
    ValidationError,
)

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "BuildOrchestrator",
    "ValidationOptions",
    "ValidationPipeline",
    "HistoryStore",
    "main_cli",
    # Models
    "AppConfig",
    "BuildRecord",
    "BuildRequest",
    "BuildResult",
    "BuildStats",
    "DependencyDescriptor",
    "ExtensionArtifact",
    "ValidationReport",
    # Progress
    "ProgressParser",
    "ProgressStream",
    # Errors
    "AixBuildError",
    "ArtifactError",
    "BuildCancelledError",
    "PersistenceError",
    "PreconditionError",
    "ProcessError",
    "ProjectBusyError",
    "SpawnError",
    "ToolchainTimeoutError",
    "ValidationError",
]
