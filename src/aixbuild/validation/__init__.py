"""
Validation and error handling for the aixbuild package.

This module provides the error taxonomy of the build core together with the
input validators used by configuration loading and the command line.
"""

from .exceptions import (
    AixBuildError,
    ArtifactError,
    BuildCancelledError,
    ErrorSeverity,
    PersistenceError,
    PreconditionError,
    ProcessError,
    ProjectBusyError,
    SpawnError,
    ToolchainTimeoutError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_persistence_error,
    handle_subprocess_error,
)

from .validators import (
    validate_command,
    validate_enum_choice,
    validate_non_empty_string,
    validate_path_exists,
    validate_positive_float,
    validate_positive_integer,
    validate_property_definition,
    validate_string_list,
)

__all__ = [
    # Error taxonomy
    "AixBuildError",
    "ArtifactError",
    "BuildCancelledError",
    "ErrorSeverity",
    "PersistenceError",
    "PreconditionError",
    "ProcessError",
    "ProjectBusyError",
    "SpawnError",
    "ToolchainTimeoutError",
    "ValidationError",
    # Handlers
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    "handle_persistence_error",
    "handle_subprocess_error",
    # Validators
    "validate_command",
    "validate_enum_choice",
    "validate_non_empty_string",
    "validate_path_exists",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_property_definition",
    "validate_string_list",
]
