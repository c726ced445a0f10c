"""
Configuration validation utilities.

This module turns the raw TOML sections into validated configuration
dataclasses, applying defaults for anything that is not set.
"""

import logging
import re
from typing import Any, Dict

from ..models.config import (
    AppConfig,
    HistoryConfig,
    ProjectLayout,
    ToolchainConfig,
    ValidationConfig,
)
from ..validation import (
    ValidationError,
    validate_command,
    validate_non_empty_string,
    validate_positive_float,
    validate_positive_integer,
    validate_string_list,
)

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"^\d+(\.\d+)*$")


def _validate_version_string(value: Any, field_name: str) -> str:
    value = str(value)
    if not _VERSION_RE.match(value):
        raise ValidationError(
            f"{field_name} must be a dotted version such as '11' or '1.9', got {value}",
            field_name=field_name,
            value=value,
        )
    return value


def validate_toolchain_config(data: Dict[str, Any]) -> ToolchainConfig:
    """
    Validate and create a ToolchainConfig from the `[toolchain]` section.

    Raises:
        ValidationError: If validation fails
    """
    defaults = ToolchainConfig()

    command = validate_command(
        data.get("command", defaults.command), field_name="toolchain.command"
    )
    build_timeout = validate_positive_float(
        data.get("build_timeout_seconds", defaults.build_timeout),
        min_value=1.0,
        max_value=24 * 3600.0,
        field_name="toolchain.build_timeout_seconds",
    )
    probe_timeout = validate_positive_float(
        data.get("probe_timeout_seconds", defaults.probe_timeout),
        min_value=0.1,
        max_value=300.0,
        field_name="toolchain.probe_timeout_seconds",
    )
    dry_run_timeout = validate_positive_float(
        data.get("dry_run_timeout_seconds", defaults.dry_run_timeout),
        min_value=1.0,
        max_value=24 * 3600.0,
        field_name="toolchain.dry_run_timeout_seconds",
    )
    termination_grace = validate_positive_float(
        data.get("termination_grace_seconds", defaults.termination_grace),
        min_value=0.0,
        max_value=60.0,
        field_name="toolchain.termination_grace_seconds",
    )

    lock_timeout = data.get("lock_timeout_seconds")
    if lock_timeout is not None:
        lock_timeout = validate_positive_float(
            lock_timeout,
            min_value=0.0,
            field_name="toolchain.lock_timeout_seconds",
        )

    return ToolchainConfig(
        command=command,
        build_timeout=build_timeout,
        probe_timeout=probe_timeout,
        dry_run_timeout=dry_run_timeout,
        termination_grace=termination_grace,
        lock_timeout=lock_timeout,
    )


def validate_layout_config(data: Dict[str, Any]) -> ProjectLayout:
    """
    Validate and create a ProjectLayout from the `[layout]` section.

    Raises:
        ValidationError: If validation fails
    """
    defaults = ProjectLayout()
    values = {}
    for name in ("descriptor", "source_dir", "assets_dir", "libs_dir", "build_dir",
                 "dist_dir", "coverage_dir", "artifact_suffix", "history_file"):
        values[name] = validate_non_empty_string(
            data.get(name, getattr(defaults, name)), field_name=f"layout.{name}"
        )

    if not values["artifact_suffix"].startswith("."):
        raise ValidationError(
            "layout.artifact_suffix must start with '.'",
            field_name="layout.artifact_suffix",
            value=values["artifact_suffix"],
        )
    if values["build_dir"] == values["dist_dir"]:
        raise ValidationError(
            "layout.build_dir and layout.dist_dir must differ",
            field_name="layout.dist_dir",
            value=values["dist_dir"],
        )

    source_suffixes = validate_string_list(
        data.get("source_suffixes", defaults.source_suffixes),
        field_name="layout.source_suffixes",
        allow_empty=False,
    )
    return ProjectLayout(source_suffixes=source_suffixes, **values)


def validate_history_config(data: Dict[str, Any]) -> HistoryConfig:
    """
    Validate and create a HistoryConfig from the `[history]` section.
    """
    defaults = HistoryConfig()
    return HistoryConfig(
        max_records=validate_positive_integer(
            data.get("max_records", defaults.max_records),
            min_value=1,
            max_value=10000,
            field_name="history.max_records",
        ),
        output_excerpt_chars=validate_positive_integer(
            data.get("output_excerpt_chars", defaults.output_excerpt_chars),
            min_value=0,
            max_value=1_000_000,
            field_name="history.output_excerpt_chars",
        ),
    )


def validate_validation_config(data: Dict[str, Any]) -> ValidationConfig:
    """
    Validate and create a ValidationConfig from the `[validation]` section.
    """
    defaults = ValidationConfig()
    return ValidationConfig(
        mandatory_libraries=validate_string_list(
            data.get("mandatory_libraries", defaults.mandatory_libraries),
            field_name="validation.mandatory_libraries",
        ),
        max_library_size_mb=validate_positive_integer(
            data.get("max_library_size_mb", defaults.max_library_size_mb),
            min_value=1,
            field_name="validation.max_library_size_mb",
        ),
        max_project_size_mb=validate_positive_integer(
            data.get("max_project_size_mb", defaults.max_project_size_mb),
            min_value=1,
            field_name="validation.max_project_size_mb",
        ),
        max_source_files=validate_positive_integer(
            data.get("max_source_files", defaults.max_source_files),
            min_value=1,
            field_name="validation.max_source_files",
        ),
        max_libraries_total_mb=validate_positive_integer(
            data.get("max_libraries_total_mb", defaults.max_libraries_total_mb),
            min_value=1,
            field_name="validation.max_libraries_total_mb",
        ),
        max_line_length=validate_positive_integer(
            data.get("max_line_length", defaults.max_line_length),
            min_value=40,
            max_value=1000,
            field_name="validation.max_line_length",
        ),
        java_min_version=_validate_version_string(
            data.get("java_min_version", defaults.java_min_version),
            "validation.java_min_version",
        ),
        java_recommended_version=_validate_version_string(
            data.get("java_recommended_version", defaults.java_recommended_version),
            "validation.java_recommended_version",
        ),
        ant_min_version=_validate_version_string(
            data.get("ant_min_version", defaults.ant_min_version),
            "validation.ant_min_version",
        ),
        kotlin_min_version=_validate_version_string(
            data.get("kotlin_min_version", defaults.kotlin_min_version),
            "validation.kotlin_min_version",
        ),
    )


def validate_app_config(data: Dict[str, Any]) -> AppConfig:
    """
    Validate every section of a parsed config.toml.

    Unknown top-level sections are ignored with a warning.
    """
    known = {"toolchain", "layout", "history", "validation"}
    for section in sorted(set(data) - known):
        logger.warning(f"Ignoring unknown configuration section [{section}]")

    return AppConfig(
        toolchain=validate_toolchain_config(data.get("toolchain", {})),
        layout=validate_layout_config(data.get("layout", {})),
        history=validate_history_config(data.get("history", {})),
        validation=validate_validation_config(data.get("validation", {})),
    )
