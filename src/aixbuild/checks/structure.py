"""
Project structure phase.

Checks the project root for the build descriptor and the recommended
directories, scans the source tree for sources and the designer component
marker, applies the build descriptor rules, checks that directories named by
the descriptor properties exist, and warns about oversized projects.
"""

import logging
from pathlib import Path
from typing import Optional

from ..file_utils import directory_size, find_files, format_file_size
from ..models.config import ProjectLayout, ValidationConfig
from ..models.report import PhaseResult
from .descriptor import check_descriptor_text, extract_property_value

logger = logging.getLogger(__name__)

DESIGNER_COMPONENT_MARKER = "@DesignerComponent"

# Descriptor properties naming directories. Output directories are created by
# the build, so only an existing non-directory is reported for them.
INPUT_DIR_PROPERTIES = ("src.dir", "libs.dir")
OUTPUT_DIR_PROPERTIES = ("build.dir", "dist.dir")

_MB = 1024 * 1024


class StructurePhase:
    """Only a missing build descriptor is an error; everything else warns."""

    name = "Structure"

    def __init__(self, layout: ProjectLayout, validation: Optional[ValidationConfig] = None):
        self.layout = layout
        self.validation = validation or ValidationConfig()

    def run(self, project_path: Path) -> PhaseResult:
        result = PhaseResult(name=self.name)

        if not project_path.is_dir():
            result.error(f"Project directory does not exist: {project_path}")
            result.error(f"Missing required file: {self.layout.descriptor}")
            return result

        for dir_name in (self.layout.source_dir, self.layout.assets_dir, self.layout.libs_dir):
            directory = project_path / dir_name
            if not directory.exists():
                result.warn(f"Missing recommended directory: {dir_name}")
            elif not directory.is_dir():
                result.warn(f"Expected directory but found file: {dir_name}")

        descriptor = project_path / self.layout.descriptor
        if not descriptor.exists():
            result.error(f"Missing required file: {self.layout.descriptor}")
        elif not descriptor.is_file():
            result.error(f"Expected file but found directory: {self.layout.descriptor}")
        else:
            text = descriptor.read_text(encoding="utf-8", errors="replace")
            result.extend(check_descriptor_text(text, java_level=self.validation.java_recommended_version))
            self._check_directory_references(project_path, text, result)

        sources = find_files(project_path / self.layout.source_dir, self.layout.source_suffixes)
        if not sources:
            result.warn(f"No source files found in {self.layout.source_dir}/ directory")
        elif not any(self._has_designer_marker(path) for path in sources):
            result.warn(
                f"No main extension class found (missing {DESIGNER_COMPONENT_MARKER} annotation)"
            )

        try:
            self._check_size(project_path, len(sources), result)
        except OSError as e:
            result.warn(f"Performance check failed: {e}")

        logger.debug(
            f"Structure of {project_path.name}: {len(sources)} sources, "
            f"{len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    @staticmethod
    def _has_designer_marker(path: Path) -> bool:
        try:
            return DESIGNER_COMPONENT_MARKER in path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Could not read {path}: {e}")
            return False

    @staticmethod
    def _check_directory_references(project_path: Path, text: str, result: PhaseResult) -> None:
        for prop in INPUT_DIR_PROPERTIES + OUTPUT_DIR_PROPERTIES:
            value = extract_property_value(text, prop)
            # Values built from other properties cannot be resolved here.
            if value is None or "${" in value:
                continue
            target = project_path / value
            if not target.exists():
                if prop in INPUT_DIR_PROPERTIES:
                    result.warn(f"Referenced {prop} directory does not exist: {value}")
            elif not target.is_dir():
                result.warn(f"Referenced {prop} path exists but is not a directory: {value}")

    def _check_size(self, project_path: Path, source_count: int, result: PhaseResult) -> None:
        limits = self.validation
        project_size = directory_size(project_path)
        if project_size > limits.max_project_size_mb * _MB:
            result.warn(f"Project is very large ({format_file_size(project_size)}). Consider optimizing.")
        if source_count > limits.max_source_files:
            result.warn(f"Project has {source_count} source files. Consider modularization.")
        libs_size = directory_size(project_path / self.layout.libs_dir)
        if libs_size > limits.max_libraries_total_mb * _MB:
            result.warn(f"Dependencies are very large ({format_file_size(libs_size)}). Consider trimming.")
