"""
Library dependency phase.

Scans the project's library directory for jar files, reports missing
mandatory libraries, broken or oversized jars, duplicate artifacts and
checksum mismatches against ``<jar>.sha256`` side files.
"""

import hashlib
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List

from ..file_utils import extract_artifact_name, extract_version, format_file_size, has_version_in_name
from ..models.config import ProjectLayout, ValidationConfig
from ..models.report import DependencyDescriptor, PhaseResult

logger = logging.getLogger(__name__)

LIBRARY_DESCRIPTIONS = {
    "appinventor-components.jar": "App Inventor components library",
    "android.jar": "Android SDK library",
}

_CHECKSUM_CHUNK = 1024 * 1024


def list_jars(libs_dir: Path) -> List[Path]:
    """Jar files directly inside ``libs_dir``, sorted by name."""
    if not libs_dir.is_dir():
        return []
    return sorted(p for p in libs_dir.iterdir() if p.is_file() and p.name.endswith(".jar"))


def scan_dependencies(libs_dir: Path) -> List[DependencyDescriptor]:
    """
    Describe every jar in the library directory.

    Recomputed on every call; a missing directory yields an empty list.
    """
    dependencies = []
    for jar in list_jars(libs_dir):
        size = jar.stat().st_size
        dependencies.append(DependencyDescriptor(
            name=extract_artifact_name(jar.name),
            version=extract_version(jar.name),
            file_name=jar.name,
            size=size,
            size_formatted=format_file_size(size),
        ))
    return dependencies


def sha256_of(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHECKSUM_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


class DependencyPhase:
    """Missing mandatory libraries and empty jars are errors; the rest warns."""

    name = "Dependency"

    def __init__(self, layout: ProjectLayout, config: ValidationConfig):
        self.layout = layout
        self.config = config

    def run(self, project_path: Path) -> PhaseResult:
        result = PhaseResult(name=self.name)
        libs_dir = project_path / self.layout.libs_dir

        if not libs_dir.is_dir():
            result.warn(f"No {self.layout.libs_dir}/ directory found")
        jars = list_jars(libs_dir)
        if libs_dir.is_dir() and not jars:
            result.warn(f"No JAR files found in {self.layout.libs_dir}/ directory")

        present = {jar.name for jar in jars}
        for library in self.config.mandatory_libraries:
            if library not in present:
                description = LIBRARY_DESCRIPTIONS.get(library)
                suffix = f" ({description})" if description else ""
                result.error(f"Missing required dependency: {library}{suffix}")

        for jar in jars:
            self._check_jar(jar, result)

        for artifact, files in self._group_by_artifact(jars).items():
            if len(files) > 1:
                versions = ", ".join(extract_version(f.name) or "unversioned" for f in files)
                result.warn(f"Duplicate dependency: {artifact} ({versions})")

        logger.debug(f"Checked {len(jars)} libraries in {libs_dir}")
        return result

    def _check_jar(self, jar: Path, result: PhaseResult) -> None:
        try:
            size = jar.stat().st_size
        except OSError as e:
            result.error(f"Cannot access JAR file {jar.name}: {e}")
            return

        limit = self.config.max_library_size_mb * 1024 * 1024
        if size == 0:
            result.error(f"JAR file is empty: {jar.name}")
        elif size > limit:
            result.warn(f"JAR file is very large ({format_file_size(size)}): {jar.name}")

        if jar.name not in self.config.mandatory_libraries and not has_version_in_name(jar.name):
            result.warn(f"JAR file name should include version: {jar.name}")

        checksum_file = jar.with_name(jar.name + ".sha256")
        if checksum_file.is_file():
            try:
                # Side files may be in `sha256sum` format: "<digest>  <file name>".
                expected = checksum_file.read_text(encoding="utf-8").split()[0].lower()
                if expected != sha256_of(jar):
                    result.warn(f"Checksum mismatch for {jar.name}")
            except (OSError, IndexError) as e:
                result.warn(f"Checksum validation failed for {jar.name}: {e}")

    @staticmethod
    def _group_by_artifact(jars: List[Path]) -> Dict[str, List[Path]]:
        groups: Dict[str, List[Path]] = defaultdict(list)
        for jar in jars:
            groups[extract_artifact_name(jar.name)].append(jar)
        return groups
