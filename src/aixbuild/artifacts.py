"""
Discovery of the packaged extension in a project's distribution directory.

Policy: a path announced by the toolchain wins when it names an existing
file with the artifact suffix. Otherwise the distribution directory must
hold exactly one such file; none or several is an ArtifactError, and
several candidates are listed in sorted order.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from .file_utils import format_file_size
from .models.build import ExtensionArtifact
from .models.config import ProjectLayout
from .validation import ArtifactError

logger = logging.getLogger(__name__)


def describe_artifact(path: Path) -> ExtensionArtifact:
    """Build an ExtensionArtifact from the file at ``path``."""
    stat = path.stat()
    # st_birthtime only exists on some platforms; fall back to ctime.
    created = getattr(stat, "st_birthtime", stat.st_ctime)
    return ExtensionArtifact(
        name=path.name,
        path=path,
        size=stat.st_size,
        size_formatted=format_file_size(stat.st_size),
        modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        created=datetime.fromtimestamp(created, tz=timezone.utc),
    )


def list_artifacts(project_path: Path, layout: ProjectLayout) -> List[Path]:
    """Artifact files in the distribution directory, sorted by name."""
    dist_dir = project_path / layout.dist_dir
    if not dist_dir.is_dir():
        return []
    return sorted(
        p for p in dist_dir.iterdir()
        if p.is_file() and p.name.endswith(layout.artifact_suffix)
    )


def discover_artifact(project_path: Union[str, Path], layout: Optional[ProjectLayout] = None,
                      announced: Optional[str] = None) -> ExtensionArtifact:
    """
    Identify the artifact produced by a build.

    Args:
        project_path: Project root; relative announced paths are resolved against it
        layout: Project layout; defaults apply if omitted
        announced: Path printed by the toolchain, if any

    Raises:
        ArtifactError: If there is no candidate, or more than one
    """
    project_path = Path(project_path)
    layout = layout or ProjectLayout()
    suffix = layout.artifact_suffix

    if announced:
        candidate = Path(announced)
        if not candidate.is_absolute():
            candidate = project_path / candidate
        if candidate.is_file() and candidate.name.endswith(suffix):
            return describe_artifact(candidate)
        logger.debug(f"Announced artifact {announced} not usable, scanning distribution directory")

    dist_dir = project_path / layout.dist_dir
    candidates = list_artifacts(project_path, layout)
    if not candidates:
        raise ArtifactError(f"No {suffix} artifact found in {dist_dir}")
    if len(candidates) > 1:
        names = ", ".join(p.name for p in candidates)
        raise ArtifactError(
            f"Ambiguous artifact: {len(candidates)} {suffix} files in {dist_dir}: {names}"
        )
    return describe_artifact(candidates[0])
