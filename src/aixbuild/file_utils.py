"""
Filesystem helpers shared by the builders and the validation phases.

This module provides:
- Human readable file size formatting.
- Deterministic recursive file discovery by suffix and directory sizing.
- Version and artifact-name extraction from library file names.
"""

import logging
import math
import re
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]

# Library versions look like "1.2.3", optionally followed by a qualifier
# such as "-SNAPSHOT" or ".Final".
_VERSION_PATTERN = re.compile(r"(\d+\.\d+\.\d+(?:[-.][\w.-]+)?)")
_LOOSE_VERSION_PATTERN = re.compile(r"\d+\.\d+\.\d+|\d+\.\d+|v\d+")
_ARTIFACT_SUFFIXES = [
    re.compile(r"-\d+\.\d+\.\d+.*\.jar$"),
    re.compile(r"-\d+\.\d+.*\.jar$"),
    re.compile(r"-v\d+.*\.jar$"),
]


def format_file_size(size_bytes: int) -> str:
    """Format a byte count using binary units.

    Examples:
        >>> format_file_size(0)
        '0 Bytes'
        >>> format_file_size(1536)
        '1.5 KB'
    """
    if size_bytes <= 0:
        return "0 Bytes"
    exponent = min(int(math.floor(math.log(size_bytes, 1024))), len(_SIZE_UNITS) - 1)
    value = round(size_bytes / (1024 ** exponent), 2)
    if value == int(value):
        value = int(value)
    return f"{value} {_SIZE_UNITS[exponent]}"


def find_files(root: Path, suffixes: Iterable[str]) -> List[Path]:
    """Recursively find files under ``root`` whose name ends with one of ``suffixes``.

    The result is sorted so that repeated scans of the same tree are stable.
    A missing root yields an empty list.
    """
    suffix_tuple = tuple(suffixes)
    if not root.is_dir():
        return []
    return sorted(
        p for p in root.rglob("*")
        if p.is_file() and p.name.endswith(suffix_tuple)
    )


def directory_size(root: Path) -> int:
    """Total size in bytes of every regular file under ``root``."""
    if not root.is_dir():
        return 0
    return sum(p.stat().st_size for p in root.rglob("*") if p.is_file())


def extract_version(file_name: str) -> Optional[str]:
    """Extract a dotted version from a library file name, or None.

    Examples:
        >>> extract_version("gson-2.10.1.jar")
        '2.10.1'
        >>> extract_version("android.jar") is None
        True
    """
    stem = file_name[:-4] if file_name.endswith(".jar") else file_name
    match = _VERSION_PATTERN.search(stem)
    return match.group(1) if match else None


def has_version_in_name(file_name: str) -> bool:
    """Whether the file name carries any recognisable version marker."""
    return bool(_LOOSE_VERSION_PATTERN.search(file_name))


def extract_artifact_name(file_name: str) -> str:
    """Strip the version and extension from a library file name.

    Examples:
        >>> extract_artifact_name("gson-2.10.1.jar")
        'gson'
    """
    for pattern in _ARTIFACT_SUFFIXES:
        stripped = pattern.sub("", file_name)
        if stripped != file_name:
            return stripped
    return file_name[:-4] if file_name.endswith(".jar") else file_name
