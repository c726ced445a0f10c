"""
Abstract base class for record storage implementations.

The build history is a short list of JSON-compatible records per project.
Backends implement whole-file reads and writes; a write must leave either
the previous or the new content on disk, never a partial file.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List


class DataStorage(ABC):
    """Abstract base class for record storage implementations."""

    @abstractmethod
    def save_records(self, records: List[Dict[str, Any]], path: Path) -> None:
        """
        Replace the content of ``path`` with ``records``.

        Args:
            records: JSON-compatible records, oldest first
            path: File path to save to
        """
        pass

    @abstractmethod
    def load_records(self, path: Path) -> List[Dict[str, Any]]:
        """
        Load the records stored at ``path``.

        Returns:
            Records, oldest first; an empty list if the file does not exist

        Raises:
            ValueError: If the file content is not a list of records
        """
        pass
