"""
JSON storage implementation with atomic replacement.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List

from .base import DataStorage

logger = logging.getLogger(__name__)


class JsonStorage(DataStorage):
    """
    Stores records as one indented JSON array per file.

    Writes go to a temporary file in the target directory which then
    replaces the target with ``os.replace``, so readers never observe a
    partially written file.
    """

    def __init__(self, indent: int = 2):
        self.indent = indent

    def save_records(self, records: List[Dict[str, Any]], path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=self.indent, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        logger.debug(f"Saved {len(records)} records to {path}")

    def load_records(self, path: Path) -> List[Dict[str, Any]]:
        path = Path(path)
        if not path.exists():
            return []
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise ValueError(f"{path} does not contain a list of records")
        logger.debug(f"Loaded {len(data)} records from {path}")
        return data
