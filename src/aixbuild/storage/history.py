"""
Per-project build history.

The history is a JSON array stored in the project root, oldest record first,
capped at a fixed number of records. Recording is best effort: a history
that cannot be read or written is logged and never fails the build that
produced it. Statistics and Parquet export go through a polars DataFrame
built from the loaded records.
"""

import logging
from datetime import timezone
from pathlib import Path
from typing import List, Literal, Optional, Union

import polars as pl

from ..system.locks import ProjectLockRegistry, get_lock_registry
from ..models.build import BuildRecord, BuildResult, BuildStats
from ..models.config import HistoryConfig, ProjectLayout
from ..validation import handle_persistence_error
from .base import DataStorage
from .json_storage import JsonStorage

logger = logging.getLogger(__name__)

HISTORY_SCHEMA = {
    "timestamp": pl.Datetime("us", "UTC"),
    "duration_ms": pl.Int64,
    "success": pl.Boolean,
    "artifact_name": pl.Utf8,
    "artifact_path": pl.Utf8,
    "artifact_size": pl.Int64,
    "output_excerpt": pl.Utf8,
}


def records_to_dataframe(records: List[BuildRecord]) -> pl.DataFrame:
    """
    Flatten history records into a DataFrame with HISTORY_SCHEMA columns.

    Naive timestamps are taken to be UTC.
    """
    rows = []
    for record in records:
        ts = record.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        rows.append({
            "timestamp": ts.astimezone(timezone.utc),
            "duration_ms": record.duration_ms,
            "success": record.success,
            "artifact_name": record.artifact.name if record.artifact else None,
            "artifact_path": str(record.artifact.path) if record.artifact else None,
            "artifact_size": record.artifact.size if record.artifact else None,
            "output_excerpt": record.output_excerpt,
        })
    return pl.DataFrame(rows, schema=HISTORY_SCHEMA)


class HistoryStore:
    """
    Reads and appends the build history of one project.
    """

    def __init__(
        self,
        project_path: Union[str, Path],
        layout: Optional[ProjectLayout] = None,
        config: Optional[HistoryConfig] = None,
        storage: Optional[DataStorage] = None,
        lock_registry: Optional[ProjectLockRegistry] = None,
    ):
        self.project_path = Path(project_path)
        self.layout = layout or ProjectLayout()
        self.config = config or HistoryConfig()
        self.storage = storage or JsonStorage()
        self.lock_registry = lock_registry or get_lock_registry()

    @property
    def path(self) -> Path:
        return self.project_path / self.layout.history_file

    def record(self, result: BuildResult) -> Optional[BuildRecord]:
        """
        Append a record for ``result`` and drop the oldest beyond the cap.

        Returns:
            The stored record, or None if the history could not be written
        """
        record = BuildRecord.from_result(result, excerpt_chars=self.config.output_excerpt_chars)
        try:
            with self.lock_registry.lock_for(self.project_path):
                try:
                    existing = self.storage.load_records(self.path)
                except ValueError as e:
                    # A corrupt file is replaced rather than blocking all future records.
                    logger.warning(f"Discarding unreadable build history {self.path}: {e}")
                    existing = []
                existing.append(record.to_dict())
                kept = existing[-self.config.max_records:]
                self.storage.save_records(kept, self.path)
        except Exception as e:
            handle_persistence_error(e, f"recording build for {self.project_path}", logger=logger)
            return None

        logger.debug(f"Recorded build in {self.path} ({len(kept)} records)")
        return record

    def load(self) -> List[BuildRecord]:
        """
        Load the history, oldest first.

        Returns:
            The records, or an empty list if the file is missing or unreadable
        """
        try:
            return [BuildRecord.from_dict(item) for item in self.storage.load_records(self.path)]
        except Exception as e:
            handle_persistence_error(e, f"loading {self.path}", logger=logger)
            return []

    def clear(self) -> None:
        """Remove the history file."""
        with self.lock_registry.lock_for(self.project_path):
            self.path.unlink(missing_ok=True)

    def to_dataframe(self) -> pl.DataFrame:
        return records_to_dataframe(self.load())

    def stats(self) -> BuildStats:
        """Aggregate the history into BuildStats."""
        records = self.load()
        stats = BuildStats(project=self.project_path.name)
        if not records:
            return stats

        df = records_to_dataframe(records).with_row_index("idx")
        summary = df.select(
            pl.len().alias("count"),
            pl.col("success").sum().alias("successes"),
            pl.col("duration_ms").mean().alias("average"),
        ).row(0, named=True)

        stats.build_count = summary["count"]
        stats.success_count = int(summary["successes"] or 0)
        stats.average_duration_ms = float(summary["average"] or 0.0)
        stats.last_build = records[-1]

        sized = df.filter(pl.col("artifact_size").is_not_null())
        if not sized.is_empty():
            largest = sized["idx"][sized["artifact_size"].arg_max()]
            smallest = sized["idx"][sized["artifact_size"].arg_min()]
            stats.largest_artifact = records[largest].artifact
            stats.smallest_artifact = records[smallest].artifact
        return stats

    def export(self, destination: Union[str, Path],
               fmt: Literal["json", "parquet"] = "json") -> Path:
        """
        Write the history to ``destination``.

        Args:
            destination: Output file
            fmt: "json" keeps the on-disk record format; "parquet" writes the
                flattened DataFrame

        Returns:
            The written path

        Raises:
            ValueError: If ``fmt`` is not supported
        """
        destination = Path(destination)
        if fmt == "json":
            self.storage.save_records([r.to_dict() for r in self.load()], destination)
        elif fmt == "parquet":
            destination.parent.mkdir(parents=True, exist_ok=True)
            self.to_dataframe().write_parquet(destination, compression="snappy")
        else:
            raise ValueError(f"Unsupported export format: {fmt}")
        logger.info(f"Exported build history of {self.project_path.name} to {destination}")
        return destination
