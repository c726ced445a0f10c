"""
Storage for the per-project build history.

Records are kept as a JSON array next to the project and replaced
atomically on every write. Statistics and Parquet export use polars.
"""

from .base import DataStorage
from .json_storage import JsonStorage
from .history import HISTORY_SCHEMA, HistoryStore, records_to_dataframe

__all__ = ["DataStorage", "JsonStorage", "HISTORY_SCHEMA", "HistoryStore", "records_to_dataframe"]
