"""
Core data models for the snapshot migration pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .column_set import ColumnInfo, DestinationColumnSet
from .manifest import Manifest, ManifestFile
from .stats import (
    ImportStats,
    SequenceUpdate,
    TableError,
    TableImportResult,
    TableSkip,
    TransformStats,
)
from .table_snapshot import TableSnapshot, TransformedSnapshot

__all__ = [
    "Manifest",
    "ManifestFile",
    "TableSnapshot",
    "TransformedSnapshot",
    "ColumnInfo",
    "DestinationColumnSet",
    "ImportStats",
    "TransformStats",
    "TableError",
    "TableSkip",
    "TableImportResult",
    "SequenceUpdate",
]
