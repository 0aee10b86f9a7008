"""
Snapshot migration stages: transform and import.
"""

from .pipeline import ImportOrchestrator
from .readers import SnapshotReader
from .transformer import RecordTransformer
from .writers import SnapshotWriter

__all__ = [
    "ImportOrchestrator",
    "RecordTransformer",
    "SnapshotReader",
    "SnapshotWriter",
]
