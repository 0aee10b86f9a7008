"""
Snapshot readers.
"""

from .snapshot_reader import MANIFEST_FILENAME, SnapshotReader

__all__ = [
    "SnapshotReader",
    "MANIFEST_FILENAME",
]
