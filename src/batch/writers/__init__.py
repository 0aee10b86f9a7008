"""
Snapshot writers.
"""

from .snapshot_writer import SnapshotWriter

__all__ = [
    "SnapshotWriter",
]
