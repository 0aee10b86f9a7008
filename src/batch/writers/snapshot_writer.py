"""
Writer for transformed snapshot directories.
"""

import json
from pathlib import Path
from typing import Any

from src.core.models import Manifest, TransformedSnapshot
from src.utils.validation import validate_file_path

from ..readers.snapshot_reader import MANIFEST_FILENAME


class SnapshotWriter:
    """
    Writes transformed table files and the transformed manifest.
    """

    def __init__(self, directory: str | Path):
        """
        Initialize snapshot writer.

        Args:
            directory: Output directory (created on demand)
        """
        self.directory = Path(directory)

    def ensure_directory(self) -> Path:
        """Create the output directory if needed."""
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory

    def write_table(self, filename: str, snapshot: TransformedSnapshot) -> int:
        """
        Write one transformed table file.

        Args:
            filename: File name inside the output directory
            snapshot: Transformed snapshot to write

        Returns:
            Size of the written file in bytes
        """
        path = self.directory / validate_file_path(filename, "filename")
        return self._write_json(path, snapshot.to_json_dict())

    def write_manifest(self, manifest: Manifest) -> Path:
        """Write manifest.json into the output directory."""
        path = self.directory / MANIFEST_FILENAME
        self._write_json(path, manifest.to_json_dict())
        return path

    def _write_json(self, path: Path, payload: dict[str, Any]) -> int:
        # Timestamps and other non-JSON values fall back to str()
        content = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
        path.write_text(content, encoding="utf-8")
        return path.stat().st_size
