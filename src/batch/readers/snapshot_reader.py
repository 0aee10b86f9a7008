"""
Reader for snapshot directories (manifest.json plus one <table>.json per table).
"""

import json
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from src.core.exceptions import ManifestError, SnapshotFormatError
from src.core.models import Manifest, TableSnapshot
from src.utils.validation import ValidationError, validate_file_path

MANIFEST_FILENAME = "manifest.json"


class SnapshotReader:
    """
    Reads a manifest and per-table record files from a snapshot directory.
    """

    def __init__(self, directory: str | Path):
        """
        Initialize snapshot reader.

        Args:
            directory: Snapshot directory
        """
        self.directory = Path(directory)

    @property
    def manifest_path(self) -> Path:
        return self.directory / MANIFEST_FILENAME

    def load_manifest(self, hint: str | None = None) -> Manifest:
        """
        Load and parse the snapshot manifest.

        Args:
            hint: Operator hint attached to the error when loading fails

        Returns:
            Parsed Manifest

        Raises:
            ManifestError: If the manifest is missing or cannot be parsed
        """
        path = self.manifest_path
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ManifestError(str(path), f"Could not read manifest: {e.strerror or e}", hint) from e

        try:
            return Manifest.model_validate(json.loads(content))
        except ValueError as e:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
            raise ManifestError(str(path), f"Could not parse manifest: {e}", hint) from e

    def table_path(self, filename: str) -> Path:
        return self.directory / validate_file_path(filename, "filename")

    def has_file(self, filename: str) -> bool:
        try:
            return self.table_path(filename).is_file()
        except ValidationError:
            return False

    def read_table(self, filename: str) -> TableSnapshot:
        """
        Read one table file.

        Args:
            filename: File name inside the snapshot directory

        Returns:
            TableSnapshot with its records and exporter metadata

        Raises:
            SnapshotFormatError: If the file is unreadable, not JSON, or has
                no ``records`` list
        """
        try:
            path = self.table_path(filename)
        except ValidationError as e:
            raise SnapshotFormatError(filename, str(e)) from e

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise SnapshotFormatError(filename, f"Could not read {filename}: {e.strerror or e}") from e
        except ValueError as e:
            raise SnapshotFormatError(filename, f"Invalid JSON in {filename}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("records"), list):
            raise SnapshotFormatError(filename)

        try:
            return TableSnapshot.model_validate(data)
        except PydanticValidationError as e:
            raise SnapshotFormatError(filename, f"Invalid data format: {e.error_count()} invalid record(s)") from e
