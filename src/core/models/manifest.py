"""
Manifest model describing every file of an exported or transformed snapshot.
"""

from typing import Any

from pydantic import BaseModel, Field


class ManifestFile(BaseModel):
    """
    One table file listed in a manifest.

    Attributes:
        filename: File name inside the snapshot directory (``<table>.json``)
        table: Source table name (may be schema-qualified, e.g. ``auth.users``)
        size: File size in bytes
        record_count: Number of records in the file, when known
    """

    filename: str = Field(..., min_length=1)
    table: str | None = None
    size: int | None = None
    record_count: int | None = Field(None, alias="recordCount")

    class Config:
        populate_by_name = True
        extra = "allow"

    @property
    def table_name(self) -> str:
        """Logical table name derived from the file name."""
        return self.filename.removesuffix(".json")


class Manifest(BaseModel):
    """
    Snapshot manifest produced by the export job or by the transform stage.

    Unknown keys are kept so a manifest can be rewritten without losing
    fields added by the upstream exporter.
    """

    exported_at: str | None = Field(None, alias="exportedAt")
    transformed_at: str | None = Field(None, alias="transformedAt")
    files: list[ManifestFile] = Field(default_factory=list)
    total_records: int = Field(0, alias="totalRecords")
    total_files: int | None = Field(None, alias="totalFiles")
    transformed_files: int | None = Field(None, alias="transformedFiles")
    errors: list[dict[str, Any]] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        extra = "allow"
        json_schema_extra = {
            "example": {
                "exportedAt": "2025-01-10T12:00:00.000Z",
                "files": [
                    {"filename": "profiles.json", "table": "profiles", "size": 5120, "recordCount": 12}
                ],
                "totalRecords": 12,
                "errors": []
            }
        }

    def has_file(self, filename: str) -> bool:
        """Return True if the manifest lists ``filename``."""
        return any(f.filename == filename for f in self.files)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize using the camelCase keys of the on-disk format."""
        return self.model_dump(by_alias=True, exclude_none=True)
