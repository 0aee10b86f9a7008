"""
Per-table snapshot models (exported and transformed).
"""

from typing import Any

from pydantic import BaseModel, Field, model_validator


class TableSnapshot(BaseModel):
    """
    Rows of one exported table.

    Records are untyped key/value mappings mirroring the source columns at
    export time; two records of the same table may carry different keys.
    Any metadata written by the exporter (table, exportedAt, recordCount)
    is preserved as extra fields.
    """

    records: list[dict[str, Any]]

    class Config:
        extra = "allow"


class TransformedSnapshot(TableSnapshot):
    """
    A TableSnapshot after its table's transform rule has been applied.

    Attributes:
        transformed_at: When the transform ran (ISO 8601)
        original_record_count: Records in the exported file
        transformed_record_count: Records after transformation
    """

    transformed_at: str = Field(..., alias="transformedAt")
    original_record_count: int = Field(..., alias="originalRecordCount")
    transformed_record_count: int = Field(..., alias="transformedRecordCount")

    class Config:
        extra = "allow"
        populate_by_name = True

    @model_validator(mode="after")
    def check_record_count(self) -> "TransformedSnapshot":
        """transformedRecordCount must always match the records list."""
        if self.transformed_record_count != len(self.records):
            raise ValueError(
                f"transformedRecordCount={self.transformed_record_count} "
                f"but {len(self.records)} records present"
            )
        return self

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize using the camelCase keys of the on-disk format."""
        return self.model_dump(by_alias=True)
