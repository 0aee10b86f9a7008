"""
Destination column metadata fetched live from information_schema.
"""

from pydantic import BaseModel, Field

JSON_TYPES = frozenset({"json", "jsonb"})


class ColumnInfo(BaseModel):
    """A single destination column."""

    name: str
    data_type: str
    nullable: bool = True

    @property
    def is_json(self) -> bool:
        return self.data_type.lower() in JSON_TYPES


class DestinationColumnSet(BaseModel):
    """
    Column set of one destination table.

    Fetched once per table per import run; never cached across runs since
    the destination schema may change between them.
    """

    table_name: str
    schema_name: str = "public"
    columns: list[ColumnInfo] = Field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def json_columns(self) -> set[str]:
        return {c.name for c in self.columns if c.is_json}

    def __len__(self) -> int:
        return len(self.columns)
