"""
Batch loading of snapshot records into destination tables.

Regular tables are written with INSERT ... ON CONFLICT DO NOTHING so that a
re-run skips rows that are already present. Each batch is its own
transaction; a failed batch is retried record by record so one bad row
cannot take its batch-mates down with it.
"""

import json
from typing import Any

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb
from pydantic import BaseModel

from src.core.models import DestinationColumnSet, ImportStats, TableImportResult
from src.core.schema import dropped_columns, filter_record
from src.observability.logger import get_logger
from src.utils.validation import sanitize_sql_identifier, split_qualified_name

from .connection import DatabaseConnectionPool
from .introspection import SchemaIntrospector

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 100


class IdentityTarget(BaseModel):
    """
    Destination of a logical table holding authentication identities.

    Identity rows are upserted one by one so a partially seeded identity
    store can be re-imported.
    """

    schema_name: str = "auth"
    table: str = "users"
    conflict_key: str = "id"
    update_columns: tuple[str, ...] = ("email", "updated_at", "email_confirmed", "last_sign_in_at")

    class Config:
        frozen = True


IDENTITY_TABLES: dict[str, IdentityTarget] = {
    "auth_users": IdentityTarget(),
}


class BatchLoader:
    """
    Loads one table's records into the destination.

    Every record is filtered against the live column set before insertion.
    """

    def __init__(
        self,
        pool: DatabaseConnectionPool,
        introspector: SchemaIntrospector | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        identity_tables: dict[str, IdentityTarget] | None = None,
    ):
        """
        Initialize batch loader.

        Args:
            pool: Database connection pool
            introspector: Schema introspector (created from pool when None)
            batch_size: Records per batched insert
            identity_tables: Logical identity tables and their destinations
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        self.pool = pool
        self.introspector = introspector or SchemaIntrospector(pool)
        self.batch_size = batch_size
        self.identity_tables = IDENTITY_TABLES if identity_tables is None else identity_tables

    def resolve_target(self, table_name: str) -> tuple[str, str, IdentityTarget | None]:
        """
        Map a logical table name to (schema, table, identity target).
        """
        identity = self.identity_tables.get(table_name)
        if identity is not None:
            return identity.schema_name, identity.table, identity
        schema, table = split_qualified_name(table_name)
        return schema, table, None

    def import_table(
        self,
        table_name: str,
        records: list[dict[str, Any]],
        stats: ImportStats,
    ) -> TableImportResult:
        """
        Load ``records`` into the destination table for ``table_name``.

        Args:
            table_name: Logical table name
            records: Records to load
            stats: Run accumulator; table and row errors are recorded here

        Returns:
            TableImportResult; ``attempted`` counts records sent, which may
            exceed the rows written since conflicts are skipped silently
        """
        result = TableImportResult(table=table_name)

        try:
            schema, table, identity = self.resolve_target(table_name)

            if not self.introspector.table_exists(table, schema):
                logger.warning(f"Table {schema}.{table} does not exist, skipping")
                result.skipped = True
                result.reason = "Table does not exist"
                return result

            if not records:
                logger.info(f"No records to import for {table_name}")
                return result

            column_set = self.introspector.get_columns(table, schema)
            if not column_set.columns:
                raise RuntimeError(f"No columns found for table {schema}.{table}")

            unknown = dropped_columns(records, column_set.column_names)
            if unknown:
                logger.info(f"Dropping columns unknown to {schema}.{table}: {', '.join(sorted(unknown))}")

            allowed = set(column_set.column_names)
            filtered = [filter_record(record, allowed) for record in records]

            if identity is not None:
                self._import_identities(table_name, identity, filtered, column_set, result, stats)
            else:
                self._import_regular(table_name, schema, table, filtered, column_set, result, stats)

            result.attempted = len(records)
            logger.info(f"Imported {len(records)} records to {table_name}")

        except Exception as e:
            logger.error(f"Error importing {table_name}: {e}", exc_info=True)
            stats.record_error(table_name, str(e))
            result.error = str(e)
            result.attempted = 0

        return result

    def _import_regular(
        self,
        table_name: str,
        schema: str,
        table: str,
        records: list[dict[str, Any]],
        column_set: DestinationColumnSet,
        result: TableImportResult,
        stats: ImportStats,
    ) -> None:
        for start in range(0, len(records), self.batch_size):
            batch = records[start:start + self.batch_size]

            try:
                query, params = self.build_insert(schema, table, batch, column_set)
                result.inserted += self.pool.execute_command(query, params)
                continue
            except psycopg.Error as e:
                logger.warning(
                    f"Batch insert failed for {table_name} (rows {start}-{start + len(batch) - 1}), "
                    f"trying individual inserts: {e}"
                )
                result.fallback_batches += 1

            for record in batch:
                try:
                    query, params = self.build_insert(schema, table, [record], column_set)
                    result.inserted += self.pool.execute_command(query, params)
                except psycopg.Error as e:
                    record_id = record.get("id")
                    logger.warning(
                        f"Could not import record {record_id} to {table_name}: {e}",
                        extra={"table": table_name, "record_id": record_id},
                    )
                    stats.record_error(table_name, _error_message(e), record_id=record_id)
                    result.failed += 1

    def _import_identities(
        self,
        table_name: str,
        identity: IdentityTarget,
        records: list[dict[str, Any]],
        column_set: DestinationColumnSet,
        result: TableImportResult,
        stats: ImportStats,
    ) -> None:
        for record in records:
            record_id = record.get(identity.conflict_key)
            try:
                query, params = self.build_upsert(identity, record, column_set)
                result.inserted += self.pool.execute_command(query, params)
            except (psycopg.Error, ValueError) as e:
                logger.warning(
                    f"Could not import identity {record_id} to {table_name}: {e}",
                    extra={"table": table_name, "record_id": record_id},
                )
                stats.record_error(table_name, _error_message(e), record_id=record_id)
                result.failed += 1

    def build_insert(
        self,
        schema: str,
        table: str,
        rows: list[dict[str, Any]],
        column_set: DestinationColumnSet,
    ) -> tuple[sql.Composed, list[Any]]:
        """
        Build a multi-row INSERT ... ON CONFLICT DO NOTHING.

        The column list is the union of the rows' keys in destination
        column order; a row lacking a column gets DEFAULT for it.
        """
        present = {key for row in rows for key in row}
        columns = [name for name in column_set.column_names if name in present]
        if not columns:
            raise psycopg.DataError(f"No destination columns in record(s) for {schema}.{table}")

        json_columns = column_set.json_columns
        params: list[Any] = []
        values = []
        for row in rows:
            cells = []
            for column in columns:
                if column in row:
                    cells.append(sql.Placeholder())
                    params.append(adapt_value(row[column], column in json_columns))
                else:
                    cells.append(sql.SQL("DEFAULT"))
            values.append(sql.SQL("({})").format(sql.SQL(", ").join(cells)))

        query = sql.SQL("INSERT INTO {} ({}) VALUES {} ON CONFLICT DO NOTHING").format(
            _qualified(schema, table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(values),
        )
        return query, params

    def build_upsert(
        self,
        identity: IdentityTarget,
        record: dict[str, Any],
        column_set: DestinationColumnSet,
    ) -> tuple[sql.Composed, list[Any]]:
        """
        Build an insert-or-update-by-key statement for one identity record.

        Only update columns present in the record are overwritten; when
        there are none, an existing row is left untouched.
        """
        if record.get(identity.conflict_key) is None:
            raise ValueError(f"Identity record has no '{identity.conflict_key}'")

        columns = [name for name in column_set.column_names if name in record]
        json_columns = column_set.json_columns
        params = [adapt_value(record[c], c in json_columns) for c in columns]

        updates = [
            c for c in identity.update_columns
            if c in record and c != identity.conflict_key
        ]
        if updates:
            conflict_action = sql.SQL("DO UPDATE SET {}").format(
                sql.SQL(", ").join(
                    sql.SQL("{0} = EXCLUDED.{0}").format(sql.Identifier(c)) for c in updates
                )
            )
        else:
            conflict_action = sql.SQL("DO NOTHING")

        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) ON CONFLICT ({}) {}").format(
            _qualified(identity.schema_name, identity.table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
            sql.Identifier(identity.conflict_key),
            conflict_action,
        )
        return query, params


def adapt_value(value: Any, is_json_column: bool) -> Any:
    """
    Adapt a record value for psycopg.

    For json/jsonb columns, a string that already holds JSON text is sent
    as is and any other non-null value is wrapped as JSONB. A dict bound
    for any other column is sent as its JSON text.
    """
    if value is None:
        return None
    if is_json_column:
        if isinstance(value, str) and _is_json_text(value):
            return value
        return Jsonb(value)
    if isinstance(value, dict):
        return json.dumps(value)
    return value


def _is_json_text(value: str) -> bool:
    try:
        json.loads(value)
    except ValueError:
        return False
    return True


def _qualified(schema: str, table: str) -> sql.Identifier:
    return sql.Identifier(
        sanitize_sql_identifier(schema, "schema name"),
        sanitize_sql_identifier(table, "table name"),
    )


def _error_message(error: Exception) -> str:
    # psycopg errors carry the server message on the first line
    return str(error).strip().splitlines()[0] if str(error).strip() else type(error).__name__
