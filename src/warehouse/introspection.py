"""
Best-effort introspection of the destination schema.

Every read here degrades instead of failing: a query error is logged as a
warning and reported as "table not found" / "no columns" so that missing
schema information slows the pipeline down rather than crashing it.
"""

import psycopg
from psycopg import sql

from src.core.models import ColumnInfo, DestinationColumnSet
from src.observability.logger import get_logger
from src.utils.validation import ValidationError, sanitize_sql_identifier

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)


def logical_table_name(schema: str, table: str) -> str:
    """
    Name a destination table the way snapshot files do.

    Tables outside ``public`` are prefixed with their schema, as the export
    job names ``auth.users`` -> ``auth_users``.
    """
    return table if schema == "public" else f"{schema}_{table}"


class SchemaIntrospector:
    """
    Reads table existence, columns and foreign keys from information_schema.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize schema introspector.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def table_exists(self, table_name: str, schema: str = "public") -> bool:
        """
        Check whether a destination table exists.

        Args:
            table_name: Table name
            schema: Schema name

        Returns:
            True if the table exists; False if it does not or the check failed
        """
        query = """
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = %s
                AND table_name = %s
            ) AS exists
        """
        try:
            result = self.pool.execute_query(query, (schema, table_name))
            return bool(result and result[0]["exists"])
        except psycopg.Error as e:
            logger.warning(f"Could not check if table {schema}.{table_name} exists: {e}")
            return False

    def get_columns(self, table_name: str, schema: str = "public") -> DestinationColumnSet:
        """
        Fetch the column set of a destination table.

        Args:
            table_name: Table name
            schema: Schema name

        Returns:
            DestinationColumnSet in ordinal order; empty if the query failed
        """
        query = """
            SELECT column_name, data_type, is_nullable
            FROM information_schema.columns
            WHERE table_schema = %s
            AND table_name = %s
            ORDER BY ordinal_position
        """
        try:
            rows = self.pool.execute_query(query, (schema, table_name))
        except psycopg.Error as e:
            logger.warning(f"Could not get columns for table {schema}.{table_name}: {e}")
            rows = []

        return DestinationColumnSet(
            table_name=table_name,
            schema_name=schema,
            columns=[
                ColumnInfo(
                    name=row["column_name"],
                    data_type=row["data_type"],
                    nullable=row["is_nullable"] == "YES",
                )
                for row in rows
            ],
        )

    def get_foreign_keys(self, schema: str = "public") -> list[tuple[str, str]]:
        """
        List (child, parent) foreign-key pairs for tables in ``schema``.

        Parents outside ``schema`` are named with logical_table_name.

        Returns:
            Distinct (child, parent) pairs; empty if the query failed
        """
        query = """
            SELECT DISTINCT
                tc.table_schema AS child_schema,
                tc.table_name AS child_table,
                ccu.table_schema AS parent_schema,
                ccu.table_name AS parent_table
            FROM information_schema.table_constraints tc
            JOIN information_schema.constraint_column_usage ccu
                ON tc.constraint_name = ccu.constraint_name
                AND tc.constraint_schema = ccu.constraint_schema
            WHERE tc.constraint_type = 'FOREIGN KEY'
            AND tc.table_schema = %s
        """
        try:
            rows = self.pool.execute_query(query, (schema,))
        except psycopg.Error as e:
            logger.warning(f"Could not list foreign keys in schema {schema}: {e}")
            return []

        pairs = {
            (
                logical_table_name(row["child_schema"], row["child_table"]),
                logical_table_name(row["parent_schema"], row["parent_table"]),
            )
            for row in rows
        }
        return sorted(pairs)

    def count_rows(self, table_name: str, schema: str = "public") -> int | None:
        """
        Count rows in a destination table.

        Returns:
            Row count, or None if the table cannot be counted
        """
        try:
            identifier = sql.Identifier(
                sanitize_sql_identifier(schema, "schema name"),
                sanitize_sql_identifier(table_name, "table name"),
            )
            result = self.pool.execute_query(
                sql.SQL("SELECT COUNT(*) AS count FROM {}").format(identifier)
            )
            return int(result[0]["count"])
        except (psycopg.Error, ValidationError) as e:
            logger.warning(f"Could not count rows in {schema}.{table_name}: {e}")
            return None
