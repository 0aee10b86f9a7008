"""
Sequence reconciliation after a bulk load.

Rows imported with explicit ids leave column-default sequences behind the
data; each sequence is moved so its next value is one past the column's
maximum (or 1 for an empty table).
"""

import psycopg
from psycopg import sql

from src.core.models import SequenceUpdate
from src.observability import metrics
from src.observability.logger import get_logger
from src.utils.validation import ValidationError, sanitize_sql_identifier

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)

# One row per sequence: the column whose default expression depends on it
SEQUENCE_QUERY = """
    SELECT DISTINCT ON (sn.nspname, s.relname)
        sn.nspname AS sequence_schema,
        s.relname AS sequence_name,
        tn.nspname AS table_schema,
        t.relname AS table_name,
        a.attname AS column_name
    FROM pg_attrdef ad
    JOIN pg_depend d
        ON d.classid = 'pg_attrdef'::regclass
        AND d.objid = ad.oid
        AND d.refclassid = 'pg_class'::regclass
    JOIN pg_class s ON s.oid = d.refobjid AND s.relkind = 'S'
    JOIN pg_namespace sn ON sn.oid = s.relnamespace
    JOIN pg_class t ON t.oid = ad.adrelid
    JOIN pg_namespace tn ON tn.oid = t.relnamespace
    JOIN pg_attribute a ON a.attrelid = ad.adrelid AND a.attnum = ad.adnum
    WHERE sn.nspname = %s
    AND tn.nspname = %s
    ORDER BY sn.nspname, s.relname, t.relname, a.attname
"""


class SequenceReconciler:
    """
    Moves public-schema sequences past the values already present.

    Every failure here is logged as a warning and never raised; an
    unreconciled sequence only affects rows created after the migration.
    """

    def __init__(self, pool: DatabaseConnectionPool, schema: str = "public"):
        self.pool = pool
        self.schema = schema

    def list_sequences(self) -> list[dict]:
        """List (sequence, table, column) triples bound through column defaults."""
        try:
            return self.pool.execute_query(SEQUENCE_QUERY, (self.schema, self.schema))
        except psycopg.Error as e:
            logger.warning(f"Could not list sequences in schema {self.schema}: {e}")
            return []

    def reconcile_sequence(self, row: dict) -> SequenceUpdate | None:
        """
        Move one sequence past its column's maximum.

        Returns:
            SequenceUpdate with the sequence's next value, or None on failure
        """
        sequence = row["sequence_name"]
        try:
            query = sql.SQL(
                "SELECT setval(format('%I.%I', {seq_schema}::text, {seq}::text)::regclass, "
                "COALESCE(MAX({column}), 1), MAX({column}) IS NOT NULL) AS value, "
                "MAX({column}) IS NOT NULL AS called "
                "FROM {table}"
            ).format(
                seq_schema=sql.Literal(row["sequence_schema"]),
                seq=sql.Literal(sequence),
                column=sql.Identifier(sanitize_sql_identifier(row["column_name"], "column name")),
                table=sql.Identifier(
                    sanitize_sql_identifier(row["table_schema"], "schema name"),
                    sanitize_sql_identifier(row["table_name"], "table name"),
                ),
            )
            result = self.pool.execute_query(query)
        except (psycopg.Error, ValidationError) as e:
            logger.warning(f"Could not update sequence {sequence}: {e}")
            metrics.increment_counter(metrics.sequences_reconciled_total, status="failure")
            return None

        value = int(result[0]["value"])
        next_value = value + 1 if result[0]["called"] else value
        metrics.increment_counter(metrics.sequences_reconciled_total, status="success")
        logger.info(f"Updated sequence {sequence}: next value {next_value}")

        return SequenceUpdate(
            sequence=sequence,
            table=row["table_name"],
            column=row["column_name"],
            next_value=next_value,
        )

    def reconcile_sequences(self) -> list[SequenceUpdate]:
        """
        Reconcile every sequence bound to a column default in the schema.

        Returns:
            Updates that succeeded
        """
        logger.info("Updating sequences...")
        updates = []
        for row in self.list_sequences():
            update = self.reconcile_sequence(row)
            if update is not None:
                updates.append(update)
        return updates
