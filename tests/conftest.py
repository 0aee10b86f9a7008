"""
Pytest configuration and fixtures for snapshot-migrator tests

This module provides shared fixtures for unit and integration tests.
"""
import json
from pathlib import Path
from typing import Any, Callable, Generator

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from src.warehouse.connection import DatabaseConnectionPool


FIXTURES_DIR = Path(__file__).parent / "fixtures"

POSTGRES_USER = "test_migrator"
POSTGRES_PASSWORD = "test_password"
POSTGRES_DB = "test_hemera_db"


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username=POSTGRES_USER,
        password=POSTGRES_PASSWORD,
        dbname=POSTGRES_DB,
    ) as postgres:
        yield postgres


@pytest.fixture(scope="session")
def db_params(postgres_container) -> dict[str, Any]:
    """Connection parameters of the test container."""
    return {
        "host": postgres_container.get_container_host_ip(),
        "port": int(postgres_container.get_exposed_port(5432)),
        "database": POSTGRES_DB,
        "user": POSTGRES_USER,
        "password": POSTGRES_PASSWORD,
    }


@pytest.fixture(scope="function")
def db_connection(db_params) -> Generator[psycopg.Connection, None, None]:
    """
    Provide an autocommit connection for assertions and setup

    Yields:
        psycopg Connection object
    """
    with psycopg.connect(
        host=db_params["host"],
        port=db_params["port"],
        dbname=db_params["database"],
        user=db_params["user"],
        password=db_params["password"],
        autocommit=True,
    ) as conn:
        yield conn


@pytest.fixture(scope="function")
def destination_db(db_connection) -> psycopg.Connection:
    """
    Recreate the destination schema before each test

    Returns:
        psycopg Connection object on a freshly created schema
    """
    schema_sql = (FIXTURES_DIR / "destination_schema.sql").read_text()
    with db_connection.cursor() as cur:
        cur.execute("DROP SCHEMA IF EXISTS auth CASCADE")
        cur.execute("DROP SCHEMA IF EXISTS public CASCADE")
        cur.execute("CREATE SCHEMA public")
        cur.execute(schema_sql)

    return db_connection


@pytest.fixture(scope="function")
def db_pool(db_params, destination_db) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Open a DatabaseConnectionPool against the fresh destination schema

    Yields:
        Open DatabaseConnectionPool
    """
    pool = DatabaseConnectionPool(
        host=db_params["host"],
        port=db_params["port"],
        database=db_params["database"],
        user=db_params["user"],
        password=db_params["password"],
    )
    pool.open()
    yield pool
    pool.close()


# =======================
# SNAPSHOT FIXTURES
# =======================

@pytest.fixture(scope="function")
def write_snapshot(tmp_path) -> Callable[..., Path]:
    """
    Build a snapshot directory from table records

    Usage:
        directory = write_snapshot("export", {"profiles": [{"id": ...}]})

    Returns:
        Function taking (name, tables, manifest_extra=None) and returning the
        directory it wrote
    """

    def _write(name: str, tables: dict[str, list[dict]], manifest_extra: dict | None = None) -> Path:
        directory = tmp_path / name
        directory.mkdir(parents=True, exist_ok=True)

        files = []
        for table, records in tables.items():
            filename = f"{table}.json"
            content = json.dumps({"table": table, "recordCount": len(records), "records": records})
            (directory / filename).write_text(content, encoding="utf-8")
            files.append({
                "filename": filename,
                "table": table,
                "size": len(content),
                "recordCount": len(records),
            })

        manifest = {
            "exportedAt": "2025-01-10T12:00:00.000Z",
            "files": files,
            "totalRecords": sum(len(r) for r in tables.values()),
            "errors": [],
        }
        manifest.update(manifest_extra or {})
        (directory / "manifest.json").write_text(json.dumps(manifest), encoding="utf-8")
        return directory

    return _write


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture(scope="function")
def clean_env(monkeypatch, tmp_path):
    """
    Remove migration environment variables for a test

    Keeps settings tests independent of the developer's shell and .env.
    """
    for name in (
        "DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD",
        "SNAPSHOT_DIR", "TRANSFORMED_DIR", "IMPORT_BATCH_SIZE",
        "IMPORT_TABLE_DELAY_MS", "LOG_LEVEL", "LOG_FORMAT", "METRICS_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
