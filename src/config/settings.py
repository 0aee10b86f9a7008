"""
Runtime configuration for the migration pipeline.

Settings are resolved in this order (later wins):
1. model defaults
2. environment variables (a ``.env`` file is loaded first, without
   overriding variables that are already set)
3. an optional YAML file
4. explicit overrides (CLI flags)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from src.core.schema import DEFAULT_IMPORT_ORDER

# Environment variable -> settings field
ENV_VARS = {
    "DB_HOST": "db_host",
    "DB_PORT": "db_port",
    "DB_NAME": "db_name",
    "DB_USER": "db_user",
    "DB_PASSWORD": "db_password",
    "SNAPSHOT_DIR": "snapshot_dir",
    "TRANSFORMED_DIR": "transformed_dir",
    "IMPORT_BATCH_SIZE": "batch_size",
    "IMPORT_TABLE_DELAY_MS": "table_delay_ms",
    "LOG_LEVEL": "log_level",
    "LOG_FORMAT": "log_format",
    "METRICS_PORT": "metrics_port",
}

DEFAULT_KEY_TABLES = ["profiles", "video_courses", "course_assignments"]


class MigrationSettings(BaseModel):
    """
    Configuration for both pipeline stages.

    Attributes:
        db_host: Destination database host
        db_port: Destination database port
        db_name: Destination database name
        db_user: Destination database user
        db_password: Destination database password (required for import)
        pool_min_size: Minimum connections kept open
        pool_max_size: Maximum connections opened
        connect_timeout: Connection timeout in seconds
        snapshot_dir: Directory holding the exported snapshot
        transformed_dir: Directory holding the transformed snapshot
        batch_size: Records per batched insert
        table_delay_ms: Pause between tables
        import_order: Tables to load, parents first
        key_tables: Tables whose row counts are checked after the import
        derive_order: Compute the order from live foreign keys instead
        log_level: Log level name
        log_format: "text" or "json"
        metrics_port: Port for the Prometheus endpoint (disabled when None)
    """

    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "hemera_db"
    db_user: str = "hemera_user"
    db_password: str | None = None
    pool_min_size: int = Field(1, ge=1)
    pool_max_size: int = Field(2, ge=1)
    connect_timeout: float = Field(30.0, gt=0)

    snapshot_dir: Path = Path("data-export")
    transformed_dir: Path = Path("data-transformed")

    batch_size: int = Field(100, ge=1, le=10000)
    table_delay_ms: int = Field(50, ge=0)
    import_order: list[str] = Field(default_factory=lambda: list(DEFAULT_IMPORT_ORDER))
    key_tables: list[str] = Field(default_factory=lambda: list(DEFAULT_KEY_TABLES))
    derive_order: bool = False

    log_level: str = "INFO"
    log_format: str = "text"
    metrics_port: int | None = None

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got '{v}'")
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("import_order")
    @classmethod
    def check_import_order(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("import_order contains duplicate tables")
        return v

    @property
    def table_delay_seconds(self) -> float:
        return self.table_delay_ms / 1000.0


def _from_environment() -> dict[str, Any]:
    values = {}
    for env_var, field_name in ENV_VARS.items():
        value = os.getenv(env_var)
        if value not in (None, ""):
            values[field_name] = value
    return values


def _from_yaml(config_path: str | Path) -> dict[str, Any]:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return config


def load_settings(
    config_path: str | Path | None = None,
    env_file: str | Path | None = None,
    **overrides: Any,
) -> MigrationSettings:
    """
    Build settings from the environment, an optional YAML file and overrides.

    Args:
        config_path: Optional YAML configuration file
        env_file: Optional .env file (defaults to ./.env when present)
        **overrides: Explicit values; None values are ignored

    Returns:
        Validated MigrationSettings

    Raises:
        FileNotFoundError: If config_path does not exist
        pydantic.ValidationError: If a value is invalid
    """
    load_dotenv(env_file or Path(".env"), override=False)

    values = _from_environment()
    if config_path:
        values.update(_from_yaml(config_path))
    values.update({k: v for k, v in overrides.items() if v is not None})

    return MigrationSettings(**values)
