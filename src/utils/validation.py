"""
Checks for names and paths that come from snapshot files.

Table names are read from manifests and file names, so they are checked
before they reach any SQL statement; snapshot file names are checked before
they are joined onto a directory.
"""

import re
from pathlib import PurePosixPath, PureWindowsPath

IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
POSTGRES_MAX_IDENTIFIER = 63
MAX_PATH_LENGTH = 4096


class ValidationError(ValueError):
    """A name or path from a snapshot failed validation."""


def sanitize_sql_identifier(identifier: str, field_name: str = "identifier") -> str:
    """
    Return ``identifier`` stripped, or raise if it is not a plain SQL name.

    Only letters, digits and underscores are allowed, starting with a letter
    or underscore, up to PostgreSQL's 63 character limit. Statements are
    still composed with psycopg.sql.Identifier.

    Raises:
        ValidationError: If the name is empty, malformed or too long

    Examples:
        >>> sanitize_sql_identifier(" video_courses ")
        'video_courses'
    """
    if not identifier or not isinstance(identifier, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    identifier = identifier.strip()

    if not IDENTIFIER_PATTERN.match(identifier):
        raise ValidationError(
            f"{field_name} '{identifier}' is not a valid SQL identifier "
            "(letters, digits and underscores, not starting with a digit)"
        )

    if len(identifier) > POSTGRES_MAX_IDENTIFIER:
        raise ValidationError(
            f"{field_name} exceeds PostgreSQL maximum length of {POSTGRES_MAX_IDENTIFIER} characters"
        )

    return identifier


def split_qualified_name(name: str, default_schema: str = "public") -> tuple[str, str]:
    """
    Split ``schema.table`` into its parts, validating both.

    Examples:
        >>> split_qualified_name("auth.users")
        ('auth', 'users')
        >>> split_qualified_name("profiles")
        ('public', 'profiles')
    """
    if not name or not isinstance(name, str):
        raise ValidationError("table name must be a non-empty string")

    parts = name.strip().split(".")
    if len(parts) == 1:
        return default_schema, sanitize_sql_identifier(parts[0], "table name")
    if len(parts) == 2:
        return (
            sanitize_sql_identifier(parts[0], "schema name"),
            sanitize_sql_identifier(parts[1], "table name"),
        )
    raise ValidationError(f"table name '{name}' has too many parts")


def validate_file_path(file_path: str, field_name: str = "file_path") -> str:
    """
    Return a snapshot file name stripped of whitespace.

    The name must be a bare file name: absolute paths, directory separators,
    parent-directory segments and NUL bytes are rejected.

    Raises:
        ValidationError: If the name is unsafe to open
    """
    if not isinstance(file_path, str) or not file_path.strip():
        raise ValidationError(f"{field_name} must be a non-empty string")

    file_path = file_path.strip()

    if ".." in file_path:
        raise ValidationError(f"{field_name} '{file_path}' must not contain '..'")

    if "\x00" in file_path:
        raise ValidationError(f"{field_name} contains null bytes")

    if PurePosixPath(file_path).name != file_path or PureWindowsPath(file_path).name != file_path:
        raise ValidationError(f"{field_name} '{file_path}' must be a bare file name")

    if len(file_path) > MAX_PATH_LENGTH:
        raise ValidationError(f"{field_name} exceeds maximum length of {MAX_PATH_LENGTH} characters")

    return file_path
