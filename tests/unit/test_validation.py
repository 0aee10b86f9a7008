"""
Unit tests for identifier and path validation.
"""

import pytest

from src.utils.validation import (
    ValidationError,
    sanitize_sql_identifier,
    split_qualified_name,
    validate_file_path,
)


@pytest.mark.unit
class TestSqlIdentifiers:
    """Tests for sanitize_sql_identifier and split_qualified_name"""

    def test_valid_identifier(self):
        assert sanitize_sql_identifier("video_courses") == "video_courses"
        assert sanitize_sql_identifier("  _private ") == "_private"

    @pytest.mark.parametrize("name", ["", "1table", "drop table", "users;--", "a" * 64])
    def test_invalid_identifier(self, name):
        with pytest.raises(ValidationError):
            sanitize_sql_identifier(name)

    def test_split_unqualified(self):
        assert split_qualified_name("profiles") == ("public", "profiles")

    def test_split_qualified(self):
        assert split_qualified_name("auth.users") == ("auth", "users")

    def test_split_rejects_extra_parts(self):
        with pytest.raises(ValidationError):
            split_qualified_name("db.auth.users")


@pytest.mark.unit
class TestFilePaths:
    """Tests for validate_file_path"""

    def test_plain_filename(self):
        assert validate_file_path(" profiles.json ") == "profiles.json"

    @pytest.mark.parametrize("path", [
        "",
        "   ",
        "../secrets.json",
        "a\x00b.json",
        "/etc/passwd",
        "/tmp/outside/victim.json",
        "nested/profiles.json",
        "nested\\profiles.json",
        "C:\\exports\\profiles.json",
    ])
    def test_rejected_paths(self, path):
        with pytest.raises(ValidationError):
            validate_file_path(path)

    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)
