"""
End-to-end tests: export -> transform -> import through the CLI entry point.
"""

import uuid

import pytest

from src.cli.migrate_cli import main

USER_ID = str(uuid.uuid4())
DEPARTMENT_ID = str(uuid.uuid4())
PROFILE_ID = str(uuid.uuid4())
COURSE_ID = str(uuid.uuid4())
ASSIGNMENT_ID = str(uuid.uuid4())

EXPORT = {
    "auth_users": [
        {
            "id": USER_ID,
            "email": "ana@example.com",
            "encrypted_password": "$2a$10$hash",
            "email_confirmed_at": "2024-05-01T10:00:00Z",
            "created_at": "2024-05-01T09:00:00Z",
            "aud": "authenticated",
        },
    ],
    "departments": [{"id": DEPARTMENT_ID, "name": "Engineering"}],
    "profiles": [
        {
            "id": PROFILE_ID,
            "user_id": USER_ID,
            "department_id": DEPARTMENT_ID,
            "full_name": "Ana Souza",
            "is_active": None,
            "metadata": "{\"theme\": \"dark\"}",
            "avatar_url": "https://cdn.example.com/ana.png",
        },
    ],
    "video_courses": [
        {"id": COURSE_ID, "title": "SQL Basics", "instructor_id": PROFILE_ID, "duration_hours": 1.5},
    ],
    "course_assignments": [
        {"id": ASSIGNMENT_ID, "course_id": COURSE_ID, "user_id": PROFILE_ID},
    ],
    "badges": [{"id": 1, "name": "Starter"}, {"id": 7, "name": "Expert", "points": 50}],
    "site_settings": [
        {"setting_key": "theme", "setting_value": "{\"color\": \"blue\"}"},
        {"setting_key": "title", "setting_value": "Hemera"},
    ],
    "legacy_reports": [{"id": 1, "body": "obsolete"}],
}


def fetch_all(conn, query):
    with conn.cursor() as cur:
        cur.execute(query)
        return cur.fetchall()


@pytest.fixture
def cli_env(clean_env, monkeypatch):
    monkeypatch.setenv("IMPORT_TABLE_DELAY_MS", "0")


@pytest.fixture
def db_args(db_params):
    return [
        "--db-host", db_params["host"],
        "--db-port", str(db_params["port"]),
        "--db-name", db_params["database"],
        "--db-user", db_params["user"],
        "--db-password", db_params["password"],
    ]


def run_transform(export_dir, transformed_dir):
    return main([
        "transform",
        "--snapshot-dir", str(export_dir),
        "--transformed-dir", str(transformed_dir),
    ])


def run_import(transformed_dir, db_args):
    return main(["import", "--transformed-dir", str(transformed_dir), *db_args])


@pytest.mark.integration
class TestMigrationEndToEnd:
    """Tests for a full transform and import run"""

    def test_transform_then_import(self, cli_env, write_snapshot, tmp_path, destination_db, db_args, capsys):
        export_dir = write_snapshot("data-export", EXPORT)
        transformed_dir = tmp_path / "data-transformed"

        assert run_transform(export_dir, transformed_dir) == 0
        assert (transformed_dir / "manifest.json").is_file()

        assert run_import(transformed_dir, db_args) == 0

        users = fetch_all(destination_db, "SELECT email, password_hash, email_confirmed FROM auth.users")
        assert users == [("ana@example.com", "$2a$10$hash", True)]

        profile = fetch_all(destination_db, "SELECT user_id::text, is_active, metadata FROM profiles")[0]
        assert profile == (USER_ID, True, {"theme": "dark"})

        course = fetch_all(destination_db, "SELECT duration_minutes, is_featured FROM video_courses")[0]
        assert course == (90, False)

        assignment = fetch_all(destination_db, "SELECT status, priority FROM course_assignments")[0]
        assert assignment == ("assigned", "medium")

        settings = dict(fetch_all(destination_db, "SELECT setting_key, setting_value FROM site_settings"))
        assert settings == {"theme": {"color": "blue"}, "title": "Hemera"}

        summary = capsys.readouterr().out
        assert "TRANSFORMATION SUMMARY" in summary
        assert "IMPORT SUMMARY" in summary
        # not in the import order, so never loaded
        assert "legacy_reports" not in summary
        assert "Errors encountered" not in summary
        assert "course_assignments: 1" in summary

    def test_sequences_follow_imported_ids(self, cli_env, write_snapshot, tmp_path, destination_db, db_args):
        export_dir = write_snapshot("data-export", EXPORT)
        transformed_dir = tmp_path / "data-transformed"
        run_transform(export_dir, transformed_dir)

        assert run_import(transformed_dir, db_args) == 0

        badge = fetch_all(destination_db, "INSERT INTO badges (name) VALUES ('Next') RETURNING id")
        assert badge[0][0] == 8
        setting = fetch_all(
            destination_db, "INSERT INTO site_settings (setting_key) VALUES ('next') RETURNING id"
        )
        assert setting[0][0] == 3

    def test_second_import_changes_nothing(self, cli_env, write_snapshot, tmp_path, destination_db, db_args, capsys):
        export_dir = write_snapshot("data-export", {k: v for k, v in EXPORT.items() if k != "site_settings"})
        transformed_dir = tmp_path / "data-transformed"
        run_transform(export_dir, transformed_dir)

        assert run_import(transformed_dir, db_args) == 0
        before = {
            table: fetch_all(destination_db, f"SELECT COUNT(*) FROM {table}")[0][0]
            for table in ("auth.users", "departments", "profiles", "video_courses", "course_assignments", "badges")
        }
        capsys.readouterr()

        assert run_import(transformed_dir, db_args) == 0

        after = {
            table: fetch_all(destination_db, f"SELECT COUNT(*) FROM {table}")[0][0]
            for table in before
        }
        assert after == before
        assert "Errors encountered" not in capsys.readouterr().out

    def test_row_failures_are_reported_not_fatal(self, cli_env, write_snapshot, tmp_path, destination_db, db_args, capsys):
        orphan = {"id": str(uuid.uuid4()), "course_id": str(uuid.uuid4()), "user_id": str(uuid.uuid4())}
        export_dir = write_snapshot("data-export", {"course_assignments": [orphan]})
        transformed_dir = tmp_path / "data-transformed"
        run_transform(export_dir, transformed_dir)

        assert run_import(transformed_dir, db_args) == 0

        summary = capsys.readouterr().out
        assert "Errors encountered: 1" in summary
        assert f"course_assignments (record {orphan['id']})" in summary

    def test_derived_order_imports_parents_first(self, cli_env, write_snapshot, tmp_path, destination_db, db_args, capsys):
        export_dir = write_snapshot("data-export", EXPORT)
        transformed_dir = tmp_path / "data-transformed"
        run_transform(export_dir, transformed_dir)

        assert main(["import", "--transformed-dir", str(transformed_dir), "--derive-order", *db_args]) == 0

        assert fetch_all(destination_db, "SELECT COUNT(*) FROM course_assignments")[0][0] == 1
        assert "legacy_reports: Table does not exist" in capsys.readouterr().out


@pytest.mark.integration
class TestImportFailures:
    """Tests for import runs that stop before loading anything"""

    def test_missing_manifest_fails_before_connecting(self, cli_env, tmp_path):
        # nothing listens on port 1, so a connection attempt would retry for seconds
        args = ["--db-host", "127.0.0.1", "--db-port", "1", "--db-password", "x"]
        assert run_import(tmp_path / "nothing-here", args) == 1

    def test_missing_password_fails(self, cli_env, write_snapshot, tmp_path, db_params):
        transformed_dir = write_snapshot("data-transformed", {"badges": [{"id": 1, "name": "a"}]})
        args = ["--db-host", db_params["host"], "--db-port", str(db_params["port"])]
        assert run_import(transformed_dir, args) == 1
