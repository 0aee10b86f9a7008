"""
Per-table transform rules.

Each rule takes a record and the run's "now" timestamp (ISO 8601) and
returns a new record. Rules never mutate their input and never read the
clock themselves, so applying a rule twice to the same input with the same
``now`` yields the same output.
"""

from typing import Any

from .coercion import (
    coerce_float,
    coerce_int,
    drop_none,
    parse_json_field,
    true_only_if_true,
    true_unless_false,
    try_parse_json,
)

Record = dict[str, Any]


def _with_timestamps(record: Record, now: str) -> Record:
    return {
        **record,
        "created_at": record.get("created_at") or now,
        "updated_at": record.get("updated_at") or now,
    }


def generic_rule(record: Record, now: str) -> Record:
    """
    Fallback for tables without a specific rule.

    Defaults created_at/updated_at and forces an existing is_active
    to True unless it is explicitly False.
    """
    transformed = _with_timestamps(record, now)
    if "is_active" in transformed:
        transformed["is_active"] = true_unless_false(transformed["is_active"])
    return transformed


def auth_users_rule(record: Record, now: str) -> Record:
    """
    Map provider identity records onto the destination identity columns.

    Keys with a None value are dropped: the identity store treats a missing
    column (default applies) differently from an explicit NULL.
    """
    transformed = {
        "id": record.get("id"),
        "email": record.get("email"),
        "password_hash": record.get("encrypted_password") or record.get("password_hash") or "",
        "email_confirmed": bool(record.get("email_confirmed_at")),
        "created_at": record.get("created_at"),
        "updated_at": record.get("updated_at"),
        "last_sign_in_at": record.get("last_sign_in_at"),
        "confirmation_token": record.get("confirmation_token"),
        "recovery_token": record.get("recovery_token"),
        "email_change_token": record.get("email_change_token_new"),
        "email_change": record.get("email_change"),
        "phone": record.get("phone"),
        "phone_confirmed": bool(record.get("phone_confirmed_at")),
        "phone_change": record.get("phone_change"),
        "phone_change_token": record.get("phone_change_token"),
        "email_confirmed_at": record.get("email_confirmed_at"),
        "phone_confirmed_at": record.get("phone_confirmed_at"),
        "confirmation_sent_at": record.get("confirmation_sent_at"),
        "recovery_sent_at": record.get("recovery_sent_at"),
        "email_change_sent_at": record.get("email_change_sent_at"),
        "phone_change_sent_at": record.get("phone_change_sent_at"),
        "banned_until": record.get("banned_until"),
        "deleted_at": record.get("deleted_at"),
    }
    return drop_none(transformed)


def profiles_rule(record: Record, now: str) -> Record:
    transformed = _with_timestamps(record, now)
    transformed["user_id"] = record.get("user_id") or record.get("id")
    transformed["is_active"] = true_unless_false(record.get("is_active"))
    if "metadata" in transformed:
        transformed["metadata"] = parse_json_field(transformed["metadata"], {})
    return transformed


def _duration_minutes(record: Record) -> Any:
    minutes = record.get("duration_minutes")
    if minutes:
        return minutes

    hours = record.get("duration_hours")
    if hours is None or isinstance(hours, bool):
        return 0
    try:
        derived = float(hours) * 60
    except (TypeError, ValueError, OverflowError):
        return 0
    if not derived or derived != derived:
        return 0
    return int(derived) if derived.is_integer() else derived


def video_courses_rule(record: Record, now: str) -> Record:
    transformed = _with_timestamps(record, now)
    transformed["is_active"] = true_unless_false(record.get("is_active"))
    transformed["is_featured"] = true_only_if_true(record.get("is_featured"))
    transformed["duration_minutes"] = _duration_minutes(record)
    if "metadata" in transformed:
        transformed["metadata"] = parse_json_field(transformed["metadata"], {})
    return transformed


def simulados_rule(record: Record, now: str) -> Record:
    transformed = _with_timestamps(record, now)
    transformed["is_active"] = true_unless_false(record.get("is_active"))
    transformed["is_public"] = true_unless_false(record.get("is_public"))
    transformed["duration_minutes"] = coerce_int(record.get("duration_minutes"), 60)
    transformed["total_questions"] = coerce_int(record.get("total_questions"), 0)
    transformed["passing_score"] = coerce_float(record.get("passing_score"), 70.0)
    return transformed


def course_assignments_rule(record: Record, now: str) -> Record:
    transformed = _with_timestamps(record, now)
    transformed["status"] = record.get("status") or "assigned"
    transformed["priority"] = record.get("priority") or "medium"
    transformed["assigned_at"] = record.get("assigned_at") or record.get("created_at") or now
    return transformed


def organizational_chart_rule(record: Record, now: str) -> Record:
    transformed = _with_timestamps(record, now)
    transformed["is_active"] = true_unless_false(record.get("is_active"))
    transformed["show_in_presentation"] = true_only_if_true(record.get("show_in_presentation"))
    transformed["order_position"] = coerce_int(record.get("order_position"), 0)
    return transformed


def site_settings_rule(record: Record, now: str) -> Record:
    """Timestamps, plus best-effort parsing of JSON-looking setting values."""
    transformed = _with_timestamps(record, now)
    if record.get("setting_key") and record.get("setting_value"):
        transformed["setting_value"] = try_parse_json(record["setting_value"])
    return transformed


BUILTIN_RULES = {
    "auth_users": auth_users_rule,
    "profiles": profiles_rule,
    "video_courses": video_courses_rule,
    "simulados": simulados_rule,
    "course_assignments": course_assignments_rule,
    "organizational_chart": organizational_chart_rule,
    "site_settings": site_settings_rule,
}
