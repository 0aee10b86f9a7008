"""
Foreign-key dependency order for the import.

The default order is a hand-maintained topological sort of the destination
schema and must be kept in sync with it manually. ``find_order_violations``
checks an order against a set of (child, parent) foreign-key pairs, and
``derive_import_order`` computes an order from such pairs.
"""

from collections import defaultdict
from heapq import heappop, heappush
from typing import Iterable

from src.core.exceptions import DependencyOrderError

DEFAULT_IMPORT_ORDER: list[str] = [
    "departments",
    "auth_users",
    "profiles",
    "video_courses",
    "video_lessons",
    "simulados",
    "questoes",
    "opcoes_resposta",
    "course_enrollments",
    "lesson_progress",
    "assignment_templates",
    "template_courses",
    "course_assignments",
    "assignment_notifications",
    "badges",
    "user_levels",
    "user_badges",
    "user_points",
    "course_certificates",
    "simulado_certificates",
    "simulado_attempts",
    "simulado_answers",
    "company_presentation",
    "organizational_chart",
    "site_settings",
    "email_templates",
    "email_queue",
    "email_logs",
    "presentation_views",
]

# (child, parent) pairs of the default destination schema
DECLARED_FOREIGN_KEYS: list[tuple[str, str]] = [
    ("profiles", "auth_users"),
    ("profiles", "departments"),
    ("video_courses", "profiles"),
    ("video_lessons", "video_courses"),
    ("simulados", "video_courses"),
    ("questoes", "simulados"),
    ("opcoes_resposta", "questoes"),
    ("course_enrollments", "profiles"),
    ("course_enrollments", "video_courses"),
    ("lesson_progress", "profiles"),
    ("lesson_progress", "video_lessons"),
    ("assignment_templates", "profiles"),
    ("template_courses", "assignment_templates"),
    ("template_courses", "video_courses"),
    ("course_assignments", "profiles"),
    ("course_assignments", "video_courses"),
    ("assignment_notifications", "course_assignments"),
    ("user_badges", "badges"),
    ("user_badges", "profiles"),
    ("user_points", "profiles"),
    ("course_certificates", "profiles"),
    ("course_certificates", "video_courses"),
    ("simulado_certificates", "simulados"),
    ("simulado_certificates", "profiles"),
    ("simulado_attempts", "simulados"),
    ("simulado_attempts", "profiles"),
    ("simulado_answers", "simulado_attempts"),
    ("simulado_answers", "questoes"),
    ("simulado_answers", "opcoes_resposta"),
    ("organizational_chart", "profiles"),
    ("organizational_chart", "departments"),
    ("email_queue", "email_templates"),
    ("email_logs", "email_queue"),
    ("presentation_views", "company_presentation"),
    ("presentation_views", "profiles"),
]


def find_order_violations(
    order: list[str],
    fk_pairs: Iterable[tuple[str, str]],
) -> list[tuple[str, str]]:
    """
    Find foreign-key pairs the order does not respect.

    Pairs whose tables are not both in ``order`` and self-references are
    ignored.

    Args:
        order: Table names in import order
        fk_pairs: (child, parent) pairs

    Returns:
        (child, parent) pairs where the parent does not come first
    """
    position = {table: idx for idx, table in enumerate(order)}
    violations = []
    for child, parent in fk_pairs:
        if child == parent or child not in position or parent not in position:
            continue
        if position[parent] >= position[child]:
            violations.append((child, parent))
    return violations


def derive_import_order(
    tables: Iterable[str],
    fk_pairs: Iterable[tuple[str, str]],
    preferred: list[str] | None = None,
) -> list[str]:
    """
    Compute a parent-before-child order for ``tables``.

    Uses Kahn's algorithm; among tables that are ready at the same time the
    one that comes first in ``preferred`` (then alphabetically) wins, so the
    result stays close to the hand-maintained order.

    Raises:
        DependencyOrderError: If the foreign keys contain a cycle, or a pair
            references a table outside ``tables``
    """
    table_list = list(dict.fromkeys(tables))
    table_set = set(table_list)
    rank = {table: idx for idx, table in enumerate(preferred or [])}

    def sort_key(table: str) -> tuple[int, str]:
        return (rank.get(table, len(rank)), table)

    children: dict[str, set[str]] = defaultdict(set)
    indegree = {table: 0 for table in table_list}

    for child, parent in fk_pairs:
        if child == parent:
            continue
        unknown = [t for t in (child, parent) if t not in table_set]
        if unknown:
            raise DependencyOrderError(
                f"Foreign key {child} -> {parent} references unknown table(s): {', '.join(unknown)}",
                tables=unknown,
            )
        if child not in children[parent]:
            children[parent].add(child)
            indegree[child] += 1

    ready: list[tuple[tuple[int, str], str]] = []
    for table in table_list:
        if indegree[table] == 0:
            heappush(ready, (sort_key(table), table))

    order = []
    while ready:
        _, table = heappop(ready)
        order.append(table)
        for child in children.get(table, ()):
            indegree[child] -= 1
            if indegree[child] == 0:
                heappush(ready, (sort_key(child), child))

    if len(order) != len(table_list):
        stuck = sorted(t for t in table_list if indegree[t] > 0)
        raise DependencyOrderError(
            f"Foreign key cycle detected among tables: {', '.join(stuck)}",
            tables=stuck,
        )

    return order
