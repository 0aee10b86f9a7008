"""
Transform rule registry.

Maps a table name to its transform rule and falls back to the generic rule
for tables that have none.
"""

from typing import Any, Callable

from .table_rules import BUILTIN_RULES, generic_rule

Record = dict[str, Any]
TransformRule = Callable[[Record, str], Record]


class TransformRuleRegistry:
    """
    Resolves and applies per-table transform rules.

    Dispatch is by exact table name. The registry is populated once at
    construction; additional rules can be registered before a run starts.
    """

    def __init__(
        self,
        rules: dict[str, TransformRule] | None = None,
        fallback: TransformRule = generic_rule,
        include_builtin: bool = True,
    ):
        """
        Initialize the registry.

        Args:
            rules: Extra table rules, taking precedence over the built-in ones
            fallback: Rule used for tables without a registered rule
            include_builtin: Whether to start from the built-in table rules
        """
        self._rules: dict[str, TransformRule] = dict(BUILTIN_RULES) if include_builtin else {}
        self._rules.update(rules or {})
        self.fallback = fallback

    def register(self, table_name: str, rule: TransformRule) -> "TransformRuleRegistry":
        """Register (or replace) the rule for ``table_name``."""
        self._rules[table_name] = rule
        return self

    def rule_for(self, table_name: str) -> TransformRule:
        return self._rules.get(table_name, self.fallback)

    def has_rule(self, table_name: str) -> bool:
        return table_name in self._rules

    @property
    def tables(self) -> list[str]:
        return sorted(self._rules)

    def apply(self, table_name: str, record: Record, now: str) -> Record:
        """Apply the table's rule to one record."""
        return self.rule_for(table_name)(record, now)

    def transform(self, table_name: str, records: list[Record], now: str) -> list[Record]:
        """
        Apply the table's rule to every record.

        Args:
            table_name: Logical table name
            records: Records to transform (left untouched)
            now: Timestamp used for defaulted fields

        Returns:
            New list of transformed records, one per input record
        """
        rule = self.rule_for(table_name)
        return [rule(record, now) for record in records]
