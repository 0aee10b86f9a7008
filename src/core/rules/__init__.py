"""
Table transform rules and their registry.
"""

from .coercion import coerce_float, coerce_int, parse_json_field, try_parse_json
from .rule_registry import TransformRule, TransformRuleRegistry
from .table_rules import BUILTIN_RULES, generic_rule

__all__ = [
    "TransformRuleRegistry",
    "TransformRule",
    "BUILTIN_RULES",
    "generic_rule",
    "coerce_int",
    "coerce_float",
    "try_parse_json",
    "parse_json_field",
]
