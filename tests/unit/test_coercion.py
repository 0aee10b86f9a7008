"""
Unit tests for the lenient value coercion helpers.

Includes property-based testing with hypothesis.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from src.core.rules.coercion import (
    coerce_float,
    coerce_int,
    drop_none,
    looks_like_json,
    parse_json_field,
    true_only_if_true,
    true_unless_false,
    try_parse_json,
)


@pytest.mark.unit
class TestCoerceInt:
    """Tests for coerce_int"""

    def test_numeric_string(self):
        assert coerce_int("45", 60) == 45

    def test_leading_digits_are_read(self):
        assert coerce_int("12 min", 60) == 12
        assert coerce_int("  7", 0) == 7

    def test_float_is_truncated(self):
        assert coerce_int(3.9, 0) == 3
        assert coerce_int("3.9", 0) == 3

    def test_unparsable_takes_fallback(self):
        assert coerce_int("abc", 60) == 60
        assert coerce_int("", 60) == 60
        assert coerce_int(None, 60) == 60
        assert coerce_int([1], 60) == 60

    def test_zero_takes_fallback(self):
        """Zero is treated like a missing value"""
        assert coerce_int(0, 60) == 60
        assert coerce_int("0", 60) == 60

    def test_booleans_are_rejected(self):
        assert coerce_int(True, 5) == 5

    def test_non_finite_float_takes_fallback(self):
        assert coerce_int(float("nan"), 5) == 5
        assert coerce_int(float("inf"), 5) == 5

    @given(st.integers().filter(lambda n: n != 0))
    def test_nonzero_integers_pass_through(self, value):
        assert coerce_int(value, 99) == value
        assert coerce_int(str(value), 99) == value

    @given(st.text())
    def test_never_raises_on_text(self, value):
        assert isinstance(coerce_int(value, 1), int)


@pytest.mark.unit
class TestCoerceFloat:
    """Tests for coerce_float"""

    def test_numeric_string(self):
        assert coerce_float("75.5", 70.0) == 75.5

    def test_exponent_and_prefix(self):
        assert coerce_float("1e2", 0.0) == 100.0
        assert coerce_float(".5 points", 0.0) == 0.5

    def test_unparsable_takes_fallback(self):
        assert coerce_float("", 70.0) == 70.0
        assert coerce_float("n/a", 70.0) == 70.0
        assert coerce_float(None, 70.0) == 70.0

    def test_zero_takes_fallback(self):
        assert coerce_float(0, 70.0) == 70.0
        assert coerce_float("0.0", 70.0) == 70.0

    @given(st.floats(allow_nan=False, allow_infinity=False).filter(lambda f: f != 0))
    def test_finite_floats_pass_through(self, value):
        assert coerce_float(value, 1.0) == value


@pytest.mark.unit
class TestJsonHelpers:
    """Tests for best-effort JSON parsing"""

    def test_looks_like_json(self):
        assert looks_like_json('{"a": 1}')
        assert looks_like_json("[1, 2]")
        assert not looks_like_json("plain")
        assert not looks_like_json(" {}")
        assert not looks_like_json({"a": 1})

    def test_try_parse_json_parses_objects_and_arrays(self):
        assert try_parse_json('{"theme": "dark"}') == {"theme": "dark"}
        assert try_parse_json("[1, 2]") == [1, 2]

    def test_try_parse_json_keeps_invalid_json(self):
        assert try_parse_json("{not json") == "{not json"

    def test_try_parse_json_leaves_scalars(self):
        assert try_parse_json("42") == "42"
        assert try_parse_json("hello") == "hello"
        assert try_parse_json(42) == 42

    def test_parse_json_field_default_on_failure(self):
        assert parse_json_field("{broken", {}) == {}
        assert parse_json_field('{"a": 1}', {}) == {"a": 1}

    def test_parse_json_field_keeps_non_strings(self):
        value = {"already": "parsed"}
        assert parse_json_field(value, {}) is value
        assert parse_json_field(None, {}) is None


@pytest.mark.unit
class TestFlagsAndCleanup:
    """Tests for boolean defaults and None-dropping"""

    def test_true_unless_false(self):
        assert true_unless_false(None) is True
        assert true_unless_false(True) is True
        assert true_unless_false("no") is True
        assert true_unless_false(False) is False

    def test_true_only_if_true(self):
        assert true_only_if_true(True) is True
        assert true_only_if_true(None) is False
        assert true_only_if_true("true") is False

    def test_drop_none(self):
        assert drop_none({"a": 1, "b": None, "c": False}) == {"a": 1, "c": False}
