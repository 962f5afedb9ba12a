"""Tests for the operator table."""

import pytest
from fastapi_rqc.exceptions import InvalidOperator
from fastapi_rqc.models import FilterOperator
from fastapi_rqc.operators import (
    CONDITION_STRATEGIES,
    OPERATOR_TABLE,
    Comparison,
    _is_string_column,
    build_condition,
    escape_like,
    is_null_value,
    resolve,
    resolve_for_value,
    wrap_pattern,
)
from sqlalchemy import Column, Integer, MetaData, String, Table, bindparam
from sqlalchemy import Enum as SAEnum

from tests.models import User

users = User.__table__


class TestOperatorTable:
    """Tests for the OPERATOR_TABLE registry."""

    def test_all_operators_registered(self):
        for op in FilterOperator:
            assert op in OPERATOR_TABLE, f"Missing operator {op}"

    def test_all_plain_comparisons_have_strategy(self):
        for comparison in Comparison:
            if comparison in (Comparison.LIKE, Comparison.NOT_LIKE):
                continue
            assert comparison in CONDITION_STRATEGIES, f"Missing strategy for {comparison}"

    @pytest.mark.parametrize(
        "operator,negated,expected",
        [
            (FilterOperator.EQ, False, Comparison.EQ),
            (FilterOperator.EQ, True, Comparison.NE),
            (FilterOperator.CT, False, Comparison.LIKE),
            (FilterOperator.SW, True, Comparison.NOT_LIKE),
            (FilterOperator.EW, True, Comparison.NOT_LIKE),
            (FilterOperator.IN, False, Comparison.IN),
            (FilterOperator.IN, True, Comparison.NOT_IN),
        ],
    )
    def test_resolve(self, operator, negated, expected):
        assert resolve(operator, negated) is expected

    def test_negated_comparators_mirror(self):
        """Negation swaps a comparator for its opposite direction."""
        assert resolve(FilterOperator.GT, True) is Comparison.LT
        assert resolve(FilterOperator.LT, True) is Comparison.GT
        assert resolve(FilterOperator.GTE, True) is Comparison.LTE
        assert resolve(FilterOperator.LTE, True) is Comparison.GTE

    def test_resolve_accepts_strings(self):
        assert resolve("gt") is Comparison.GT
        assert resolve(" GTE ") is Comparison.GTE

    def test_unknown_operator(self):
        with pytest.raises(InvalidOperator, match="bogus"):
            resolve("bogus")


class TestNullHandling:
    @pytest.mark.parametrize("value", [None, "", "null", "NULL", "Null"])
    def test_null_like_values(self, value):
        assert is_null_value(value) is True

    @pytest.mark.parametrize("value", [0, False, "0", "nullable", " ", [], 1.5])
    def test_not_null_like_values(self, value):
        assert is_null_value(value) is False

    def test_eq_null_short_circuits(self):
        assert resolve_for_value(FilterOperator.EQ, False, "") is Comparison.IS_NULL
        assert resolve_for_value(FilterOperator.EQ, True, None) is Comparison.IS_NOT_NULL
        assert resolve_for_value(FilterOperator.EQ, False, "null") is Comparison.IS_NULL

    def test_other_operators_do_not_short_circuit(self):
        assert resolve_for_value(FilterOperator.GT, False, None) is Comparison.GT
        assert resolve_for_value(FilterOperator.CT, True, "") is Comparison.NOT_LIKE

    def test_eq_with_value_is_plain_equality(self):
        assert resolve_for_value(FilterOperator.EQ, False, 0) is Comparison.EQ
        assert resolve_for_value(FilterOperator.EQ, True, "x") is Comparison.NE


class TestPatterns:
    def test_wrap_pattern(self):
        assert wrap_pattern(FilterOperator.CT, "ab") == "%ab%"
        assert wrap_pattern(FilterOperator.SW, "ab") == "ab%"
        assert wrap_pattern(FilterOperator.EW, "ab") == "%ab"

    def test_wrap_pattern_non_string(self):
        assert wrap_pattern(FilterOperator.SW, 42) == "42%"

    def test_wrap_pattern_escapes_wildcards(self):
        assert wrap_pattern(FilterOperator.CT, "50%_off", "\\") == "%50\\%\\_off%"

    def test_escape_like_escapes_escape_char(self):
        assert escape_like("a\\b") == "a\\\\b"


class TestBuildCondition:
    def test_eq(self):
        condition = build_condition(Comparison.EQ, users.c.age, bindparam("p", 5))
        assert str(condition) == "users.age = :p"

    def test_ne(self):
        condition = build_condition(Comparison.NE, users.c.age, bindparam("p", 5))
        assert str(condition) == "users.age != :p"

    def test_is_null(self):
        assert str(build_condition(Comparison.IS_NULL, users.c.email)) == "users.email IS NULL"

    def test_is_not_null(self):
        condition = build_condition(Comparison.IS_NOT_NULL, users.c.email)
        assert str(condition) == "users.email IS NOT NULL"

    def test_comparators(self):
        p = bindparam("p", 5)
        assert str(build_condition(Comparison.GT, users.c.age, p)) == "users.age > :p"
        assert str(build_condition(Comparison.LT, users.c.age, p)) == "users.age < :p"
        assert str(build_condition(Comparison.GTE, users.c.age, p)) == "users.age >= :p"
        assert str(build_condition(Comparison.LTE, users.c.age, p)) == "users.age <= :p"

    def test_case_insensitive_like(self):
        condition = build_condition(Comparison.LIKE, users.c.name, bindparam("p", "%a%"))
        compiled = str(condition)
        assert "lower(users.name) LIKE lower(:p)" == compiled

    def test_case_sensitive_like(self):
        condition = build_condition(
            Comparison.LIKE, users.c.name, bindparam("p", "%a%"), case_insensitive=False
        )
        assert str(condition) == "users.name LIKE :p"

    def test_not_like(self):
        condition = build_condition(
            Comparison.NOT_LIKE, users.c.name, bindparam("p", "%a%"), case_insensitive=False
        )
        assert str(condition) == "users.name NOT LIKE :p"

    def test_like_with_escape(self):
        condition = build_condition(
            Comparison.LIKE,
            users.c.name,
            bindparam("p", "%a%"),
            case_insensitive=False,
            escape="\\",
        )
        assert "ESCAPE" in str(condition)

    def test_like_on_integer_column_casts_to_text(self):
        condition = build_condition(Comparison.LIKE, users.c.age, bindparam("p", "3%"))
        assert "CAST(users.age AS VARCHAR)" in str(condition)

    def test_in(self):
        condition = build_condition(
            Comparison.IN, users.c.age, bindparam("p", [1, 2], expanding=True)
        )
        assert "users.age IN" in str(condition)

    def test_not_in(self):
        condition = build_condition(
            Comparison.NOT_IN, users.c.age, bindparam("p", [1, 2], expanding=True)
        )
        assert "users.age NOT IN" in str(condition)


class TestStringColumns:
    """Pattern comparisons cast non-string columns to text."""

    @pytest.fixture
    def table(self):
        return Table(
            "labels",
            MetaData(),
            Column("id", Integer, primary_key=True),
            Column("name", String(20)),
            Column("status", SAEnum("active", "inactive", name="labelstatus")),
        )

    def test_is_string_column(self, table):
        assert _is_string_column(table.c.name) is True
        assert _is_string_column(table.c.id) is False

    def test_is_string_column_enum_returns_false(self, table):
        """Enum columns are not treated as strings."""
        assert _is_string_column(table.c.status) is False

    def test_like_on_enum_column_casts_to_text(self, table):
        condition = build_condition(Comparison.LIKE, table.c.status, bindparam("p", "%act%"))
        assert "CAST" in str(condition).upper()

    def test_like_on_string_column_no_cast(self, table):
        condition = build_condition(Comparison.LIKE, table.c.name, bindparam("p", "%a%"))
        assert "CAST" not in str(condition).upper()
