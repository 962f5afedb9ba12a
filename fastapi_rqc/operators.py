"""Operator table: maps filter operators and negation to SQL comparisons."""

from enum import StrEnum
from typing import Any, Callable, Dict, Optional

from sqlalchemy import ColumnElement, String, cast, not_
from sqlalchemy import Enum as SAEnum
from sqlalchemy.sql.elements import BindParameter

from fastapi_rqc.exceptions import InvalidOperator
from fastapi_rqc.models import FilterOperator


class Comparison(StrEnum):
    """Comparison semantics a filter compiles to."""

    EQ = "eq"
    NE = "ne"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    LIKE = "like"
    NOT_LIKE = "not_like"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    IN = "in"
    NOT_IN = "not_in"


# (plain, negated); negated comparisons mirror the comparator direction
OPERATOR_TABLE: Dict[FilterOperator, tuple[Comparison, Comparison]] = {
    FilterOperator.EQ: (Comparison.EQ, Comparison.NE),
    FilterOperator.CT: (Comparison.LIKE, Comparison.NOT_LIKE),
    FilterOperator.SW: (Comparison.LIKE, Comparison.NOT_LIKE),
    FilterOperator.EW: (Comparison.LIKE, Comparison.NOT_LIKE),
    FilterOperator.GT: (Comparison.GT, Comparison.LT),
    FilterOperator.LT: (Comparison.LT, Comparison.GT),
    FilterOperator.GTE: (Comparison.GTE, Comparison.LTE),
    FilterOperator.LTE: (Comparison.LTE, Comparison.GTE),
    FilterOperator.IN: (Comparison.IN, Comparison.NOT_IN),
}

PATTERN_TEMPLATES: Dict[FilterOperator, str] = {
    FilterOperator.CT: "%{}%",  # contains
    FilterOperator.SW: "{}%",  # starts with
    FilterOperator.EW: "%{}",  # ends with
}

PATTERN_ESCAPE = "\\"

NULL_COMPARISONS = frozenset({Comparison.IS_NULL, Comparison.IS_NOT_NULL})


def _to_operator(operator: Any) -> FilterOperator:
    if isinstance(operator, FilterOperator):
        return operator
    try:
        return FilterOperator(str(operator).strip().lower())
    except ValueError as e:
        raise InvalidOperator(
            f"Invalid operator {operator!r}. "
            f"Supported operators: {', '.join(op.value for op in FilterOperator)}"
        ) from e


def resolve(operator: Any, negated: bool = False) -> Comparison:
    """
    Resolve an operator and negation flag to a comparison.

    Args:
        operator: FilterOperator or its string value
        negated: Whether the filter is negated

    Returns:
        Comparison: Comparison the filter compiles to

    Raises:
        InvalidOperator: If the operator is unknown
    """
    plain, negative = OPERATOR_TABLE[_to_operator(operator)]
    return negative if negated else plain


def is_null_value(value: Any) -> bool:
    """
    Check whether a filter value stands for NULL.

    None, the empty string and the string "null" (any case) are null-like.
    Numbers and booleans never are.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value == "" or value.strip().lower() == "null"
    return False


def resolve_for_value(operator: Any, negated: bool, value: Any) -> Comparison:
    """
    Resolve a comparison taking the null short-circuit of ``eq`` into account.

    Args:
        operator: FilterOperator or its string value
        negated: Whether the filter is negated
        value: Raw filter value

    Returns:
        Comparison: IS NULL / IS NOT NULL for null-like ``eq`` values, else resolve()
    """
    op = _to_operator(operator)
    if op is FilterOperator.EQ and is_null_value(value):
        return Comparison.IS_NOT_NULL if negated else Comparison.IS_NULL
    return resolve(op, negated)


def escape_like(value: str, escape: str = PATTERN_ESCAPE) -> str:
    """Escape LIKE wildcards so they match literally."""
    return (
        value.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


def wrap_pattern(operator: Any, value: Any, escape: Optional[str] = None) -> str:
    """
    Wrap a value in the LIKE pattern of a pattern operator.

    Args:
        operator: One of ct, sw, ew
        value: Raw value
        escape: Escape character; wildcards in the value are escaped when given

    Returns:
        str: LIKE pattern
    """
    raw = str(value)
    if escape:
        raw = escape_like(raw, escape)
    return PATTERN_TEMPLATES[_to_operator(operator)].format(raw)


def _is_string_column(col: ColumnElement[Any]) -> bool:
    """
    Check if a column has a string type suitable for LIKE.

    Enum columns are excluded since PostgreSQL enums have no LIKE operator.
    """
    col_type = getattr(col, "type", None)
    return isinstance(col_type, String) and not isinstance(col_type, SAEnum)


def _pattern_target(column: ColumnElement[Any]) -> ColumnElement[Any]:
    if _is_string_column(column):
        return column
    return cast(column, String)


# --- Strategy functions for each comparison ---

ConditionStrategyFn = Callable[[ColumnElement[Any], Optional[BindParameter]], Any]


def _strategy_eq(column: ColumnElement[Any], param: Optional[BindParameter]) -> Any:
    return column == param


def _strategy_ne(column: ColumnElement[Any], param: Optional[BindParameter]) -> Any:
    return column != param


def _strategy_is_null(column: ColumnElement[Any], param: Optional[BindParameter]) -> Any:
    return column.is_(None)


def _strategy_is_not_null(column: ColumnElement[Any], param: Optional[BindParameter]) -> Any:
    return column.is_not(None)


def _strategy_gt(column: ColumnElement[Any], param: Optional[BindParameter]) -> Any:
    return column > param


def _strategy_lt(column: ColumnElement[Any], param: Optional[BindParameter]) -> Any:
    return column < param


def _strategy_gte(column: ColumnElement[Any], param: Optional[BindParameter]) -> Any:
    return column >= param


def _strategy_lte(column: ColumnElement[Any], param: Optional[BindParameter]) -> Any:
    return column <= param


def _strategy_in(column: ColumnElement[Any], param: Optional[BindParameter]) -> Any:
    return column.in_(param)


def _strategy_not_in(column: ColumnElement[Any], param: Optional[BindParameter]) -> Any:
    return column.not_in(param)


CONDITION_STRATEGIES: Dict[Comparison, ConditionStrategyFn] = {
    Comparison.EQ: _strategy_eq,
    Comparison.NE: _strategy_ne,
    Comparison.IS_NULL: _strategy_is_null,
    Comparison.IS_NOT_NULL: _strategy_is_not_null,
    Comparison.GT: _strategy_gt,
    Comparison.LT: _strategy_lt,
    Comparison.GTE: _strategy_gte,
    Comparison.LTE: _strategy_lte,
    Comparison.IN: _strategy_in,
    Comparison.NOT_IN: _strategy_not_in,
}


def build_condition(
    comparison: Comparison,
    column: ColumnElement[Any],
    param: Optional[BindParameter] = None,
    *,
    case_insensitive: bool = True,
    escape: Optional[str] = None,
) -> Any:
    """
    Build the SQL expression for a resolved comparison.

    Args:
        comparison: Resolved comparison
        column: Fully qualified column to compare
        param: Bound parameter holding the value (unused for NULL checks)
        case_insensitive: Use ILIKE instead of LIKE for pattern comparisons
        escape: Escape character declared on LIKE expressions

    Returns:
        Any: SQLAlchemy boolean expression
    """
    if comparison in (Comparison.LIKE, Comparison.NOT_LIKE):
        target = _pattern_target(column)
        if case_insensitive:
            condition = target.ilike(param, escape=escape)
        else:
            condition = target.like(param, escape=escape)
        return not_(condition) if comparison is Comparison.NOT_LIKE else condition
    return CONDITION_STRATEGIES[comparison](column, param)
