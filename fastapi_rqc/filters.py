"""Filter compiler: turns filter groups into bound, boolean-grouped predicates."""

import logging
from datetime import date, datetime
from typing import Any, List, Optional, Sequence, Tuple

from dateutil.parser import parse
from sqlalchemy import ColumnElement, Select, and_, or_

from fastapi_rqc.config import CompilerConfig
from fastapi_rqc.exceptions import InvalidFilterShape
from fastapi_rqc.handlers import HandlerKind, HandlerRegistry
from fastapi_rqc.joins import CompilationContext
from fastapi_rqc.models import Filter, FilterGroup, FilterOperator
from fastapi_rqc.operators import (
    NULL_COMPARISONS,
    PATTERN_ESCAPE,
    PATTERN_TEMPLATES,
    build_condition,
    resolve_for_value,
    wrap_pattern,
)

logger = logging.getLogger(__name__)


def _column_type(column: ColumnElement[Any]) -> Optional[type]:
    try:
        return getattr(column.type, "python_type", None)
    except (AttributeError, NotImplementedError):
        return None


def _coerce_value(column: ColumnElement[Any], raw: Any, pytype: Optional[type] = None) -> Any:
    """
    Coerce a raw string value to the column's Python type.

    Non-string values are passed through untouched; values that do not parse
    are returned as-is and left to the database driver.

    Args:
        column: SQLAlchemy column element
        raw: Raw value
        pytype: Optional pre-fetched python type

    Returns:
        Any: Coerced value
    """
    if not isinstance(raw, str):
        return raw
    if pytype is None:
        pytype = _column_type(column)
    if pytype is None or pytype is str:
        return raw
    if pytype is bool:
        val = raw.strip().lower()
        if val in {"true", "1", "t", "yes", "y"}:
            return True
        if val in {"false", "0", "f", "no", "n"}:
            return False
        return raw
    if pytype is int:
        try:
            return int(raw)
        except ValueError:
            try:
                return int(float(raw))
            except ValueError:
                return raw
    if pytype is datetime:
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            try:
                return parse(raw)
            except (ValueError, OverflowError):
                return raw
    if pytype is date:
        try:
            return date.fromisoformat(raw)
        except ValueError:
            try:
                return parse(raw).date()
            except (ValueError, OverflowError):
                return raw
    try:
        return pytype(raw)
    except (TypeError, ValueError):
        return raw


def _split_values(raw: str) -> List[str]:
    """
    Split comma-separated values.

    Args:
        raw: Raw string of comma-separated values

    Returns:
        List[str]: List of stripped, non-empty values
    """
    return [item.strip() for item in raw.split(",") if item.strip()]


def _in_values(f: Filter) -> Sequence[Any]:
    """
    Normalize the value of an ``in`` filter to a non-empty list.

    Raises:
        InvalidFilterShape: If the value is not a sequence or is empty
    """
    value = f.value
    if isinstance(value, str):
        values = _split_values(value)
    elif isinstance(value, (list, tuple, set, frozenset)):
        values = list(value)
    else:
        raise InvalidFilterShape(
            f"Filter on '{f.key}' with operator 'in' needs a list of values.", location=f.key
        )
    if not values:
        raise InvalidFilterShape(
            f"Filter on '{f.key}' with operator 'in' needs at least one value.", location=f.key
        )
    return values


def _check_no_predicate(before: Select, after: Select, key: str) -> None:
    """
    Reject a handler statement that added WHERE criteria inside an OR group.

    Criteria added to the statement would be AND'd with the whole group.
    """
    changed = (before.whereclause is None) != (after.whereclause is None) or (
        after.whereclause is not None and not after.whereclause.compare(before.whereclause)
    )
    if changed:
        raise TypeError(
            f"Custom filter handler for '{key}' is in an OR group and must return a "
            "condition instead of a filtered statement."
        )


class FilterCompiler:
    """
    Compiles filter groups into WHERE clauses.

    Filters inside a group are OR'd or AND'd according to the group; every group
    becomes its own WHERE clause, so groups are always AND'd together. Values are
    bound to generated parameters, never rendered into the SQL text.
    """

    def __init__(
        self,
        config: Optional[CompilerConfig] = None,
        handlers: Optional[HandlerRegistry] = None,
    ):
        """
        Initialize FilterCompiler.

        Args:
            config: Compiler configuration
            handlers: Custom handlers taking precedence over generic compilation
        """
        self.config = config or CompilerConfig()
        self.handlers = handlers or HandlerRegistry()

    def build_filter_condition(
        self, column: ColumnElement[Any], f: Filter, context: CompilationContext
    ) -> Any:
        """
        Build the predicate of one filter.

        Args:
            column: Resolved, fully qualified column
            f: Filter to compile
            context: Current compilation context (parameter names, backend)

        Returns:
            Any: SQLAlchemy boolean expression
        """
        comparison = resolve_for_value(f.operator, f.not_, f.value)
        if comparison in NULL_COMPARISONS:
            return build_condition(comparison, column)

        backend = context.backend
        name = context.next_parameter_name()

        if f.operator in PATTERN_TEMPLATES:
            escape = PATTERN_ESCAPE if self.config.escape_patterns else None
            param = backend.bind_parameter(name, wrap_pattern(f.operator, f.value, escape))
            return build_condition(
                comparison,
                column,
                param,
                case_insensitive=self.config.case_insensitive_patterns,
                escape=escape,
            )

        pytype = _column_type(column)
        if f.operator is FilterOperator.IN:
            values = [_coerce_value(column, v, pytype) for v in _in_values(f)]
            param = backend.bind_parameter(name, values, type_=column.type, expanding=True)
        else:
            value = _coerce_value(column, f.value, pytype)
            param = backend.bind_parameter(name, value, type_=column.type)
        return build_condition(comparison, column, param)

    def _dispatch(
        self, query: Select, f: Filter, context: CompilationContext
    ) -> Optional[Tuple[Select, Any]]:
        ref = self.handlers.resolve(HandlerKind.FILTER, context.handler_key(f.key))
        if ref is None:
            return None
        if ref.join:
            query = context.joins.join_for_handler(query, f.key, with_select=False)
        logger.debug("Filtering '%s' with custom handler", f.key)
        target = context.joins.handler_target(f.key).entity
        return query, ref(query, f.operator, f.value, f.not_, target=target)

    def compile(
        self,
        query: Select,
        filter_groups: Optional[List[FilterGroup]],
        context: CompilationContext,
    ) -> Select:
        """
        Apply filter groups to a statement.

        Args:
            query: Statement under compilation
            filter_groups: Filter groups to apply
            context: Current compilation context

        Returns:
            Select: Statement with the filters applied

        Raises:
            InvalidFilterShape: If a filter cannot be compiled
            UnresolvableRelation: If a filter key refers to an unknown relation
            UnknownField: If strict mode is on and a key names no column
        """
        if not filter_groups:
            return query

        for group in filter_groups:
            conditions = []
            for f in group.filters:
                dispatched = self._dispatch(query, f, context)
                if dispatched is not None:
                    query, handled = dispatched
                    if isinstance(handled, Select):
                        if group.or_ and len(group.filters) > 1:
                            _check_no_predicate(query, handled, f.key)
                        query = handled
                    else:
                        conditions.append(handled)
                    continue

                query, column = context.joins.resolve_field(query, f.key, with_select=False)
                if column is None:
                    continue
                conditions.append(self.build_filter_condition(column, f, context))

            if conditions:
                combined = or_(*conditions) if group.or_ else and_(*conditions)
                query = context.backend.add_predicate(query, combined)

        return query
