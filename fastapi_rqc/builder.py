"""OptionsBuilder API for creating resource options with a fluent interface."""

from typing import Any, Dict, List, Optional, Sequence

from fastapi_rqc.models import FilterOperator, ResourceOptions, SortDirection


class FieldBuilder:
    """
    Builder for a single field's filter.

    Provides a fluent interface for adding one filter on a field to the current
    group of an OptionsBuilder.
    """

    def __init__(self, options_builder: "OptionsBuilder", key: str, negated: bool = False):
        """
        Initialize FieldBuilder.

        Args:
            options_builder: Parent OptionsBuilder instance
            key: Field key to filter on
            negated: Whether the filter is negated
        """
        self._options_builder = options_builder
        self._key = key
        self._negated = negated

    def _add_filter(self, operator: FilterOperator, value: Any) -> "OptionsBuilder":
        """Add a filter and return the parent builder."""
        self._options_builder._current_group()["filters"].append(
            {"key": self._key, "operator": operator, "value": value, "not": self._negated}
        )
        return self._options_builder

    def eq(self, value: Any) -> "OptionsBuilder":
        """
        Equal to (=), or IS NULL when the value is None.

        Args:
            value: Value to compare against

        Returns:
            OptionsBuilder: Parent builder for chaining
        """
        return self._add_filter(FilterOperator.EQ, value)

    def is_null(self) -> "OptionsBuilder":
        """IS NULL (IS NOT NULL when negated)."""
        return self._add_filter(FilterOperator.EQ, None)

    def gt(self, value: Any) -> "OptionsBuilder":
        """Greater than (>)."""
        return self._add_filter(FilterOperator.GT, value)

    def gte(self, value: Any) -> "OptionsBuilder":
        """Greater than or equal to (>=)."""
        return self._add_filter(FilterOperator.GTE, value)

    def lt(self, value: Any) -> "OptionsBuilder":
        """Less than (<)."""
        return self._add_filter(FilterOperator.LT, value)

    def lte(self, value: Any) -> "OptionsBuilder":
        """Less than or equal to (<=)."""
        return self._add_filter(FilterOperator.LTE, value)

    def contains(self, value: str) -> "OptionsBuilder":
        """
        Pattern match anywhere in the field (%value%).

        Args:
            value: Substring to look for, wildcards are matched literally

        Returns:
            OptionsBuilder: Parent builder for chaining
        """
        return self._add_filter(FilterOperator.CT, value)

    def starts_with(self, value: str) -> "OptionsBuilder":
        """Pattern match at the start of the field (value%)."""
        return self._add_filter(FilterOperator.SW, value)

    def ends_with(self, value: str) -> "OptionsBuilder":
        """Pattern match at the end of the field (%value)."""
        return self._add_filter(FilterOperator.EW, value)

    def in_(self, values: Sequence[Any]) -> "OptionsBuilder":
        """
        IN list of values.

        Args:
            values: Non-empty list of values to match against

        Returns:
            OptionsBuilder: Parent builder for chaining
        """
        return self._add_filter(FilterOperator.IN, list(values))


class OptionsBuilder:
    """
    Fluent builder for ResourceOptions.

    Filters go to the current group; or_group() and and_group() start a new one.
    Groups are AND'd together when compiled.

    Example:
        options = (
            OptionsBuilder()
            .include("posts")
            .where("age").gte(18)
            .where_not("email").is_null()
            .or_group()
            .where("name").contains("john")
            .where("posts.title").contains("john")
            .sort_by("name")
            .limit(20)
            .page(2)
            .build()
        )
    """

    def __init__(self):
        self._includes: List[str] = []
        self._groups: List[Dict[str, Any]] = []
        self._sort: List[Dict[str, Any]] = []
        self._limit: Optional[int] = None
        self._page: Optional[int] = None

    def _current_group(self) -> Dict[str, Any]:
        if not self._groups:
            self._groups.append({"or": False, "filters": []})
        return self._groups[-1]

    def include(self, *relations: str) -> "OptionsBuilder":
        """Eagerly join and load relation paths."""
        self._includes.extend(relations)
        return self

    def where(self, key: str) -> FieldBuilder:
        """
        Start a filter on a field in the current group.

        Args:
            key: Field key, ``field`` or ``relation.field``

        Returns:
            FieldBuilder: Builder to pick the operator with
        """
        return FieldBuilder(self, key)

    def where_not(self, key: str) -> FieldBuilder:
        """Start a negated filter on a field in the current group."""
        return FieldBuilder(self, key, negated=True)

    def or_group(self) -> "OptionsBuilder":
        """Start a new group whose filters are OR'd."""
        self._groups.append({"or": True, "filters": []})
        return self

    def and_group(self) -> "OptionsBuilder":
        """Start a new group whose filters are AND'd."""
        self._groups.append({"or": False, "filters": []})
        return self

    def sort_by(self, key: str, direction: Any = SortDirection.ASC) -> "OptionsBuilder":
        """Append a sort rule."""
        self._sort.append({"key": key, "direction": direction})
        return self

    def limit(self, limit: int) -> "OptionsBuilder":
        self._limit = limit
        return self

    def page(self, page: int) -> "OptionsBuilder":
        self._page = page
        return self

    def build(self) -> ResourceOptions:
        """
        Build the ResourceOptions.

        Returns:
            ResourceOptions: Descriptor without empty groups

        Raises:
            ResourceOptionsError: If a part of the descriptor is invalid
        """
        return ResourceOptions.parse(
            {
                "includes": list(self._includes),
                "filter_groups": [group for group in self._groups if group["filters"]],
                "sort": list(self._sort),
                "limit": self._limit,
                "page": self._page,
            }
        )
