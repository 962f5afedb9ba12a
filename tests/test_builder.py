"""Tests for OptionsBuilder fluent API."""

from datetime import datetime

import pytest
from fastapi_rqc.builder import OptionsBuilder
from fastapi_rqc.exceptions import InvalidFilterShape, InvalidPaginationShape, InvalidSortShape
from fastapi_rqc.models import FilterOperator, ResourceOptions, SortDirection


class TestOptionsBuilder:
    """Tests for OptionsBuilder class."""

    def test_empty_builder(self):
        """Test empty builder returns an empty descriptor."""
        options = OptionsBuilder().build()
        assert isinstance(options, ResourceOptions)
        assert options.is_empty()

    def test_single_eq_filter(self):
        """Test building a single EQ filter."""
        options = OptionsBuilder().where("age").eq(30).build()

        assert len(options.filter_groups) == 1
        group = options.filter_groups[0]
        assert group.or_ is False
        assert group.filters[0].key == "age"
        assert group.filters[0].operator == FilterOperator.EQ
        assert group.filters[0].value == 30
        assert group.filters[0].not_ is False

    def test_comparison_operators(self):
        """Test GT, GTE, LT, LTE operators."""
        options = (
            OptionsBuilder()
            .where("age")
            .gt(18)
            .where("score")
            .gte(90)
            .where("price")
            .lt(100)
            .where("quantity")
            .lte(50)
            .build()
        )

        filters = options.filter_groups[0].filters
        assert [f.operator for f in filters] == [
            FilterOperator.GT,
            FilterOperator.GTE,
            FilterOperator.LT,
            FilterOperator.LTE,
        ]
        assert [f.value for f in filters] == [18, 90, 100, 50]

    def test_text_match_operators(self):
        """Test starts_with, ends_with, contains operators."""
        options = (
            OptionsBuilder()
            .where("name")
            .starts_with("John")
            .where("email")
            .ends_with("@example.com")
            .where("description")
            .contains("important")
            .build()
        )

        filters = options.filter_groups[0].filters
        assert filters[0].operator == FilterOperator.SW
        assert filters[0].value == "John"
        assert filters[1].operator == FilterOperator.EW
        assert filters[1].value == "@example.com"
        assert filters[2].operator == FilterOperator.CT
        assert filters[2].value == "important"

    def test_in_operator(self):
        """Test IN operator with a tuple of values."""
        options = OptionsBuilder().where("status").in_(("active", "pending")).build()

        f = options.filter_groups[0].filters[0]
        assert f.operator == FilterOperator.IN
        assert f.value == ["active", "pending"]

    def test_in_rejects_empty(self):
        """Test an empty IN list fails with the filter shape error."""
        builder = OptionsBuilder().where("id").in_([])
        with pytest.raises(InvalidFilterShape, match="filter_groups.0.filters.0"):
            builder.build()

    def test_invalid_pagination(self):
        with pytest.raises(InvalidPaginationShape):
            OptionsBuilder().limit(-1).build()

    def test_empty_key(self):
        with pytest.raises(InvalidSortShape):
            OptionsBuilder().sort_by("").build()

    def test_null_operators(self):
        """Test IS NULL and IS NOT NULL."""
        options = (
            OptionsBuilder().where("deleted_at").is_null().where_not("created_at").is_null().build()
        )

        filters = options.filter_groups[0].filters
        assert filters[0].value is None
        assert filters[0].not_ is False
        assert filters[1].value is None
        assert filters[1].not_ is True

    def test_where_not(self):
        options = OptionsBuilder().where_not("age").gt(30).build()
        f = options.filter_groups[0].filters[0]
        assert f.operator == FilterOperator.GT
        assert f.not_ is True

    def test_values_kept_as_given(self):
        """Test values are passed through without string conversion."""
        dt = datetime(2024, 1, 15, 10, 30, 0)
        options = OptionsBuilder().where("created_at").gte(dt).where("active").eq(True).build()

        filters = options.filter_groups[0].filters
        assert filters[0].value == dt
        assert filters[1].value is True

    def test_groups(self):
        """Test or_group() and and_group() start new groups."""
        options = (
            OptionsBuilder()
            .where("age")
            .gte(18)
            .or_group()
            .where("name")
            .contains("john")
            .where("email")
            .contains("john")
            .and_group()
            .where("active")
            .eq(True)
            .build()
        )

        groups = options.filter_groups
        assert [g.or_ for g in groups] == [False, True, False]
        assert [len(g.filters) for g in groups] == [1, 2, 1]

    def test_empty_groups_dropped(self):
        options = OptionsBuilder().or_group().and_group().where("a").eq(1).or_group().build()
        assert len(options.filter_groups) == 1
        assert options.filter_groups[0].or_ is False

    def test_includes_sort_and_pagination(self):
        options = (
            OptionsBuilder()
            .include("posts", "country")
            .include("posts.comments")
            .sort_by("name")
            .sort_by("age", "DESC")
            .limit(20)
            .page(2)
            .build()
        )

        assert options.includes == ["posts", "country", "posts.comments"]
        assert [(r.key, r.direction) for r in options.sort] == [
            ("name", SortDirection.ASC),
            ("age", SortDirection.DESC),
        ]
        assert options.limit == 20
        assert options.page == 2

    def test_build_returns_independent_descriptors(self):
        builder = OptionsBuilder().include("posts")
        first = builder.build()
        builder.include("country")
        assert first.includes == ["posts"]
