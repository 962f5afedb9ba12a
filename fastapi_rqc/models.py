"""Resource option descriptor models"""

from enum import StrEnum
from typing import Any, List, Mapping, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    NonNegativeInt,
    ValidationError,
    field_validator,
    model_validator,
)

from fastapi_rqc.exceptions import (
    InvalidFilterShape,
    InvalidIncludesShape,
    InvalidOperator,
    InvalidPaginationShape,
    InvalidSortShape,
    ResourceOptionsError,
)


class FilterOperator(StrEnum):
    """Filter operators"""

    EQ = "eq"  # equals (=), IS NULL for null-like values
    CT = "ct"  # contains (%value%)
    SW = "sw"  # starts with (value%)
    EW = "ew"  # ends with (%value)
    GT = "gt"  # greater than (>)
    LT = "lt"  # less than (<)
    GTE = "gte"  # greater than or equal (>=)
    LTE = "lte"  # less than or equal (<=)
    IN = "in"  # IN (...)


class SortDirection(StrEnum):
    """Sorting directions"""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, raw: Any) -> "SortDirection":
        """
        Parse a direction case-insensitively.

        Args:
            raw: Direction as supplied by the caller

        Returns:
            SortDirection: Parsed direction, ASC for anything unrecognized
        """
        if isinstance(raw, SortDirection):
            return raw
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                pass
        return cls.ASC


class Filter(BaseModel):
    """A single filter predicate."""

    key: str = Field(min_length=1)
    operator: FilterOperator = FilterOperator.EQ
    value: Any
    not_: bool = Field(default=False, validation_alias=AliasChoices("not", "not_"))

    @field_validator("operator", mode="before")
    @classmethod
    def _default_operator(cls, v: Any) -> Any:
        if v is None or v == "":
            return FilterOperator.EQ
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def _check_value(self) -> "Filter":
        if self.operator in (FilterOperator.CT, FilterOperator.SW, FilterOperator.EW):
            if self.value is None:
                raise ValueError(f"operator '{self.operator.value}' needs a value")
            return self
        if self.operator is not FilterOperator.IN:
            return self
        if isinstance(self.value, str):
            empty = not any(item.strip() for item in self.value.split(","))
        elif isinstance(self.value, (list, tuple, set, frozenset)):
            empty = len(self.value) == 0
        else:
            raise ValueError("operator 'in' needs a list of values")
        if empty:
            raise ValueError("operator 'in' needs at least one value")
        return self


class FilterGroup(BaseModel):
    """
    A group of filters combined with a single boolean operator.

    Filters inside the group are OR'd when ``or_`` is set and AND'd otherwise.
    Groups are always AND'd with each other.

    Example:
        # Match rows where name OR email contains "john"
        FilterGroup(or_=True, filters=[
            Filter(key="name", operator=FilterOperator.CT, value="john"),
            Filter(key="email", operator=FilterOperator.CT, value="john"),
        ])
    """

    or_: bool = Field(default=False, validation_alias=AliasChoices("or", "or_"))
    filters: List[Filter]


class SortRule(BaseModel):
    """Sort rule model"""

    key: str = Field(min_length=1)
    direction: SortDirection = SortDirection.ASC

    @model_validator(mode="before")
    @classmethod
    def _from_bare_key(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"key": data}
        return data

    @field_validator("direction", mode="before")
    @classmethod
    def _parse_direction(cls, v: Any) -> SortDirection:
        return SortDirection.parse(v)


class ResourceOptions(BaseModel):
    """
    Declarative description of a list query.

    Every part is optional; an empty descriptor compiles to the unchanged query.
    """

    includes: List[str] = Field(default_factory=list)
    filter_groups: List[FilterGroup] = Field(
        default_factory=list,
        validation_alias=AliasChoices("filter_groups", "filterGroups"),
    )
    sort: List[SortRule] = Field(default_factory=list)
    limit: Optional[NonNegativeInt] = None
    page: Optional[NonNegativeInt] = None

    @field_validator("includes")
    @classmethod
    def _check_includes(cls, v: List[str]) -> List[str]:
        includes = [include.strip() for include in v]
        if any(not include for include in includes):
            raise ValueError("includes must be non-empty relation paths")
        return includes

    def is_empty(self) -> bool:
        """Whether the descriptor requests nothing at all."""
        return (
            not self.includes
            and not self.filter_groups
            and not self.sort
            and self.limit is None
            and self.page is None
        )

    @classmethod
    def parse(
        cls, raw: Union["ResourceOptions", Mapping[str, Any], None]
    ) -> "ResourceOptions":
        """
        Validate a raw descriptor at the boundary.

        Args:
            raw: Mapping as received from the caller, an existing instance or None

        Returns:
            ResourceOptions: Validated descriptor

        Raises:
            ResourceOptionsError: Subclass matching the part of the descriptor that failed
        """
        if raw is None:
            return cls()
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, Mapping):
            raise ResourceOptionsError("Resource options must be a mapping.")
        try:
            return cls.model_validate(dict(raw))
        except ValidationError as e:
            raise _translate_validation_error(e) from e


_FILTER_LOCATIONS = {"filter_groups", "filterGroups"}


def _translate_validation_error(exc: ValidationError) -> ResourceOptionsError:
    """
    Map the first pydantic error to the matching resource option error.

    Args:
        exc: Validation error raised by ResourceOptions.model_validate

    Returns:
        ResourceOptionsError: Error to raise to the caller
    """
    error = exc.errors()[0]
    loc = tuple(error.get("loc", ()))
    location = ".".join(str(part) for part in loc)
    detail = f"Invalid resource options at '{location}': {error.get('msg')}"
    head = loc[0] if loc else None

    if head == "includes":
        return InvalidIncludesShape(detail, location=location)
    if head in _FILTER_LOCATIONS:
        if loc[-1] == "operator":
            return InvalidOperator(
                f"Invalid operator {error.get('input')!r} at '{location}'. "
                f"Supported operators: {', '.join(op.value for op in FilterOperator)}",
                location=location,
            )
        return InvalidFilterShape(detail, location=location)
    if head == "sort":
        return InvalidSortShape(detail, location=location)
    if head in ("limit", "page"):
        return InvalidPaginationShape(detail, location=location)
    return ResourceOptionsError(detail, location=location)
