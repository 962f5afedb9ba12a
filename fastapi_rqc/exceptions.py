"""Errors raised while compiling resource options."""

from typing import Optional

from fastapi import HTTPException, status


class ResourceOptionsError(ValueError):
    """
    Base class for every resource option compilation error.

    Carries the HTTP status an API layer should answer with, so endpoints
    can translate failures into rejected requests without inspecting types.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, *, location: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.location = location

    def to_http_exception(self) -> HTTPException:
        """
        Convert the error to a FastAPI HTTPException.

        Returns:
            HTTPException: Exception carrying this error's status and detail
        """
        return HTTPException(status_code=self.status_code, detail=self.detail)


class NoRootAlias(ResourceOptionsError):
    """The statement has no identifiable root entity."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = "Unable to resolve the root alias of the query."):
        super().__init__(detail)


class InvalidFilterShape(ResourceOptionsError):
    """A filter group or filter is malformed."""


class InvalidOperator(InvalidFilterShape):
    """A filter uses an operator outside the supported set."""


class InvalidSortShape(ResourceOptionsError):
    """A sort rule is malformed."""


class InvalidIncludesShape(ResourceOptionsError):
    """The includes list is malformed."""


class InvalidPaginationShape(ResourceOptionsError):
    """Limit or page is not a non-negative integer."""


class UnresolvableRelation(ResourceOptionsError):
    """A relation path cannot be described by the schema metadata."""

    def __init__(self, relation: str, reason: Optional[str] = None):
        detail = f"Unable to resolve relation '{relation}'."
        if reason:
            detail = f"{detail} {reason}"
        super().__init__(detail, location=relation)
        self.relation = relation


class UnknownField(ResourceOptionsError):
    """A filter or sort key does not name a column (strict mode only)."""

    def __init__(self, field: str, available: Optional[list] = None):
        detail = f"Unknown field '{field}'."
        if available:
            detail = f"{detail} Available fields: {', '.join(sorted(available))}"
        super().__init__(detail, location=field)
        self.field = field
