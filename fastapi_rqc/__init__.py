"""fastapi-rqc: compile declarative resource options into SQLAlchemy statements."""

from . import models as models  # noqa: F401
from .backends import CoreBackend, OrmBackend, QueryBackend, RelationInfo  # noqa: F401
from .builder import FieldBuilder, OptionsBuilder  # noqa: F401
from .compiler import ResourceOptionCompiler, apply_resource_options  # noqa: F401
from .config import CompilerConfig, CompilerPresets  # noqa: F401
from .dependencies import ResourceOptionsDep, parse_resource_options  # noqa: F401
from .exceptions import (  # noqa: F401
    InvalidFilterShape,
    InvalidIncludesShape,
    InvalidOperator,
    InvalidPaginationShape,
    InvalidSortShape,
    NoRootAlias,
    ResourceOptionsError,
    UnknownField,
    UnresolvableRelation,
)
from .filters import FilterCompiler  # noqa: F401
from .handlers import HandlerKind, HandlerRegistry, filter_handler, sort_handler  # noqa: F401
from .joins import CompilationContext, JoinRegistry, JoinResolver  # noqa: F401
from .models import (  # noqa: F401
    Filter,
    FilterGroup,
    FilterOperator,
    ResourceOptions,
    SortDirection,
    SortRule,
)
from .operators import Comparison, resolve  # noqa: F401
from .sorting import SortCompiler  # noqa: F401

__all__ = [
    # Main class
    "ResourceOptionCompiler",
    "apply_resource_options",
    # Compilers
    "FilterCompiler",
    "SortCompiler",
    # Joins
    "CompilationContext",
    "JoinRegistry",
    "JoinResolver",
    # Backends
    "QueryBackend",
    "OrmBackend",
    "CoreBackend",
    "RelationInfo",
    # Custom handlers
    "HandlerKind",
    "HandlerRegistry",
    "filter_handler",
    "sort_handler",
    # Operators
    "Comparison",
    "resolve",
    # Builder
    "OptionsBuilder",
    "FieldBuilder",
    # Configuration
    "CompilerConfig",
    "CompilerPresets",
    # FastAPI
    "ResourceOptionsDep",
    "parse_resource_options",
    # Errors
    "ResourceOptionsError",
    "NoRootAlias",
    "InvalidFilterShape",
    "InvalidOperator",
    "InvalidSortShape",
    "InvalidIncludesShape",
    "InvalidPaginationShape",
    "UnresolvableRelation",
    "UnknownField",
    # Models
    "Filter",
    "FilterGroup",
    "FilterOperator",
    "ResourceOptions",
    "SortDirection",
    "SortRule",
    # Module
    "models",
]
