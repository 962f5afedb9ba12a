"""Resource option compiler: the entry point turning descriptors into statements."""

import logging
from typing import Any, List, Mapping, Optional, Union

from sqlalchemy import Select

from fastapi_rqc.backends import QueryBackend, detect_backend
from fastapi_rqc.config import CompilerConfig
from fastapi_rqc.exceptions import NoRootAlias
from fastapi_rqc.filters import FilterCompiler
from fastapi_rqc.handlers import HandlerRegistry
from fastapi_rqc.joins import CompilationContext
from fastapi_rqc.models import ResourceOptions
from fastapi_rqc.sorting import SortCompiler

logger = logging.getLogger(__name__)

OptionsInput = Union[ResourceOptions, Mapping[str, Any], None]


class ResourceOptionCompiler:
    """
    Compiles resource options into a SQLAlchemy statement.

    Stages run in a fixed order: resolve the root alias, apply includes, filters,
    sorting and pagination. Each stage is skipped when its part of the descriptor
    is absent.

    The compiler holds configuration and custom handlers only; all per-statement
    state lives in a CompilationContext created for each call, so one instance can
    serve concurrent requests.

    Subclasses act as repositories: methods named ``filter_<field>`` and
    ``sort_<field>`` are discovered as custom handlers.

    Example:
        class UserCompiler(ResourceOptionCompiler):
            def filter_country(self, query, operator, value, negated, target):
                return target.name == value

        @app.get("/users/")
        def read_users(options: ResourceOptionsDep, session: SessionDep):
            stmt = UserCompiler().apply_resource_options(select(User), options)
            return session.exec(stmt).all()
    """

    def __init__(
        self,
        backend: Optional[QueryBackend] = None,
        config: Optional[CompilerConfig] = None,
        handlers: Optional[HandlerRegistry] = None,
    ):
        """
        Initialize ResourceOptionCompiler.

        Args:
            backend: Backend adapter; None picks one per statement
            config: Compiler configuration
            handlers: Extra custom handlers, overriding discovered ones
        """
        self.backend = backend
        self.config = config or CompilerConfig()

        registry = HandlerRegistry()
        if self.config.discover_handlers:
            registry.update(HandlerRegistry.from_object(self))
        if handlers is not None:
            registry.update(handlers)
        self.handlers = registry

        self.filter_compiler = FilterCompiler(self.config, self.handlers)
        self.sort_compiler = SortCompiler(self.config, self.handlers)

    def get_backend(self, query: Select) -> QueryBackend:
        return self.backend or detect_backend(query)

    def create_context(self, query: Select) -> CompilationContext:
        """
        Resolve the root alias of a statement and create a fresh compilation context.

        Raises:
            NoRootAlias: If the statement has no identifiable root entity
        """
        backend = self.get_backend(query)
        root_alias = backend.get_root_alias(query)
        if not root_alias:
            raise NoRootAlias()
        root_entity = backend.get_root_entity(query)
        logger.debug("Compiling resource options against root '%s' (%s)", root_alias, backend.name)
        return CompilationContext.create(backend, self.config, root_alias, root_entity)

    def apply_includes(
        self, query: Select, includes: List[str], context: CompilationContext
    ) -> Select:
        """Join and load every included relation path."""
        for include in includes:
            query, _ = context.joins.ensure_joined(query, include, with_select=True)
        return query

    def apply_pagination(
        self,
        query: Select,
        limit: Optional[int],
        page: Optional[int],
        backend: QueryBackend,
    ) -> Select:
        """
        Apply limit and offset.

        The offset is ``(page - 1) * limit`` and is only applied together with a limit.
        """
        limit = self.config.validate_limit(limit)
        if limit is None:
            return query
        query = backend.set_limit(query, limit)
        page = self.config.validate_page(page)
        if page is not None:
            offset = (page - 1) * limit
            query = backend.set_offset(query, offset)
            logger.debug("Paginating with limit %s offset %s", limit, offset)
        return query

    def apply_resource_options(self, query: Select, options: OptionsInput = None) -> Select:
        """
        Compile resource options into a statement.

        Args:
            query: Base statement selecting the root entity
            options: ResourceOptions or a raw mapping validated on the way in

        Returns:
            Select: New statement; the given statement is never modified

        Raises:
            ResourceOptionsError: Subclass describing why compilation failed
        """
        options = ResourceOptions.parse(options)
        if options.is_empty():
            return self.apply_pagination(query, None, None, self.get_backend(query))

        context = self.create_context(query)
        query = self.apply_includes(query, options.includes, context)
        query = self.filter_compiler.compile(query, options.filter_groups, context)
        query = self.sort_compiler.compile(query, options.sort, context)
        return self.apply_pagination(query, options.limit, options.page, context.backend)


def apply_resource_options(
    query: Select,
    options: OptionsInput = None,
    *,
    backend: Optional[QueryBackend] = None,
    config: Optional[CompilerConfig] = None,
    handlers: Optional[HandlerRegistry] = None,
) -> Select:
    """
    Compile resource options with a one-off compiler.

    Args:
        query: Base statement selecting the root entity
        options: ResourceOptions or a raw mapping
        backend: Backend adapter; None picks one from the statement
        config: Compiler configuration
        handlers: Custom handlers

    Returns:
        Select: Compiled statement
    """
    compiler = ResourceOptionCompiler(backend=backend, config=config, handlers=handlers)
    return compiler.apply_resource_options(query, options)
