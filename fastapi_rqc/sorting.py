"""Sort compiler for applying ordering to statements."""

import logging
from typing import List, Optional

from sqlalchemy import Select

from fastapi_rqc.config import CompilerConfig
from fastapi_rqc.exceptions import InvalidSortShape
from fastapi_rqc.handlers import HandlerKind, HandlerRegistry
from fastapi_rqc.joins import CompilationContext
from fastapi_rqc.models import SortRule

logger = logging.getLogger(__name__)


class SortCompiler:
    """
    Compiler for ORDER BY clauses.

    Handles key qualification, joins for relation-qualified keys and custom sort
    handlers.
    """

    def __init__(
        self,
        config: Optional[CompilerConfig] = None,
        handlers: Optional[HandlerRegistry] = None,
    ):
        self.config = config or CompilerConfig()
        self.handlers = handlers or HandlerRegistry()

    def compile(
        self,
        query: Select,
        sort_rules: Optional[List[SortRule]],
        context: CompilationContext,
    ) -> Select:
        """
        Apply sort rules to a statement, in order.

        Args:
            query: Statement under compilation
            sort_rules: Sort rules to apply
            context: Current compilation context

        Returns:
            Select: Statement with the ordering applied

        Raises:
            InvalidSortShape: If a rule has no key
            UnknownField: If strict mode is on and a key names no column
        """
        if not sort_rules:
            return query

        for rule in sort_rules:
            if not rule.key or not rule.key.strip():
                raise InvalidSortShape("Sort rule without a key.")

            ref = self.handlers.resolve(HandlerKind.SORT, context.handler_key(rule.key))
            if ref is not None:
                if ref.join:
                    query = context.joins.join_for_handler(query, rule.key, with_select=True)
                logger.debug("Sorting '%s' with custom handler", rule.key)
                target = context.joins.handler_target(rule.key).entity
                query = ref(query, rule.direction, target=target)
                continue

            query, column = context.joins.resolve_field(query, rule.key, with_select=True)
            if column is None:
                continue
            query = context.backend.add_ordering(query, column, rule.direction)

        return query
