"""Backend adapter contract shared by the ORM and Core backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from sqlalchemy import ColumnElement, Select, bindparam
from sqlalchemy.sql.elements import BindParameter

from fastapi_rqc.models import SortDirection


@dataclass(frozen=True)
class RelationInfo:
    """
    Schema metadata describing one relation of an entity.

    Attributes:
        name: Relation name as referenced in relation paths
        target: Related mapped class (ORM) or Table (Core)
        kind: One of "many_to_one", "one_to_many", "many_to_many"
        foreign_keys: Qualified foreign key columns ("table.column")
        owner_keys: Qualified columns the foreign keys point at
        join_pairs: (parent column, target column) names to join on, Core only
    """

    name: str
    target: Any
    kind: str
    foreign_keys: Tuple[str, ...] = ()
    owner_keys: Tuple[str, ...] = ()
    join_pairs: Tuple[Tuple[str, str], ...] = ()


@dataclass
class JoinedRelation:
    """
    A relation path joined into the statement under compilation.

    The root entity is represented as a JoinedRelation without relation or parent.
    """

    path: str
    alias: str
    entity: Any
    relation: Optional[RelationInfo] = None
    parent: Optional["JoinedRelation"] = field(default=None, repr=False)
    projected: bool = False

    @property
    def is_root(self) -> bool:
        return self.parent is None


class QueryBackend(ABC):
    """
    Adapter between the compiler and one style of SQLAlchemy statement.

    Statements are generative: every method returning a statement returns a new one
    and leaves its argument untouched.
    """

    name: str = "base"

    @abstractmethod
    def get_root_entity(self, query: Select) -> Optional[Any]:
        """Return the primary entity the statement selects from, or None."""

    @abstractmethod
    def get_root_alias(self, query: Select) -> Optional[str]:
        """Return the name of the primary entity, or None."""

    @abstractmethod
    def describe_relation(self, entity: Any, name: str) -> Optional[RelationInfo]:
        """Describe relation ``name`` of ``entity`` or return None if it has none."""

    @abstractmethod
    def add_left_join(
        self, query: Select, parent: JoinedRelation, relation: RelationInfo, alias: str
    ) -> Tuple[Select, Any]:
        """LEFT OUTER JOIN ``relation`` of ``parent`` as ``alias``; return the joined entity."""

    @abstractmethod
    def add_projection(self, query: Select, joined: JoinedRelation) -> Select:
        """Add the joined entity to what the statement loads."""

    @abstractmethod
    def get_column(self, entity: Any, field_name: str) -> Optional[ColumnElement[Any]]:
        """Return the column named ``field_name`` of ``entity`` or None."""

    @abstractmethod
    def list_columns(self, entity: Any) -> List[str]:
        """Return the names of the columns of ``entity``."""

    def add_predicate(self, query: Select, expression: Any) -> Select:
        return query.where(expression)

    def bind_parameter(
        self,
        name: str,
        value: Any,
        *,
        type_: Any = None,
        expanding: bool = False,
    ) -> BindParameter:
        """
        Create a named bound parameter carrying ``value``.

        Args:
            name: Parameter name, unique within the compiled statement
            value: Value bound at execution time
            type_: Optional SQL type of the value
            expanding: Bind a sequence for IN comparisons

        Returns:
            BindParameter: Parameter to use in an expression
        """
        return bindparam(name, value, type_=type_, expanding=expanding, unique=False)

    def add_ordering(
        self, query: Select, column: ColumnElement[Any], direction: SortDirection
    ) -> Select:
        return query.order_by(column.desc() if direction == SortDirection.DESC else column.asc())

    def set_limit(self, query: Select, limit: int) -> Select:
        return query.limit(limit)

    def set_offset(self, query: Select, offset: int) -> Select:
        return query.offset(offset)
