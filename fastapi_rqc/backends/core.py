"""Backend for Core statements built from Table objects."""

import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy import ColumnElement, FromClause, Join, Select, and_

from fastapi_rqc.backends.base import JoinedRelation, QueryBackend, RelationInfo

logger = logging.getLogger(__name__)


def _base_table(entity: Any) -> Any:
    """Return the Table behind a Table or an alias of one."""
    return getattr(entity, "element", entity)


def _leftmost(from_clause: Any) -> Any:
    while isinstance(from_clause, Join):
        from_clause = from_clause.left
    return from_clause


class CoreBackend(QueryBackend):
    """
    Backend for ``select(table)`` statements.

    Relations are inferred from ForeignKey constraints. A relation name is either
    the stem of a foreign key column on the parent (``author`` for ``author_id``)
    or the name of a related table. Includes add the joined table's columns to the
    projection, labelled ``<alias>_<column>``.
    """

    name = "core"

    def get_root_entity(self, query: Select) -> Optional[Any]:
        try:
            froms = query.get_final_froms()
        except AttributeError:
            return None
        if not froms:
            return None
        root = _leftmost(froms[0])
        if not isinstance(root, FromClause) or not getattr(root, "name", None):
            return None
        return root

    def get_root_alias(self, query: Select) -> Optional[str]:
        root = self.get_root_entity(query)
        return root.name if root is not None else None

    def describe_relation(self, entity: Any, name: str) -> Optional[RelationInfo]:
        parent = _base_table(entity)
        metadata = getattr(parent, "metadata", None)
        if metadata is None:
            return None

        # many-to-one through a <name>_id foreign key column
        column = parent.c.get(f"{name}_id")
        if column is not None and column.foreign_keys:
            fk = next(iter(column.foreign_keys))
            return self._many_to_one(name, parent, [fk])

        target = metadata.tables.get(name)
        if target is None:
            return None
        outgoing = [fk for fk in parent.foreign_keys if fk.column.table is target]
        if outgoing:
            return self._many_to_one(name, parent, outgoing)
        incoming = [fk for fk in target.foreign_keys if fk.column.table is parent]
        if incoming:
            return RelationInfo(
                name=name,
                target=target,
                kind="one_to_many",
                foreign_keys=tuple(f"{target.name}.{fk.parent.name}" for fk in incoming),
                owner_keys=tuple(f"{parent.name}.{fk.column.name}" for fk in incoming),
                join_pairs=tuple((fk.column.name, fk.parent.name) for fk in incoming),
            )
        return None

    @staticmethod
    def _many_to_one(name: str, parent: Any, fks: List[Any]) -> RelationInfo:
        target = fks[0].column.table
        return RelationInfo(
            name=name,
            target=target,
            kind="many_to_one",
            foreign_keys=tuple(f"{parent.name}.{fk.parent.name}" for fk in fks),
            owner_keys=tuple(f"{target.name}.{fk.column.name}" for fk in fks),
            join_pairs=tuple((fk.parent.name, fk.column.name) for fk in fks),
        )

    def add_left_join(
        self, query: Select, parent: JoinedRelation, relation: RelationInfo, alias: str
    ) -> Tuple[Select, Any]:
        target = relation.target.alias(alias)
        onclause = and_(
            *(parent.entity.c[left] == target.c[right] for left, right in relation.join_pairs)
        )
        return query.join_from(parent.entity, target, onclause, isouter=True), target

    def add_projection(self, query: Select, joined: JoinedRelation) -> Select:
        logger.debug("Projecting columns of %s", joined.path)
        return query.add_columns(
            *(column.label(f"{joined.alias}_{column.name}") for column in joined.entity.c)
        )

    def get_column(self, entity: Any, field_name: str) -> Optional[ColumnElement[Any]]:
        if not field_name:
            return None
        return entity.c.get(field_name)

    def list_columns(self, entity: Any) -> List[str]:
        return list(entity.c.keys())
