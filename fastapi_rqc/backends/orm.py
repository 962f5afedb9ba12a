"""Backend for ORM statements built from mapped classes (SQLModel / declarative)."""

import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy import ColumnElement, Select, inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import RelationshipDirection, aliased, contains_eager

from fastapi_rqc.backends.base import JoinedRelation, QueryBackend, RelationInfo

logger = logging.getLogger(__name__)

_RELATION_KINDS = {
    RelationshipDirection.MANYTOONE: "many_to_one",
    RelationshipDirection.ONETOMANY: "one_to_many",
    RelationshipDirection.MANYTOMANY: "many_to_many",
}


def _qualified(column: Any) -> str:
    table = getattr(column, "table", None)
    table_name = getattr(table, "name", None)
    return f"{table_name}.{column.name}" if table_name else str(column.name)


def _mapper_of(entity: Any) -> Optional[Any]:
    try:
        return inspect(entity).mapper
    except (NoInspectionAvailable, AttributeError):
        return None


class OrmBackend(QueryBackend):
    """
    Backend for ``select(MappedClass)`` statements.

    Relations come from ``relationship()`` metadata. Joined relations are aliased
    under their relation name, and includes are loaded with ``contains_eager`` so
    the root entities stay fully hydrated.
    """

    name = "orm"

    def get_root_entity(self, query: Select) -> Optional[Any]:
        try:
            descriptions = query.column_descriptions
        except AttributeError:
            return None
        if not descriptions:
            return None
        return descriptions[0].get("entity")

    def get_root_alias(self, query: Select) -> Optional[str]:
        entity = self.get_root_entity(query)
        if entity is None:
            return None
        insp = inspect(entity)
        if getattr(insp, "is_aliased_class", False):
            return insp.name
        table = getattr(insp, "local_table", None)
        return getattr(table, "name", None)

    def describe_relation(self, entity: Any, name: str) -> Optional[RelationInfo]:
        mapper = _mapper_of(entity)
        if mapper is None or name not in mapper.relationships:
            return None
        rel = mapper.relationships[name]
        kind = _RELATION_KINDS.get(rel.direction, rel.direction.name.lower())
        locals_ = tuple(_qualified(local) for local, _ in rel.local_remote_pairs)
        remotes = tuple(_qualified(remote) for _, remote in rel.local_remote_pairs)
        if kind == "many_to_one":
            foreign_keys, owner_keys = locals_, remotes
        else:
            foreign_keys, owner_keys = remotes, locals_
        return RelationInfo(
            name=name,
            target=rel.mapper.class_,
            kind=kind,
            foreign_keys=foreign_keys,
            owner_keys=owner_keys,
        )

    def _attribute(self, joined: JoinedRelation) -> Any:
        return getattr(joined.parent.entity, joined.relation.name).of_type(joined.entity)

    def add_left_join(
        self, query: Select, parent: JoinedRelation, relation: RelationInfo, alias: str
    ) -> Tuple[Select, Any]:
        target = aliased(relation.target, name=alias)
        attribute = getattr(parent.entity, relation.name).of_type(target)
        return query.outerjoin(attribute), target

    def _loader(self, joined: JoinedRelation) -> Any:
        if joined.parent.is_root:
            return contains_eager(self._attribute(joined))
        return self._loader(joined.parent).contains_eager(self._attribute(joined))

    def add_projection(self, query: Select, joined: JoinedRelation) -> Select:
        logger.debug("Loading %s from its join with contains_eager", joined.path)
        return query.options(self._loader(joined))

    def get_column(self, entity: Any, field_name: str) -> Optional[ColumnElement[Any]]:
        if not field_name or field_name.startswith("_"):
            return None
        mapper = _mapper_of(entity)
        if mapper is None or field_name in mapper.relationships:
            return None
        if field_name not in mapper.all_orm_descriptors:
            return None
        attr = getattr(entity, field_name, None)
        if isinstance(attr, ColumnElement):
            return attr
        # hybrid properties and other attributes with a SQL expression
        if hasattr(attr, "__clause_element__"):
            return attr.__clause_element__()
        return None

    def list_columns(self, entity: Any) -> List[str]:
        mapper = _mapper_of(entity)
        if mapper is None:
            return []
        return [prop.key for prop in mapper.column_attrs]
