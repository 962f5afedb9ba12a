"""Join resolution and per-compilation state."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import ColumnElement, Select

from fastapi_rqc.backends.base import JoinedRelation, QueryBackend
from fastapi_rqc.config import CompilerConfig
from fastapi_rqc.exceptions import UnknownField, UnresolvableRelation

logger = logging.getLogger(__name__)


class JoinRegistry:
    """
    Relation paths joined into one statement, in the order they were first joined.

    Paths are canonical: they always start with the root alias, so ``posts``,
    ``users.posts`` and an alias-relative spelling all refer to the same entry.
    """

    def __init__(self, root: JoinedRelation):
        self.root = root
        self._paths: Dict[str, JoinedRelation] = {root.path: root}
        self._aliases: Dict[str, JoinedRelation] = {root.alias: root}

    def add(self, joined: JoinedRelation) -> None:
        self._paths[joined.path] = joined
        self._aliases[joined.alias] = joined

    def get(self, path: str) -> Optional[JoinedRelation]:
        return self._paths.get(path)

    def by_alias(self, alias: str) -> Optional[JoinedRelation]:
        return self._aliases.get(alias)

    def joined_paths(self) -> List[str]:
        """Joined relation paths in insertion order, root excluded."""
        return [path for path, joined in self._paths.items() if not joined.is_root]

    def projected_paths(self) -> List[str]:
        return [
            path for path, joined in self._paths.items() if joined.projected and not joined.is_root
        ]

    def __contains__(self, path: str) -> bool:
        return path in self._paths

    def __len__(self) -> int:
        return len(self._paths) - 1


class JoinResolver:
    """
    Joins relation paths on demand, at most once per path.

    Args:
        backend: Backend adapter of the statement
        registry: Registry of the current compilation
        strict_mode: Raise UnknownField for unknown columns instead of skipping them
    """

    def __init__(self, backend: QueryBackend, registry: JoinRegistry, strict_mode: bool = False):
        self.backend = backend
        self.registry = registry
        self.strict_mode = strict_mode

    @property
    def root(self) -> JoinedRelation:
        return self.registry.root

    def qualify(self, path: str) -> str:
        """
        Qualify a relation path with the root alias.

        Paths starting with the root alias or an alias already bound in this
        compilation are left alone; anything else is relative to the root.
        """
        head = path.split(".", 1)[0]
        if self.registry.by_alias(head) is not None:
            return path
        return f"{self.root.alias}.{path}"

    def canonical(self, path: str) -> str:
        """Canonical, root-qualified spelling of a relation path."""
        head, _, rest = self.qualify(path).partition(".")
        bound = self.registry.by_alias(head)
        return f"{bound.path}.{rest}" if rest else bound.path

    def ensure_joined(
        self, query: Select, relation_path: str, with_select: bool = False
    ) -> Tuple[Select, bool]:
        """
        Join a relation path unless it is already joined.

        Args:
            query: Statement under compilation
            relation_path: Dot separated relation path, relative to the root unless
                it starts with a bound alias
            with_select: Also load the joined entity (added once per path)

        Returns:
            Tuple[Select, bool]: New statement and whether a join was added

        Raises:
            UnresolvableRelation: If a segment is not a relation of its parent
        """
        query, _, added = self._ensure(query, relation_path, with_select)
        return query, added

    def _ensure(
        self, query: Select, relation_path: str, with_select: bool
    ) -> Tuple[Select, JoinedRelation, bool]:
        segments = self.qualify(relation_path).split(".")
        current = self.registry.by_alias(segments[0])

        added = False
        for name in segments[1:]:
            path = f"{current.path}.{name}"
            joined = self.registry.get(path)
            if joined is None:
                query, joined = self._join(query, current, name, path)
                added = True
            current = joined

        if with_select and not current.projected:
            query = self.backend.add_projection(query, current)
            current.projected = True
        return query, current, added

    def _join(
        self, query: Select, parent: JoinedRelation, name: str, path: str
    ) -> Tuple[Select, JoinedRelation]:
        relation = self.backend.describe_relation(parent.entity, name)
        if relation is None:
            raise UnresolvableRelation(path)
        alias = self._alias_for(name, path)
        query, entity = self.backend.add_left_join(query, parent, relation, alias)
        joined = JoinedRelation(
            path=path, alias=alias, entity=entity, relation=relation, parent=parent
        )
        self.registry.add(joined)
        logger.debug("Joined %s as %s (%s)", path, alias, relation.kind)
        return query, joined

    def _alias_for(self, name: str, path: str) -> str:
        """
        Pick the alias of a newly joined path.

        The relation name when it is free, else the path below the root joined with
        underscores (``posts_author_country``), suffixed with a counter if needed.
        """
        if self.registry.by_alias(name) is None:
            return name
        alias = "_".join(path.split(".")[1:])
        candidate, n = alias, 2
        while self.registry.by_alias(candidate) is not None:
            candidate = f"{alias}_{n}"
            n += 1
        return candidate

    def can_join(self, relation_path: str) -> bool:
        """Whether every segment of a relation path resolves, without joining anything."""
        segments = self.qualify(relation_path).split(".")
        current = self.registry.by_alias(segments[0])
        entity, path = current.entity, current.path
        for name in segments[1:]:
            path = f"{path}.{name}"
            joined = self.registry.get(path)
            if joined is not None:
                entity = joined.entity
                continue
            relation = self.backend.describe_relation(entity, name)
            if relation is None:
                return False
            entity = relation.target
        return True

    def join_for_handler(self, query: Select, key: str, with_select: bool) -> Select:
        """
        Join the relation a custom handler's key refers to, if it names one.

        ``author`` joins relation ``author``; ``author.name`` joins ``author`` too.
        Keys naming plain columns join nothing.
        """
        bare = strip_root(key, self.root.alias)
        if not bare or bare == self.root.alias:
            return query
        if self.can_join(bare):
            relation_path = bare
        elif "." in bare and self.can_join(bare.rsplit(".", 1)[0]):
            relation_path = bare.rsplit(".", 1)[0]
        else:
            return query
        query, _ = self.ensure_joined(query, relation_path, with_select)
        return query

    def handler_target(self, key: str) -> JoinedRelation:
        """
        The joined relation a custom handler's key refers to.

        ``country`` and ``country.name`` give the ``country`` join once it exists;
        keys naming no joined relation give the root.
        """
        bare = strip_root(key, self.root.alias)
        candidates = [bare]
        if "." in bare:
            candidates.append(bare.rsplit(".", 1)[0])
        for relation_path in candidates:
            if not relation_path or relation_path == self.root.alias:
                continue
            joined = self.registry.get(self.canonical(relation_path))
            if joined is not None:
                return joined
        return self.root

    def resolve_field(
        self, query: Select, key: str, with_select: bool = False
    ) -> Tuple[Select, Optional[ColumnElement[Any]]]:
        """
        Qualify a field key, join its relation prefix and resolve the column.

        Args:
            query: Statement under compilation
            key: ``field``, ``alias.field`` or ``relation.path.field``
            with_select: Load the joined entity when a relation is involved

        Returns:
            Tuple[Select, Optional[ColumnElement]]: New statement and the column,
                None when the column is unknown outside strict mode

        Raises:
            UnknownField: If strict mode is on and the column does not exist
            UnresolvableRelation: If the relation prefix cannot be joined
        """
        qualified = key if "." in key else f"{self.root.alias}.{key}"
        relation_path, field_name = qualified.rsplit(".", 1)
        if relation_path == self.root.alias:
            joined = self.root
        else:
            query, joined, _ = self._ensure(query, relation_path, with_select)

        column = self.backend.get_column(joined.entity, field_name)
        if column is None:
            if self.strict_mode:
                raise UnknownField(qualified, self.backend.list_columns(joined.entity))
            logger.warning("Skipping unknown field '%s'", qualified)
        return query, column


def strip_root(key: str, root_alias: str) -> str:
    """Remove a leading root alias from a key."""
    prefix = f"{root_alias}."
    return key[len(prefix) :] if key.startswith(prefix) else key


@dataclass
class CompilationContext:
    """
    State scoped to one apply_resource_options() call.

    Created at the start of a compilation and discarded when it returns, so no
    join or parameter state leaks between statements.
    """

    backend: QueryBackend
    config: CompilerConfig
    registry: JoinRegistry
    joins: JoinResolver
    _parameter_count: int = field(default=0, repr=False)

    @classmethod
    def create(
        cls, backend: QueryBackend, config: CompilerConfig, root_alias: str, root_entity: Any
    ) -> "CompilationContext":
        root = JoinedRelation(path=root_alias, alias=root_alias, entity=root_entity, projected=True)
        registry = JoinRegistry(root)
        joins = JoinResolver(backend, registry, strict_mode=config.strict_mode)
        return cls(backend=backend, config=config, registry=registry, joins=joins)

    @property
    def root_alias(self) -> str:
        return self.registry.root.alias

    def next_parameter_name(self) -> str:
        """Return a bound parameter name unique within this compilation."""
        self._parameter_count += 1
        return f"{self.config.parameter_prefix}{self._parameter_count}"

    def handler_key(self, key: str) -> str:
        """Key used for custom handler lookup: the key without the root alias."""
        return strip_root(key, self.root_alias)
