"""Custom filter and sort handlers overriding generic compilation per field."""

import inspect
import logging
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)

HANDLER_MARKER = "__rqc_handler__"
TARGET_ARGUMENT = "target"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[.\-\s]+")


class HandlerKind(StrEnum):
    """What a custom handler replaces."""

    FILTER = "filter"
    SORT = "sort"


def normalize_key(key: str) -> str:
    """
    Normalize a field key to its snake_case handler form.

    ``authorName``, ``author_name`` and ``author.name`` all become ``author_name``.
    """
    key = _SEPARATORS.sub("_", key.strip())
    key = _CAMEL_BOUNDARY.sub(r"_\1", key).lower()
    return re.sub(r"_+", "_", key).strip("_")


def handler_name(kind: HandlerKind, key: str) -> str:
    """
    Build the conventional method name of a handler.

    Args:
        kind: Handler kind
        key: Field key as used in filters or sort rules

    Returns:
        str: Method name, e.g. ``filter_author_name``
    """
    return f"{HandlerKind(kind).value}_{normalize_key(key)}"


@dataclass(frozen=True)
class HandlerRef:
    """
    A registered custom handler.

    Attributes:
        kind: Filter or sort
        key: Normalized field key
        fn: Callable receiving the statement; filters get (operator, value, negated),
            sorts get (direction). Filters return the statement or a boolean
            expression joining the filter's group; sorts return the statement.
        join: Join the relation named by the key before calling the handler
        wants_target: fn declares a ``target`` parameter and is passed the entity
            the key resolves to (the joined relation's alias or the root)
    """

    kind: HandlerKind
    key: str
    fn: Callable[..., Any]
    join: bool = True
    wants_target: bool = False

    def __call__(self, query: Any, *args: Any, target: Any = None) -> Any:
        if self.wants_target:
            result = self.fn(query, *args, target=target)
        else:
            result = self.fn(query, *args)
        if result is None:
            raise TypeError(
                f"Custom {self.kind.value} handler for '{self.key}' must return the statement."
            )
        return result


def accepts_target(fn: Callable[..., Any]) -> bool:
    """Whether a handler declares the ``target`` parameter."""
    try:
        parameters = inspect.signature(fn).parameters
    except (TypeError, ValueError):
        return False
    return TARGET_ARGUMENT in parameters


def _mark(kind: HandlerKind, key: Optional[str], join: bool) -> Callable:
    def decorator(fn: Callable) -> Callable:
        setattr(fn, HANDLER_MARKER, (kind, key, join))
        return fn

    return decorator


def filter_handler(key: Optional[str] = None, *, join: bool = True) -> Callable:
    """
    Mark a method as the custom filter handler of ``key``.

    Without a key, the key is taken from the method name (``filter_<key>``).

    Example:
        class UserCompiler(ResourceOptionCompiler):
            @filter_handler("author.name")
            def by_author(self, query, operator, value, negated, target):
                return target.name.in_(value) if operator == "in" else target.name == value
    """
    return _mark(HandlerKind.FILTER, key, join)


def sort_handler(key: Optional[str] = None, *, join: bool = True) -> Callable:
    """Mark a method as the custom sort handler of ``key``."""
    return _mark(HandlerKind.SORT, key, join)


class HandlerRegistry:
    """
    Registry mapping (kind, field key) to custom handlers.

    Populated once at construction time, either explicitly through register() or
    by discovering conventionally named methods with from_object().
    """

    def __init__(self):
        self._handlers: Dict[Tuple[HandlerKind, str], HandlerRef] = {}

    def register(
        self,
        kind: HandlerKind,
        key: str,
        fn: Callable[..., Any],
        *,
        join: bool = True,
    ) -> HandlerRef:
        """
        Register a custom handler.

        Args:
            kind: Filter or sort
            key: Field key the handler replaces
            fn: Handler callable
            join: Join the relation named by the key before dispatching

        Returns:
            HandlerRef: The registered handler
        """
        kind = HandlerKind(kind)
        ref = HandlerRef(
            kind=kind, key=normalize_key(key), fn=fn, join=join, wants_target=accepts_target(fn)
        )
        self._handlers[(kind, ref.key)] = ref
        return ref

    def resolve(self, kind: HandlerKind, key: str) -> Optional[HandlerRef]:
        """
        Look up the handler of a field.

        Args:
            kind: Filter or sort
            key: Field key as supplied by the caller

        Returns:
            Optional[HandlerRef]: Handler or None when the field is compiled generically
        """
        return self._handlers.get((HandlerKind(kind), normalize_key(key)))

    def update(self, other: "HandlerRegistry") -> None:
        """Copy every handler of ``other`` into this registry, overriding duplicates."""
        self._handlers.update(other._handlers)

    def __contains__(self, item: Tuple[HandlerKind, str]) -> bool:
        kind, key = item
        return self.resolve(kind, key) is not None

    def __iter__(self) -> Iterator[HandlerRef]:
        return iter(self._handlers.values())

    def __len__(self) -> int:
        return len(self._handlers)

    @classmethod
    def from_object(cls, obj: Any) -> "HandlerRegistry":
        """
        Discover handlers on an object.

        Methods decorated with filter_handler()/sort_handler() are registered under
        their declared key; other public methods named ``filter_<key>`` or
        ``sort_<key>`` are registered under ``<key>``.

        Args:
            obj: Object exposing handler methods, usually a compiler subclass

        Returns:
            HandlerRegistry: Registry holding the discovered handlers
        """
        registry = cls()
        owner = type(obj)
        for name in dir(owner):
            if name.startswith("_"):
                continue
            attr = getattr(owner, name, None)
            if not callable(attr):
                continue
            marker = getattr(attr, HANDLER_MARKER, None)
            if marker is not None:
                kind, key, join = marker
                if key is None:
                    key = name.split("_", 1)[1] if "_" in name else name
            else:
                kind = next((k for k in HandlerKind if name.startswith(f"{k.value}_")), None)
                if kind is None:
                    continue
                key, join = name[len(kind.value) + 1 :], True
            ref = registry.register(kind, key, getattr(obj, name), join=join)
            logger.debug("Discovered custom %s handler %s for '%s'", kind.value, name, ref.key)
        return registry
