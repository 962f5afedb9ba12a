"""Backend adapters translating compiler requests into SQLAlchemy statements."""

from sqlalchemy import Select

from fastapi_rqc.backends.base import JoinedRelation, QueryBackend, RelationInfo
from fastapi_rqc.backends.core import CoreBackend
from fastapi_rqc.backends.orm import OrmBackend


def detect_backend(query: Select) -> QueryBackend:
    """
    Pick the backend matching a statement.

    Args:
        query: Statement to compile

    Returns:
        QueryBackend: OrmBackend when the statement selects a mapped entity,
            CoreBackend otherwise
    """
    orm = OrmBackend()
    if orm.get_root_entity(query) is not None:
        return orm
    return CoreBackend()


__all__ = [
    "CoreBackend",
    "JoinedRelation",
    "OrmBackend",
    "QueryBackend",
    "RelationInfo",
    "detect_backend",
]
