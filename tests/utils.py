"""Helpers for asserting on compiled statements."""


def compile_sql(stmt) -> str:
    """Render a statement with its bound values inlined, for assertions only."""
    return str(stmt.compile(compile_kwargs={"literal_binds": True}))


def bound_params(stmt) -> dict:
    """Bound parameter values of a statement, keyed by name."""
    return stmt.compile().params
