"""Persistence adapters.

create_adapter() is called exactly once, from create_app(); the result
lives on app.extensions["persistence"] for the life of the process.
"""

from sitehost.persistence.base import PersistenceAdapter, RunResult
from sitehost.persistence.mysql import MysqlAdapter
from sitehost.persistence.postgres import PostgresAdapter
from sitehost.persistence.sqlite import SqliteAdapter

ADAPTERS = {
    "sqlite": SqliteAdapter,
    "mysql": MysqlAdapter,
    "postgres": PostgresAdapter,
    "supabase": PostgresAdapter,
}


def create_adapter(backend, engine):
    """Build the adapter for the configured back-end.

    Raises:
        ValueError: unknown back-end, or one that doesn't match the engine.
    """
    try:
        adapter_cls = ADAPTERS[backend.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported DATABASE_BACKEND '{backend}'. "
            f"Must be one of: {', '.join(sorted(ADAPTERS))}"
        )
    return adapter_cls(engine)


__all__ = ["PersistenceAdapter", "RunResult", "create_adapter"]
