"""Persistence adapter interface.

One adapter instance per process, built in create_app() around the
Flask-SQLAlchemy engine and shared by reference. Every caller gets the
same four operations regardless of the back-end:

    get(query, params)  -> dict | None       (at most one row)
    all(query, params)  -> list[dict]
    run(query, params)  -> RunResult(rows_affected, generated_id)
    exec(script)        -> None              (DDL, startup only)

A query is either a SQLAlchemy Core construct (compiled by the active
dialect, so func.current_timestamp() etc. render natively) or a SQL
string with positional ``?`` placeholders. Strings are prepared once
into a bound text() clause and cached; SQLAlchemy renders the bind
markers in the driver's paramstyle.

The adapter does not serialize callers -- the engine's pool does.
"""

import logging
import re
from collections import namedtuple
from contextlib import contextmanager
from functools import lru_cache

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sitehost.errors import DuplicateKey, PersistenceError

logger = logging.getLogger(__name__)

RunResult = namedtuple("RunResult", ["rows_affected", "generated_id"])

# Quoted literals are matched first so a "?" inside them is left alone.
_TOKEN_RE = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|\?")


@lru_cache(maxsize=512)
def prepare(sql):
    """Compile a ``?``-placeholder statement into (text clause, bind count)."""
    parts = []
    count = 0
    pos = 0
    for match in _TOKEN_RE.finditer(sql):
        if match.group(0) != "?":
            continue
        count += 1
        # Escape literal colons so text() doesn't read them as binds.
        parts.append(sql[pos:match.start()].replace(":", "\\:"))
        parts.append(f":p{count}")
        pos = match.end()
    parts.append(sql[pos:].replace(":", "\\:"))
    return sa.text("".join(parts)), count


def _bind(query, params):
    if isinstance(query, str):
        statement, count = prepare(query)
        params = list(params or ())
        if len(params) != count:
            raise PersistenceError(
                f"Statement expects {count} parameters, got {len(params)}"
            )
        return statement, {f"p{i}": value for i, value in enumerate(params, 1)}
    return query, dict(params or {})


# Columns added after the first release. Each entry is applied with
# Alembic's add_column when the inspector reports it missing.
ADDITIVE_COLUMNS = [
    (
        "sites",
        lambda: sa.Column("main_file", sa.String(255), server_default="index.html"),
    ),
]


class QueryExecutor:
    """get/all/run bound to one connection (and its transaction)."""

    def __init__(self, adapter, connection):
        self.adapter = adapter
        self.connection = connection

    def _execute(self, query, params):
        statement, bound = _bind(query, params)
        try:
            return self.connection.execute(statement, bound)
        except IntegrityError as e:
            if self.adapter.is_unique_violation(e):
                raise DuplicateKey(f"Duplicate key: {e.orig}") from e
            raise PersistenceError(f"Integrity error: {e.orig}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Query failed: {e}") from e

    def get(self, query, params=None):
        row = self._execute(query, params).mappings().first()
        return dict(row) if row is not None else None

    def all(self, query, params=None):
        return [dict(row) for row in self._execute(query, params).mappings()]

    def run(self, query, params=None):
        result = self._execute(query, params)
        return RunResult(result.rowcount, self.adapter.generated_id(result))


class PersistenceAdapter:
    """Base class; one subclass per supported back-end."""

    backend = None
    dialect_names = ()
    schema_script = ""

    def __init__(self, engine):
        if engine.dialect.name not in self.dialect_names:
            raise ValueError(
                f"{self.backend} adapter cannot drive a "
                f"{engine.dialect.name} engine"
            )
        self.engine = engine

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.engine.url.render_as_string()}>"

    # -- connection handling --

    @contextmanager
    def _begin(self, write=False):
        try:
            connection = self.engine.connect()
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Could not connect to {self.backend} database: {e}"
            ) from e
        try:
            with connection.begin():
                yield connection
        except SQLAlchemyError as e:
            raise PersistenceError(f"Transaction failed: {e}") from e
        finally:
            connection.close()

    @contextmanager
    def transaction(self, write=False):
        """Yield an executor whose statements commit or roll back together.

        Pass write=True for transactions that mutate rows; back-ends that
        lock per database (SQLite) take their write lock up front only then.
        """
        with self._begin(write) as connection:
            yield QueryExecutor(self, connection)

    # -- query interface --

    def get(self, query, params=None):
        with self.transaction() as tx:
            return tx.get(query, params)

    def all(self, query, params=None):
        with self.transaction() as tx:
            return tx.all(query, params)

    def run(self, query, params=None):
        with self.transaction(write=True) as tx:
            return tx.run(query, params)

    def exec(self, script):
        raise NotImplementedError

    # -- schema --

    def migrate(self):
        """Create the schema if absent, then apply additive migrations.

        Safe to run on every startup. A column that already exists is
        skipped; any other DDL failure is raised.
        """
        self.exec(self.schema_script)
        for table, make_column in ADDITIVE_COLUMNS:
            self._add_column(table, make_column())

    def _add_column(self, table, column):
        with self._begin(write=True) as connection:
            existing = {c["name"] for c in sa.inspect(connection).get_columns(table)}
            if column.name in existing:
                return
            ops = Operations(MigrationContext.configure(connection))
            try:
                ops.add_column(table, column)
            except SQLAlchemyError as e:
                if self.is_duplicate_column(e):
                    logger.warning(
                        f"Column {table}.{column.name} appeared concurrently; skipping"
                    )
                    return
                raise PersistenceError(
                    f"Migration adding {table}.{column.name} failed: {e}"
                ) from e
            logger.info(f"Added column {table}.{column.name}")

    # -- dialect specifics --

    def generated_id(self, result):
        if result.is_insert and result.inserted_primary_key:
            return result.inserted_primary_key[0]
        return None

    def is_unique_violation(self, error):
        return False

    def is_duplicate_column(self, error):
        return False

    def dispose(self):
        """Release pooled connections. Called once at shutdown."""
        self.engine.dispose()
