"""SQLite back-end (default for development and tests)."""

import sqlite3
from contextlib import contextmanager

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from sitehost.errors import PersistenceError
from sitehost.persistence.base import PersistenceAdapter
from sitehost.persistence.schema import SQLITE_SCHEMA


def _enable_foreign_keys(dbapi_connection, connection_record):
    """SQLite ships with FK enforcement off; ON DELETE CASCADE needs it."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


class SqliteAdapter(PersistenceAdapter):
    backend = "sqlite"
    dialect_names = ("sqlite",)
    schema_script = SQLITE_SCHEMA

    def __init__(self, engine):
        super().__init__(engine)
        event.listen(engine, "connect", _enable_foreign_keys)

    @contextmanager
    def _begin(self, write=False):
        # FOR UPDATE renders as nothing on SQLite, so writers take the
        # database write lock up front and serialize. Readers stay deferred
        # and never wait on a writer.
        with super()._begin(write) as connection:
            if write:
                connection.exec_driver_sql("BEGIN IMMEDIATE")
            yield connection

    def exec(self, script):
        # sqlite3 runs multi-statement scripts natively.
        try:
            raw = self.engine.raw_connection()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not connect to sqlite database: {e}") from e
        try:
            raw.driver_connection.executescript(script)
            raw.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Schema script failed: {e}") from e
        finally:
            raw.close()

    def generated_id(self, result):
        generated = super().generated_id(result)
        if generated is None and result.lastrowid:
            return result.lastrowid
        return generated

    def is_unique_violation(self, error):
        return "UNIQUE constraint failed" in str(error.orig)

    def is_duplicate_column(self, error):
        return "duplicate column name" in str(getattr(error, "orig", error))
