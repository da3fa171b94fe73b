"""PostgreSQL back-end (psycopg2). Also used for Supabase, which is
plain Postgres underneath -- point DATABASE_URL at the project's
connection string."""

from sqlalchemy.exc import SQLAlchemyError

from sitehost.errors import PersistenceError
from sitehost.persistence.base import PersistenceAdapter
from sitehost.persistence.schema import POSTGRES_SCHEMA

UNIQUE_VIOLATION = "23505"
DUPLICATE_COLUMN = "42701"


def _pgcode(error):
    return getattr(getattr(error, "orig", None), "pgcode", None)


class PostgresAdapter(PersistenceAdapter):
    backend = "postgres"
    dialect_names = ("postgresql",)
    schema_script = POSTGRES_SCHEMA

    def exec(self, script):
        # The simple query protocol accepts the whole script in one round-trip.
        with self._begin() as connection:
            try:
                connection.exec_driver_sql(script)
            except SQLAlchemyError as e:
                raise PersistenceError(f"Schema script failed: {e}") from e

    def is_unique_violation(self, error):
        return _pgcode(error) == UNIQUE_VIOLATION

    def is_duplicate_column(self, error):
        return _pgcode(error) == DUPLICATE_COLUMN
