"""MySQL / MariaDB back-end (PyMySQL driver)."""

from sqlalchemy.exc import SQLAlchemyError

from sitehost.errors import PersistenceError
from sitehost.persistence.base import PersistenceAdapter
from sitehost.persistence.schema import MYSQL_SCHEMA

ER_DUP_FIELDNAME = 1060
ER_DUP_ENTRY = 1062


def split_statements(script):
    """MySQL drivers execute one statement per call."""
    return [s.strip() for s in script.split(";") if s.strip()]


def _error_code(error):
    args = getattr(getattr(error, "orig", None), "args", ())
    return args[0] if args else None


class MysqlAdapter(PersistenceAdapter):
    backend = "mysql"
    dialect_names = ("mysql", "mariadb")
    schema_script = MYSQL_SCHEMA

    def exec(self, script):
        with self._begin() as connection:
            for statement in split_statements(script):
                try:
                    connection.exec_driver_sql(statement)
                except SQLAlchemyError as e:
                    raise PersistenceError(f"Schema statement failed: {e}") from e

    def generated_id(self, result):
        generated = super().generated_id(result)
        if generated is None and result.lastrowid:
            return result.lastrowid
        return generated

    def is_unique_violation(self, error):
        return _error_code(error) == ER_DUP_ENTRY

    def is_duplicate_column(self, error):
        return _error_code(error) == ER_DUP_FIELDNAME
