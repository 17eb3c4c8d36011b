"""SQL dialects for remote tables.

Each engine tag accepted in a data source maps to one dialect.  Dialects only
differ in identifier quoting; the rest of the rendering is shared so that
every backend sees the same condition shape.
"""

from __future__ import annotations

from typing import ClassVar

from pointcheck.errors import PlanBuildError


class SQLDialect:
    """Double-quoted identifiers, ``'...'`` string literals."""

    name: ClassVar[str] = "ansi"

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def quote_literal(self, value: str) -> str:
        return "'" + value.replace("'", "''") + "'"


class PostgresDialect(SQLDialect):
    name = "postgresql"


class DuckDBDialect(SQLDialect):
    name = "duckdb"


class SQLiteDialect(SQLDialect):
    name = "sqlite"


class MySQLDialect(SQLDialect):
    """Backtick-quoted identifiers; backslashes in literals are escaped too."""

    name = "mysql"

    def quote_identifier(self, name: str) -> str:
        return "`" + name.replace("`", "``") + "`"

    def quote_literal(self, value: str) -> str:
        return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"


DIALECTS: dict[str, type[SQLDialect]] = {
    "postgresql": PostgresDialect,
    "mysql": MySQLDialect,
    "duckdb": DuckDBDialect,
    "sqlite": SQLiteDialect,
}

#: Alternative spellings accepted for ``db_type``.
ALIASES = {"postgres": "postgresql", "pg": "postgresql", "mariadb": "mysql"}


def normalize_db_type(db_type: str) -> str:
    """Return the canonical engine tag for ``db_type``.

    Raises:
        PlanBuildError: If the tag is not a supported engine.
    """
    key = db_type.strip().lower()
    key = ALIASES.get(key, key)
    if key not in DIALECTS:
        raise PlanBuildError(
            f"Unsupported db_type '{db_type}'. Supported: {sorted(DIALECTS)}."
        )
    return key


def get_dialect(db_type: str) -> SQLDialect:
    return DIALECTS[normalize_db_type(db_type)]()
