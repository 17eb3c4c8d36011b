"""Database connections for remote tables.

DuckDB files are opened with the ``duckdb`` driver directly; PostgreSQL,
MySQL and SQLite go through SQLAlchemy.  Every connection is private to the
step that opened it and must be closed when the step finishes.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import duckdb
from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from pointcheck.compile.dialects import SQLDialect, get_dialect
from pointcheck.errors import DataSourceError, PredicateError
from pointcheck.plan.models import DataSource, is_full_query
from pointcheck.resolve.credentials import Credentials

logger = logging.getLogger(__name__)

SQLALCHEMY_DRIVERS = {
    "postgresql": "postgresql+psycopg",
    "mysql": "mysql+pymysql",
    "sqlite": "sqlite",
}
CLAUSE_KEYWORDS = ("WHERE", "ORDER", "GROUP", "LIMIT")


class DatabaseConnection(ABC):
    """A query-only connection to one database."""

    def __init__(self, dialect: SQLDialect) -> None:
        self.dialect = dialect

    @abstractmethod
    def fetch_row(self, query: str) -> tuple[Any, ...]:
        """Run ``query`` and return its first row."""

    @abstractmethod
    def column_names(self, query: str) -> list[str]:
        """Column names produced by ``query``."""

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self) -> "DatabaseConnection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class DuckDBConnection(DatabaseConnection):
    def __init__(self, credentials: Credentials) -> None:
        super().__init__(get_dialect("duckdb"))
        path = Path(credentials.dbname)
        if not path.is_file():
            raise DataSourceError(f"DuckDB database not found at {path}", source=str(path))
        try:
            self._con: duckdb.DuckDBPyConnection | None = duckdb.connect(str(path), read_only=True)
        except duckdb.Error as exc:
            raise DataSourceError(f"Cannot open DuckDB database {path}: {exc}") from exc

    def fetch_row(self, query: str) -> tuple[Any, ...]:
        return self._execute(query).fetchone()

    def column_names(self, query: str) -> list[str]:
        cursor = self._execute(f"SELECT * FROM ({query}) AS pc_schema LIMIT 0")
        return [desc[0] for desc in cursor.description] if cursor.description else []

    def close(self) -> None:
        if self._con is not None:
            self._con.close()
            self._con = None

    def _execute(self, query: str) -> duckdb.DuckDBPyConnection:
        if self._con is None:
            raise DataSourceError("DuckDB connection is closed.")
        try:
            return self._con.execute(query)
        except (duckdb.IOException, duckdb.ConnectionException) as exc:
            raise DataSourceError(f"DuckDB connection failed: {exc}") from exc
        except duckdb.Error as exc:
            raise PredicateError(f"DuckDB rejected the query: {exc}") from exc


class SQLAlchemyConnection(DatabaseConnection):
    def __init__(self, db_type: str, credentials: Credentials) -> None:
        super().__init__(get_dialect(db_type))
        if db_type == "sqlite" and not Path(credentials.dbname).is_file():
            # sqlite would silently create an empty database
            raise DataSourceError(f"SQLite database not found at {credentials.dbname}")
        url = URL.create(
            SQLALCHEMY_DRIVERS[db_type],
            username=credentials.user,
            password=credentials.password,
            host=credentials.host,
            port=credentials.port,
            database=credentials.dbname,
        )
        self._engine = None
        self._conn = None
        try:
            self._engine = create_engine(url, poolclass=NullPool)
            self._conn = self._engine.connect()
        except ModuleNotFoundError as exc:
            self.close()
            raise DataSourceError(
                f"The driver for {db_type} is not installed ({exc.name})."
            ) from exc
        except SQLAlchemyError as exc:
            self.close()
            raise DataSourceError(
                f"Cannot connect to {db_type} database '{credentials.dbname}': {exc}"
            ) from exc

    def fetch_row(self, query: str) -> tuple[Any, ...]:
        return tuple(self._execute(query).fetchone())

    def column_names(self, query: str) -> list[str]:
        result = self._execute(f"SELECT * FROM ({query}) AS pc_schema LIMIT 0")
        return list(result.keys())

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def _execute(self, query: str):
        if self._conn is None:
            raise DataSourceError("Database connection is closed.")
        try:
            # driver-level execution keeps ':' and '%' inside literals untouched
            return self._conn.exec_driver_sql(query)
        except DBAPIError as exc:
            if exc.connection_invalidated:
                raise DataSourceError(f"Database connection lost: {exc}") from exc
            raise PredicateError(f"Database rejected the query: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise DataSourceError(f"Database error: {exc}") from exc


def open_connection(db_type: str, credentials: Credentials) -> DatabaseConnection:
    """Open a connection for a canonical engine tag."""
    logger.debug("Opening %s connection to %s", db_type, credentials.dbname)
    if db_type == "duckdb":
        return DuckDBConnection(credentials)
    return SQLAlchemyConnection(db_type, credentials)


def base_query(source: DataSource, dialect: SQLDialect) -> str:
    """The statement producing a database source's rows.

    A full ``initial_query`` is used verbatim; a clause fragment
    (``WHERE ...``, ``ORDER BY ...``) is appended to ``SELECT * FROM <tbl>``;
    any other text is read as a condition.
    """
    initial = (source.initial_query or "").strip().rstrip(";").strip()
    if is_full_query(initial):
        return initial
    table = ".".join(dialect.quote_identifier(part) for part in source.tbl_name.split("."))
    select = f"SELECT * FROM {table}"
    if not initial:
        return select
    if initial.split(None, 1)[0].upper() in CLAUSE_KEYWORDS:
        return f"{select} {initial}"
    return f"{select} WHERE {initial}"
