"""Turn data-source descriptors into resolved tables."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import pandas as pd

from pointcheck.errors import DataSourceError
from pointcheck.plan.models import DataSource
from pointcheck.resolve.credentials import load_credentials
from pointcheck.resolve.database import base_query, open_connection
from pointcheck.resolve.files import read_header, read_table_file
from pointcheck.resolve.tables import LocalTable, RemoteTable, ResolvedTable

logger = logging.getLogger(__name__)


def resolve(
    source: DataSource, tables: Mapping[str, pd.DataFrame] | None = None
) -> ResolvedTable:
    """Resolve ``source`` to a table handle.

    Files are loaded into a local frame, databases get a fresh private
    connection, and local names are looked up in ``tables``.

    Raises:
        DataSourceError: If the table, file or database cannot be reached.
    """
    if source.kind == "file":
        frame = read_table_file(source.file_path, source.col_types)
        logger.debug("Loaded %d rows from %s", len(frame), source.file_path)
        return LocalTable(frame, source.label)
    if source.kind == "database":
        credentials = load_credentials(source.creds_ref)
        connection = open_connection(source.db_type, credentials)
        return RemoteTable(connection, base_query(source, connection.dialect), source.label)
    return LocalTable(_local_frame(source, tables), source.label)


def table_columns(
    source: DataSource, tables: Mapping[str, pd.DataFrame] | None = None
) -> list[str]:
    """Column names of ``source`` without evaluating any rows."""
    if source.kind == "file":
        return read_header(source.file_path, source.col_types)
    if source.kind == "database":
        credentials = load_credentials(source.creds_ref)
        with open_connection(source.db_type, credentials) as connection:
            return connection.column_names(base_query(source, connection.dialect))
    return [str(name) for name in _local_frame(source, tables).columns]


def _local_frame(
    source: DataSource, tables: Mapping[str, pd.DataFrame] | None
) -> pd.DataFrame:
    registry = tables or {}
    if source.tbl_name not in registry:
        raise DataSourceError(
            f"Local table '{source.tbl_name}' is not registered. "
            f"Known tables: {sorted(registry)}.",
            source=source.tbl_name,
        )
    frame = registry[source.tbl_name]
    if not isinstance(frame, pd.DataFrame):
        raise DataSourceError(
            f"Local table '{source.tbl_name}' is a {type(frame).__name__}, not a DataFrame.",
            source=source.tbl_name,
        )
    return frame
