"""Shared pytest fixtures: one small table materialised on every backend."""
from __future__ import annotations

import sqlite3
from pathlib import Path

import duckdb
import pandas as pd
import pytest

SAMPLE = {"a": [5, 4, 3, 5, 1, 2], "b": [3, 2, 4, 3, 5, 6]}

#: Rows with gaps, used to check that nulls behave the same everywhere.
NULLABLE_ROWS = [
    (5, 3, "x"),
    (None, 2, "y"),
    (3, None, "x"),
    (1, 5, None),
    (2, 6, "y"),
]


@pytest.fixture()
def sample_frame() -> pd.DataFrame:
    return pd.DataFrame(SAMPLE)


@pytest.fixture()
def nullable_frame() -> pd.DataFrame:
    frame = pd.DataFrame(NULLABLE_ROWS, columns=["a", "b", "c"])
    frame["a"] = frame["a"].astype("Int64")
    frame["b"] = frame["b"].astype("Int64")
    return frame


@pytest.fixture()
def sample_csv(tmp_path: Path, sample_frame: pd.DataFrame) -> Path:
    path = tmp_path / "sample.csv"
    sample_frame.to_csv(path, index=False)
    return path


@pytest.fixture()
def nullable_csv(tmp_path: Path, nullable_frame: pd.DataFrame) -> Path:
    path = tmp_path / "nullable.csv"
    nullable_frame.to_csv(path, index=False)
    return path


def _duckdb_file(path: Path, rows: list[tuple], ddl: str, insert: str) -> Path:
    con = duckdb.connect(str(path))
    try:
        con.execute(ddl)
        con.executemany(insert, rows)
    finally:
        con.close()
    return path


def _sqlite_file(path: Path, rows: list[tuple], ddl: str, insert: str) -> Path:
    con = sqlite3.connect(path)
    try:
        con.execute(ddl)
        con.executemany(insert, rows)
        con.commit()
    finally:
        con.close()
    return path


@pytest.fixture()
def sample_duckdb(tmp_path: Path) -> Path:
    rows = list(zip(SAMPLE["a"], SAMPLE["b"]))
    return _duckdb_file(
        tmp_path / "sample.duckdb",
        rows,
        "CREATE TABLE sample (a INTEGER, b INTEGER)",
        "INSERT INTO sample VALUES (?, ?)",
    )


@pytest.fixture()
def nullable_duckdb(tmp_path: Path) -> Path:
    return _duckdb_file(
        tmp_path / "nullable.duckdb",
        NULLABLE_ROWS,
        "CREATE TABLE nullable (a INTEGER, b INTEGER, c VARCHAR)",
        "INSERT INTO nullable VALUES (?, ?, ?)",
    )


@pytest.fixture()
def sample_sqlite(tmp_path: Path) -> Path:
    rows = list(zip(SAMPLE["a"], SAMPLE["b"]))
    return _sqlite_file(
        tmp_path / "sample.sqlite",
        rows,
        "CREATE TABLE sample (a INTEGER, b INTEGER)",
        "INSERT INTO sample VALUES (?, ?)",
    )


@pytest.fixture()
def nullable_sqlite(tmp_path: Path) -> Path:
    return _sqlite_file(
        tmp_path / "nullable.sqlite",
        NULLABLE_ROWS,
        "CREATE TABLE nullable (a INTEGER, b INTEGER, c TEXT)",
        "INSERT INTO nullable VALUES (?, ?, ?)",
    )
