"""Table resolution: local registry, typed file loading and databases."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from pointcheck.compile import compile_predicate, get_dialect, parse_expression
from pointcheck.compile.expressions import col
from pointcheck.errors import ColumnTypeError, DataSourceError, PredicateError
from pointcheck.plan.models import DataSource
from pointcheck.resolve.credentials import Credentials, load_credentials
from pointcheck.resolve.database import base_query
from pointcheck.resolve.files import read_header, read_table_file
from pointcheck.resolve.resolver import resolve, table_columns
from pointcheck.resolve.tables import LocalTable, RemoteTable


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text)
    return path


# ---------------------------------------------------------------------------
# Local registry
# ---------------------------------------------------------------------------


def test_resolve_local_borrows_frame(sample_frame):
    table = resolve(DataSource(tbl_name="df"), {"df": sample_frame})
    assert isinstance(table, LocalTable)
    assert table.frame is sample_frame


def test_unregistered_table_raises(sample_frame):
    with pytest.raises(DataSourceError, match="not registered"):
        resolve(DataSource(tbl_name="nope"), {"df": sample_frame})


def test_registry_entry_must_be_a_frame():
    with pytest.raises(DataSourceError, match="not a DataFrame"):
        resolve(DataSource(tbl_name="df"), {"df": [1, 2, 3]})


def test_preconditions_do_not_touch_callers_frame(sample_frame):
    predicate = compile_predicate(col("a"), "<", 9, preconditions=parse_expression("b > 3"))
    with resolve(DataSource(tbl_name="df"), {"df": sample_frame}) as table:
        assert table.evaluate(predicate) == (3, 0)
    assert len(sample_frame) == 6


def test_preconditions_apply_once(sample_frame):
    predicate = compile_predicate(col("a"), "<", 9)
    table = resolve(DataSource(tbl_name="df"), {"df": sample_frame})
    table.apply_preconditions(predicate)
    with pytest.raises(DataSourceError, match="already applied"):
        table.apply_preconditions(predicate)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def test_missing_file_raises(tmp_path):
    with pytest.raises(DataSourceError, match="not found"):
        resolve(DataSource(file_path=tmp_path / "absent.csv"))


def test_col_types_length_mismatch_raises(sample_csv):
    with pytest.raises(DataSourceError, match="has 3 codes"):
        read_table_file(sample_csv, "iii")


def test_explicit_types(tmp_path):
    path = _write(
        tmp_path,
        "typed.csv",
        "id,price,active,day,stamp,label,dropped\n"
        '1,"$1,200.50",T,2024-01-31,2024-01-31T10:15:00,007,x\n'
        "2,3 units,false,2024-02-01,2024-02-01T00:00:00,010,y\n",
    )
    frame = read_table_file(path, "inlDTc_")
    assert list(frame.columns) == ["id", "price", "active", "day", "stamp", "label"]
    assert str(frame["id"].dtype) == "Int64"
    assert frame["price"].tolist() == [1200.5, 3.0]
    assert frame["active"].tolist() == [True, False]
    assert frame["day"].iloc[0] == pd.Timestamp("2024-01-31")
    assert frame["stamp"].iloc[0] == pd.Timestamp("2024-01-31 10:15:00")
    assert frame["label"].tolist() == ["007", "010"]


def test_time_and_double_types(tmp_path):
    path = _write(tmp_path, "times.csv", "t,d\n01:30:00,1.5\n00:00:10,2\n")
    frame = read_table_file(path, "td")
    assert frame["t"].iloc[0] == pd.Timedelta(minutes=90)
    assert frame["d"].dtype == "float64"


def test_guessed_types(tmp_path):
    path = _write(
        tmp_path,
        "guess.csv",
        "n,flag,when,text\n1,TRUE,2024-03-01,abc\n2,F,2024-03-02,def\n",
    )
    frame = read_table_file(path)
    assert pd.api.types.is_numeric_dtype(frame["n"])
    assert str(frame["flag"].dtype) == "boolean"
    assert pd.api.types.is_datetime64_any_dtype(frame["when"])
    assert frame["text"].tolist() == ["abc", "def"]


def test_unreadable_value_raises_column_type_error(tmp_path):
    path = _write(tmp_path, "bad.csv", "a\n1\nnot a number\n")
    with pytest.raises(ColumnTypeError) as excinfo:
        read_table_file(path, "i")
    assert excinfo.value.column == "a"
    assert excinfo.value.type_code == "i"


def test_non_integer_values_raise(tmp_path):
    path = _write(tmp_path, "floats.csv", "a\n1.5\n")
    with pytest.raises(ColumnTypeError):
        read_table_file(path, "i")


def test_tsv_files(tmp_path):
    path = _write(tmp_path, "sample.tsv", "a\tb\n1\t2\n")
    assert read_header(path) == ["a", "b"]
    assert read_table_file(path, "ii")["b"].tolist() == [2]


def test_file_nulls_are_missing(nullable_csv):
    frame = read_table_file(nullable_csv, "iic")
    assert frame["a"].isna().tolist() == [False, True, False, False, False]
    assert frame["c"].isna().tolist() == [False, False, False, True, False]


def test_table_columns_for_file(sample_csv):
    assert table_columns(DataSource(file_path=sample_csv, col_types="i_")) == ["a"]


# ---------------------------------------------------------------------------
# Databases
# ---------------------------------------------------------------------------


def _db(tag: str, path: Path, **kwargs) -> DataSource:
    return DataSource(tbl_name="sample", db_type=tag, creds_ref=str(path), **kwargs)


@pytest.mark.parametrize("tag", ["duckdb", "sqlite"])
def test_resolve_database(tag, request):
    path = request.getfixturevalue(f"sample_{tag}")
    with resolve(_db(tag, path)) as table:
        assert isinstance(table, RemoteTable)
        assert table.count_rows() == 6


@pytest.mark.parametrize("tag", ["duckdb", "sqlite"])
def test_database_table_columns(tag, request):
    path = request.getfixturevalue(f"sample_{tag}")
    assert table_columns(_db(tag, path)) == ["a", "b"]


@pytest.mark.parametrize("tag", ["duckdb", "sqlite"])
def test_missing_database_file_raises(tag, tmp_path):
    with pytest.raises(DataSourceError, match="not found"):
        resolve(_db(tag, tmp_path / f"absent.{tag}"))
    assert not (tmp_path / f"absent.{tag}").exists()


@pytest.mark.parametrize("tag", ["duckdb", "sqlite"])
def test_unknown_remote_column_raises(tag, request):
    path = request.getfixturevalue(f"sample_{tag}")
    predicate = compile_predicate(col("zzz"), "<", 1)
    with resolve(_db(tag, path)) as table:
        with pytest.raises(PredicateError):
            table.evaluate(predicate)


def test_missing_driver_raises(monkeypatch):
    def fail(*args, **kwargs):
        raise ModuleNotFoundError("No module named 'psycopg'", name="psycopg")

    monkeypatch.setattr("pointcheck.resolve.database.create_engine", fail)
    source = DataSource(
        tbl_name="t", db_type="postgresql", creds_ref={"dbname": "x", "host": "localhost"}
    )
    with pytest.raises(DataSourceError, match="not installed"):
        resolve(source)


def test_closed_connection_is_released(sample_duckdb):
    table = resolve(_db("duckdb", sample_duckdb))
    table.close()
    with pytest.raises(DataSourceError, match="closed"):
        table.count_rows()


@pytest.mark.parametrize(
    ("initial_query", "expected"),
    [
        (None, 'SELECT * FROM "sample"'),
        ("SELECT a FROM sample;", "SELECT a FROM sample"),
        ("with x as (select 1) select * from x", "with x as (select 1) select * from x"),
        ("WHERE a > 1", 'SELECT * FROM "sample" WHERE a > 1'),
        ("order by a limit 3", 'SELECT * FROM "sample" order by a limit 3'),
        ("a > 1", 'SELECT * FROM "sample" WHERE a > 1'),
    ],
)
def test_base_query(initial_query, expected):
    source = DataSource(
        tbl_name="sample", db_type="duckdb", creds_ref="x.duckdb", initial_query=initial_query
    )
    assert base_query(source, get_dialect("duckdb")) == expected


def test_base_query_qualified_name():
    source = DataSource(tbl_name="sales.orders", db_type="mysql", creds_ref={"dbname": "x"})
    assert base_query(source, get_dialect("mysql")) == "SELECT * FROM `sales`.`orders`"


def test_initial_query_limits_rows(sample_duckdb):
    with resolve(_db("duckdb", sample_duckdb, initial_query="WHERE a >= 4")) as table:
        assert table.count_rows() == 3


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


def test_credentials_from_yaml(tmp_path):
    path = _write(
        tmp_path,
        "creds.yml",
        "dbname: sales\nhost: db.local\nport: '5432'\nusername: qa\npassword: secret\n",
    )
    creds = load_credentials(path)
    assert creds == Credentials("sales", "db.local", 5432, "qa", "secret")
    assert "secret" not in repr(creds)


def test_credentials_from_sequence():
    assert load_credentials(["sales", "db.local", 5432]) == Credentials("sales", "db.local", 5432)


def test_plain_path_is_a_database_file():
    assert load_credentials("warehouse.duckdb") == Credentials("warehouse.duckdb")


@pytest.mark.parametrize(
    "creds_ref",
    [
        {"host": "db.local"},
        {"dbname": "x", "port": "abc"},
        ["a", "b", 1, "c", "d", "extra"],
        42,
    ],
)
def test_invalid_credentials_raise(creds_ref):
    with pytest.raises(DataSourceError):
        load_credentials(creds_ref)


def test_missing_credentials_file_raises(tmp_path):
    with pytest.raises(DataSourceError, match="not found"):
        load_credentials(tmp_path / "absent.yaml")


def _unreadable(*args, **kwargs):
    raise PermissionError(13, "Permission denied")


def test_unreadable_file_raises_data_source_error(monkeypatch, sample_csv):
    monkeypatch.setattr(pd, "read_csv", _unreadable)
    with pytest.raises(DataSourceError, match="Permission denied"):
        read_table_file(sample_csv)
    with pytest.raises(DataSourceError, match="Permission denied"):
        read_header(sample_csv)


def test_unreadable_credentials_file_raises(tmp_path):
    (tmp_path / "creds.yaml").mkdir()
    with pytest.raises(DataSourceError, match="Cannot read credentials"):
        load_credentials(tmp_path / "creds.yaml")
