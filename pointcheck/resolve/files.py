"""Load CSV/TSV files with per-column type hints.

A ``col_types`` string carries one character per file column:

==========  =====================================================
``c``       character
``i``       integer (nullable ``Int64``)
``n``       number: the first number in the text, commas dropped
``d``       double
``l``       logical (``T``/``F``/``TRUE``/``FALSE``/``1``/``0``)
``D``       date (ISO 8601)
``T``       date-time (ISO 8601)
``t``       time of day (timedelta)
``?``       guess
``_``/``-`` skip the column
==========  =====================================================
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd
from dateutil import parser as date_parser

from pointcheck.errors import ColumnTypeError, DataSourceError

SKIP_CODES = frozenset("_-")
TSV_SUFFIXES = (".tsv", ".tab")
LOGICAL_VALUES = {"T": True, "TRUE": True, "1": True, "F": False, "FALSE": False, "0": False}
NUMBER_PATTERN = r"(-?(?:\d[\d,]*)?\.?\d+(?:[eE][-+]?\d+)?)"


def read_header(path: str | Path, col_types: str | None = None) -> list[str]:
    """Column names a load of ``path`` would produce, without reading rows."""
    source = _existing(path)
    try:
        header = list(pd.read_csv(source, sep=_separator(source), nrows=0).columns)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as exc:
        raise DataSourceError(f"Cannot read header of {source}: {exc}", source=str(source)) from exc
    codes = _column_codes(col_types, header, source)
    return [name for name, code in zip(header, codes) if code not in SKIP_CODES]


def read_table_file(path: str | Path, col_types: str | None = None) -> pd.DataFrame:
    """Load a delimited file, typing every column per ``col_types``.

    Raises:
        DataSourceError: If the file is missing or unreadable, or the hint
            string does not match the column count.
        ColumnTypeError: If a value cannot be read as its column's type.
    """
    source = _existing(path)
    try:
        raw = pd.read_csv(source, sep=_separator(source), dtype=str, keep_default_na=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as exc:
        raise DataSourceError(f"Cannot read {source}: {exc}", source=str(source)) from exc

    codes = _column_codes(col_types, list(raw.columns), source)
    columns: dict[str, pd.Series] = {}
    for name, code in zip(raw.columns, codes):
        if code in SKIP_CODES:
            continue
        try:
            columns[name] = _convert(raw[name], code)
        except (ValueError, TypeError, OverflowError) as exc:
            raise ColumnTypeError(name, code, source=str(source)) from exc
    return pd.DataFrame(columns, index=raw.index)


def _existing(path: str | Path) -> Path:
    source = Path(path)
    if not source.is_file():
        raise DataSourceError(f"File not found at {source}", source=str(source))
    return source


def _separator(path: Path) -> str:
    return "\t" if path.suffix.lower() in TSV_SUFFIXES else ","


def _column_codes(col_types: str | None, header: list[str], source: Path) -> str:
    if col_types is None:
        return "?" * len(header)
    if len(col_types) != len(header):
        raise DataSourceError(
            f"col_types '{col_types}' has {len(col_types)} codes but {source} "
            f"has {len(header)} columns.",
            source=str(source),
        )
    return col_types


def _convert(values: pd.Series, code: str) -> pd.Series:
    if code == "c":
        return values
    if code == "i":
        numeric = pd.to_numeric(values, errors="raise")
        if (numeric.dropna() % 1 != 0).any():
            raise ValueError("non-integer values")
        return numeric.astype("Int64")
    if code == "d":
        return pd.to_numeric(values, errors="raise").astype("float64")
    if code == "n":
        extracted = values.str.extract(NUMBER_PATTERN, expand=False)
        if (extracted.isna() & values.notna()).any():
            raise ValueError("values without a number")
        return pd.to_numeric(extracted.str.replace(",", "", regex=False)).astype("float64")
    if code == "l":
        return _logical(values)
    if code == "D":
        return pd.to_datetime(values, format="ISO8601").dt.normalize()
    if code == "T":
        return pd.to_datetime(values, format="ISO8601")
    if code == "t":
        return pd.to_timedelta(values)
    if code == "?":
        return _guess(values)
    raise ValueError(f"unknown type code {code!r}")


def _logical(values: pd.Series) -> pd.Series:
    mapped = values.str.strip().str.upper().map(LOGICAL_VALUES)
    if (mapped.isna() & values.notna()).any():
        raise ValueError("values that are not logical")
    return mapped.astype("boolean")


def _guess(values: pd.Series) -> pd.Series:
    present = values.dropna()
    if present.empty:
        return values
    try:
        return pd.to_numeric(values, errors="raise")
    except (ValueError, TypeError):
        pass
    if present.str.strip().str.upper().isin(["TRUE", "FALSE", "T", "F"]).all():
        return _logical(values)
    if present.str.contains(r"\d").all():
        try:
            parsed = [date_parser.parse(text) for text in present]
        except (ValueError, OverflowError, date_parser.ParserError):
            return values
        # mixed offsets cannot share one dtype
        if len({p.utcoffset() for p in parsed}) == 1:
            return pd.to_datetime(pd.Series(parsed, index=present.index)).reindex(values.index)
    return values
