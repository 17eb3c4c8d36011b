"""Data models for validation plans."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import pandas as pd

from pointcheck.compile.dialects import normalize_db_type
from pointcheck.compile.expressions import ComparisonOp, Expr, to_text
from pointcheck.errors import PlanBuildError

#: Characters accepted in a ``col_types`` hint string.
COL_TYPE_CODES = frozenset("cindlDTt?_-")

QUERY_KEYWORDS = ("SELECT", "WITH")


@dataclass(frozen=True)
class DataSource:
    """Where a step's table comes from.

    Exactly one kind is active: a file (``file_path``), a database
    (``db_type`` + ``creds_ref``) or a named local table (``tbl_name``
    only).  With a file, ``tbl_name`` is just a label; with a database it
    names the remote table.
    """

    tbl_name: str | None = None
    db_type: str | None = None
    creds_ref: Any = None
    initial_query: str | None = None
    file_path: str | Path | None = None
    col_types: str | None = None

    @property
    def kind(self) -> str:
        if self.file_path is not None:
            return "file"
        if self.db_type is not None:
            return "database"
        return "local"

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    @property
    def label(self) -> str:
        if self.kind == "file":
            return self.tbl_name or Path(self.file_path).name
        if self.kind == "database":
            return f"{self.db_type}:{self.tbl_name or 'query'}"
        return self.tbl_name or "?"

    def validate(self) -> "DataSource":
        """Check field consistency, returning the source with a canonical db_type.

        Raises:
            PlanBuildError: If the combination of fields is inconsistent.
        """
        if (self.db_type is None) != (self.creds_ref is None):
            raise PlanBuildError("db_type and creds_ref must be provided together.")
        if self.col_types is not None and self.file_path is None:
            raise PlanBuildError("col_types is only meaningful with file_path.")
        if self.file_path is not None and self.db_type is not None:
            raise PlanBuildError("A data source is either a file or a database, not both.")
        if self.initial_query is not None and self.db_type is None:
            raise PlanBuildError("initial_query is only meaningful with a database source.")
        if self.col_types is not None:
            unknown = sorted(set(self.col_types) - COL_TYPE_CODES)
            if unknown or not self.col_types:
                raise PlanBuildError(
                    f"Invalid col_types '{self.col_types}'; unknown codes: {unknown}."
                )
        if self.kind == "local" and not self.tbl_name:
            raise PlanBuildError("A local data source needs tbl_name.")
        if self.kind == "database":
            if not self.tbl_name and not is_full_query(self.initial_query):
                raise PlanBuildError(
                    "A database source needs tbl_name unless initial_query is a full query."
                )
            db_type = normalize_db_type(self.db_type)
            if db_type != self.db_type:
                return DataSource(
                    tbl_name=self.tbl_name,
                    db_type=db_type,
                    creds_ref=self.creds_ref,
                    initial_query=self.initial_query,
                )
        return self


def is_full_query(statement: str | None) -> bool:
    if not statement:
        return False
    head = statement.lstrip().split(None, 1)
    return bool(head) and head[0].upper().rstrip("(") in QUERY_KEYWORDS


def make_data_source(**kwargs: Any) -> DataSource | None:
    """Build and validate a source from keyword fields; ``None`` when all are unset."""
    source = DataSource(**kwargs)
    if source.is_empty:
        return None
    return source.validate()


@dataclass(frozen=True)
class Thresholds:
    """Failure thresholds for one step; ``None`` disables that escalation."""

    warn_count: int | None = None
    notify_count: int | None = None
    warn_fraction: float | None = None
    notify_fraction: float | None = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def validate(self) -> "Thresholds":
        """Apply the ``warn_count=1`` default and range-check every field."""
        if self.is_empty:
            return Thresholds(warn_count=1)
        for name in ("warn_count", "notify_count"):
            count = getattr(self, name)
            if count is None:
                continue
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise PlanBuildError(f"{name} must be a non-negative integer, got {count!r}.")
        for name in ("warn_fraction", "notify_fraction"):
            fraction = getattr(self, name)
            if fraction is None:
                continue
            if isinstance(fraction, bool) or not isinstance(fraction, (int, float)) \
                    or not 0 <= fraction <= 1:
                raise PlanBuildError(f"{name} must be a number in [0, 1], got {fraction!r}.")
        return self


@dataclass(frozen=True)
class ValidationStep:
    assertion_type: str
    operator: ComparisonOp
    columns: tuple[Expr, ...]
    value: Expr
    preconditions: Expr | None
    brief: str | None
    thresholds: Thresholds
    data_source: DataSource | None

    @property
    def column_text(self) -> str:
        return ", ".join(to_text(c) for c in self.columns)

    def describe(self) -> str:
        """The user's brief, or a generated one."""
        if self.brief is not None:
            return self.brief
        from pointcheck.plan.brief import create_autobrief

        return create_autobrief(self)


@dataclass(frozen=True)
class Agent:
    """An ordered validation plan and its default data-source context.

    ``tables`` is the caller's registry of in-memory tables; the agent
    borrows it and never copies or mutates the frames.
    """

    name: str | None = None
    focus: DataSource | None = None
    steps: tuple[ValidationStep, ...] = ()
    tables: Mapping[str, pd.DataFrame] = field(default_factory=dict, compare=False, repr=False)
