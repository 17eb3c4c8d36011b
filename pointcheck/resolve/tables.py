"""Resolved tables: uniform handles over local frames and remote queries."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import pandas as pd

from pointcheck.compile.predicate import Predicate
from pointcheck.errors import DataSourceError
from pointcheck.resolve.database import DatabaseConnection

logger = logging.getLogger(__name__)


class ResolvedTable(ABC):
    """A table ready for one step's evaluation.

    Preconditions can be applied once; afterwards every count refers to the
    retained rows only.
    """

    def __init__(self, label: str) -> None:
        self.label = label
        self._filtered = False

    def apply_preconditions(self, predicate: Predicate) -> None:
        if self._filtered:
            raise DataSourceError(
                f"Preconditions were already applied to table '{self.label}'.",
                source=self.label,
            )
        self._filtered = True
        if predicate.preconditions is not None:
            self._filter(predicate)

    def evaluate(self, predicate: Predicate) -> tuple[int, int]:
        """Return ``(n_evaluated, n_failed)`` for ``predicate``."""
        self.apply_preconditions(predicate)
        return self.count_rows(), self.count_failures(predicate)

    @abstractmethod
    def count_rows(self) -> int:
        ...

    @abstractmethod
    def count_failures(self, predicate: Predicate) -> int:
        """Rows whose test is not TRUE."""

    @abstractmethod
    def _filter(self, predicate: Predicate) -> None:
        ...

    def close(self) -> None:
        pass

    def __enter__(self) -> "ResolvedTable":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class LocalTable(ResolvedTable):
    """A borrowed in-memory frame; filtering never touches the caller's frame."""

    def __init__(self, frame: pd.DataFrame, label: str) -> None:
        super().__init__(label)
        self._frame = frame

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame

    def count_rows(self) -> int:
        return len(self._frame)

    def count_failures(self, predicate: Predicate) -> int:
        return int((~predicate.passes(self._frame)).sum())

    def _filter(self, predicate: Predicate) -> None:
        self._frame = self._frame[predicate.row_mask(self._frame)]


class RemoteTable(ResolvedTable):
    """A query over a database connection owned by this table."""

    def __init__(self, connection: DatabaseConnection, query: str, label: str) -> None:
        super().__init__(label)
        self._connection = connection
        self.query = query
        self._where: str | None = None

    @property
    def dialect(self):
        return self._connection.dialect

    def evaluate(self, predicate: Predicate) -> tuple[int, int]:
        self.apply_preconditions(predicate)
        sql = (
            f"SELECT COUNT(*), {self._failure_sum(predicate)} "
            f"{self._from_clause()}"
        )
        logger.debug("Evaluating %s on %s: %s", self.label, self.dialect.name, sql)
        n_evaluated, n_failed = self._connection.fetch_row(sql)
        return int(n_evaluated), int(n_failed or 0)

    def count_rows(self) -> int:
        return int(self._connection.fetch_row(f"SELECT COUNT(*) {self._from_clause()}")[0])

    def count_failures(self, predicate: Predicate) -> int:
        row = self._connection.fetch_row(
            f"SELECT {self._failure_sum(predicate)} {self._from_clause()}"
        )
        return int(row[0] or 0)

    def close(self) -> None:
        self._connection.close()

    def _filter(self, predicate: Predicate) -> None:
        self._where = predicate.preconditions_sql(self.dialect)

    def _failure_sum(self, predicate: Predicate) -> str:
        # unknown (NULL) outcomes fall through to ELSE and count as failures
        return f"SUM(CASE WHEN {predicate.test_sql(self.dialect)} THEN 0 ELSE 1 END)"

    def _from_clause(self) -> str:
        clause = f"FROM ({self.query}) AS pc_base"
        if self._where:
            clause += f" WHERE {self._where}"
        return clause
