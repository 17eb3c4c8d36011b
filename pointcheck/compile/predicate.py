"""Compile a step's column spec, operator, value and preconditions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from pointcheck.compile import evaluate, sql
from pointcheck.compile.dialects import SQLDialect
from pointcheck.compile.expressions import (
    BoolOp,
    Column,
    Comparison,
    ComparisonOp,
    Expr,
    as_expression,
    is_boolean,
    to_text,
)
from pointcheck.errors import PredicateError


@dataclass(frozen=True)
class Predicate:
    """A row test plus an optional row filter.

    Attributes:
        test: Condition every evaluated row must satisfy.
        preconditions: Condition selecting the rows to evaluate; ``None``
            keeps every row.
    """

    test: Expr
    preconditions: Expr | None = None

    def passes(self, frame: pd.DataFrame) -> pd.Series:
        """Row-wise outcome of the test: ``True`` for passing rows."""
        return evaluate.holds(self.test, frame)

    def row_mask(self, frame: pd.DataFrame) -> pd.Series:
        """Rows retained by the preconditions."""
        if self.preconditions is None:
            return pd.Series(True, index=frame.index)
        return evaluate.holds(self.preconditions, frame)

    def test_sql(self, dialect: SQLDialect) -> str:
        return sql.render(self.test, dialect)

    def preconditions_sql(self, dialect: SQLDialect) -> str | None:
        if self.preconditions is None:
            return None
        return sql.render(self.preconditions, dialect)


def compile_predicate(
    columns: Expr | Sequence[Expr],
    operator: ComparisonOp | str,
    value: Any,
    preconditions: Expr | None = None,
) -> Predicate:
    """Build the predicate ``column <operator> value`` for every column.

    A multi-column spec passes a row only when every column satisfies the
    comparison.

    Raises:
        PredicateError: If the operator is unknown, no column is given, or
            the preconditions are not a condition.
    """
    try:
        op = ComparisonOp(operator)
    except ValueError as exc:
        raise PredicateError(f"Unsupported comparison operator '{operator}'.") from exc

    targets = [columns] if not isinstance(columns, Sequence) else list(columns)
    if not targets:
        raise PredicateError("A column specification is required.")
    rhs = as_expression(value)
    comparisons = [Comparison(op, target, rhs) for target in targets]
    test = comparisons[0] if len(comparisons) == 1 else BoolOp("and", tuple(comparisons))

    if preconditions is not None and not (
        is_boolean(preconditions) or isinstance(preconditions, Column)
    ):
        raise PredicateError(
            f"Preconditions '{to_text(preconditions)}' do not form a condition."
        )
    return Predicate(test=test, preconditions=preconditions)
