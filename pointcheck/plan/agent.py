"""Build validation plans.

Every step constructor funnels into :func:`add_step`, which returns a new
agent with one more step and never mutates the agent it was given::

    agent = create_agent(tables={"df": df}, tbl_name="df")
    agent = col_vals_lte(agent, column="a + b", value=10)
    agent = col_vals_lte(agent, column="a", value=3, preconditions="b > 2")
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

import pandas as pd

from pointcheck.compile.expressions import (
    Arithmetic,
    Column,
    ComparisonOp,
    Expr,
    Function,
    Literal,
    as_expression,
    is_boolean,
    parse_expression,
    to_text,
)
from pointcheck.errors import DataSourceError, PlanBuildError
from pointcheck.plan.models import (
    Agent,
    DataSource,
    Thresholds,
    ValidationStep,
    make_data_source,
)
from pointcheck.resolve.resolver import table_columns

logger = logging.getLogger(__name__)

ASSERTION_OPERATORS: dict[str, ComparisonOp] = {
    "col_vals_lt": ComparisonOp.LT,
    "col_vals_lte": ComparisonOp.LTE,
    "col_vals_gt": ComparisonOp.GT,
    "col_vals_gte": ComparisonOp.GTE,
    "col_vals_equal": ComparisonOp.EQ,
    "col_vals_not_equal": ComparisonOp.NE,
}


class _AllColumns:
    def __repr__(self) -> str:
        return "all_cols()"


#: Column-spec sentinel expanded to every column of the step's table.
ALL_COLUMNS = _AllColumns()


def all_cols() -> _AllColumns:
    return ALL_COLUMNS


def create_agent(
    tables: Mapping[str, pd.DataFrame] | None = None,
    name: str | None = None,
    **focus: Any,
) -> Agent:
    """Create an empty agent, optionally focused on a data source.

    ``focus`` takes the :class:`~pointcheck.plan.models.DataSource` fields.
    """
    source = _data_source(focus) if focus else None
    return Agent(name=name, focus=source, tables=dict(tables or {}))


def focus_on(
    agent: Agent,
    tbl_name: str | None = None,
    file_path: Any = None,
    col_types: str | None = None,
    db_type: str | None = None,
    creds_ref: Any = None,
    initial_query: str | None = None,
) -> Agent:
    """Return ``agent`` with a new default data source for later steps."""
    source = make_data_source(
        tbl_name=tbl_name,
        file_path=file_path,
        col_types=col_types,
        db_type=db_type,
        creds_ref=creds_ref,
        initial_query=initial_query,
    )
    if source is None:
        raise PlanBuildError("focus_on() needs a table name, a file path or a database.")
    return replace(agent, focus=source)


def add_step(
    agent: Agent,
    assertion_type: str,
    column: Any,
    value: Any,
    preconditions: str | Expr | None = None,
    brief: str | None = None,
    thresholds: Thresholds | Mapping[str, Any] | None = None,
    data_source: DataSource | Mapping[str, Any] | None = None,
) -> Agent:
    """Append one validation step and return the new agent.

    Raises:
        PlanBuildError: If any parameter is malformed, or no data source is
            available for the step.
    """
    operator = ASSERTION_OPERATORS.get(assertion_type)
    if operator is None:
        raise PlanBuildError(
            f"Unknown assertion type '{assertion_type}'. Known: {sorted(ASSERTION_OPERATORS)}."
        )
    source = _data_source(data_source)
    effective = source or agent.focus
    if effective is None:
        raise PlanBuildError(
            "No data source for this step; call focus_on() or pass data_source."
        )
    if value is None:
        raise PlanBuildError(f"{assertion_type} needs a comparison value.")
    if brief is not None and not isinstance(brief, str):
        raise PlanBuildError("brief must be a string.")

    step = ValidationStep(
        assertion_type=assertion_type,
        operator=operator,
        columns=_column_spec(column, effective, agent.tables),
        value=_value(value),
        preconditions=_condition(preconditions),
        brief=brief,
        thresholds=_thresholds(thresholds),
        data_source=effective,
    )
    logger.debug(
        "Added step %d: %s on %s", len(agent.steps) + 1, assertion_type, step.column_text
    )
    return replace(agent, steps=agent.steps + (step,))


def _comparison_step(assertion_type: str) -> Callable[..., Agent]:
    operator = ASSERTION_OPERATORS[assertion_type]

    def constructor(
        agent: Agent,
        column: Any,
        value: Any,
        preconditions: str | Expr | None = None,
        brief: str | None = None,
        warn_count: int | None = None,
        notify_count: int | None = None,
        warn_fraction: float | None = None,
        notify_fraction: float | None = None,
        tbl_name: str | None = None,
        db_type: str | None = None,
        creds_ref: Any = None,
        initial_query: str | None = None,
        file_path: Any = None,
        col_types: str | None = None,
    ) -> Agent:
        return add_step(
            agent,
            assertion_type,
            column,
            value,
            preconditions=preconditions,
            brief=brief,
            thresholds=Thresholds(warn_count, notify_count, warn_fraction, notify_fraction),
            data_source=DataSource(
                tbl_name=tbl_name,
                db_type=db_type,
                creds_ref=creds_ref,
                initial_query=initial_query,
                file_path=file_path,
                col_types=col_types,
            ),
        )

    constructor.__name__ = constructor.__qualname__ = assertion_type
    constructor.__doc__ = (
        f"Add a step checking that column values are {operator.value} ``value``."
    )
    return constructor


col_vals_lt = _comparison_step("col_vals_lt")
col_vals_lte = _comparison_step("col_vals_lte")
col_vals_gt = _comparison_step("col_vals_gt")
col_vals_gte = _comparison_step("col_vals_gte")
col_vals_equal = _comparison_step("col_vals_equal")
col_vals_not_equal = _comparison_step("col_vals_not_equal")


# ---------------------------------------------------------------------------
# Parameter normalisation
# ---------------------------------------------------------------------------


def _data_source(data_source: DataSource | Mapping[str, Any] | None) -> DataSource | None:
    if data_source is None:
        return None
    if isinstance(data_source, DataSource):
        return None if data_source.is_empty else data_source.validate()
    if isinstance(data_source, Mapping):
        try:
            return make_data_source(**data_source)
        except TypeError as exc:
            raise PlanBuildError(f"Invalid data source fields: {exc}") from exc
    raise PlanBuildError(f"Unsupported data source {data_source!r}.")


def _column_spec(
    column: Any, source: DataSource, tables: Mapping[str, pd.DataFrame]
) -> tuple[Expr, ...]:
    if column is ALL_COLUMNS or column == "all_cols()":
        try:
            names = table_columns(source, tables)
        except DataSourceError as exc:
            raise PlanBuildError(
                f"Cannot expand all_cols() for '{source.label}': {exc}"
            ) from exc
        if not names:
            raise PlanBuildError(f"Table '{source.label}' has no columns to expand.")
        return tuple(Column(name) for name in names)
    if isinstance(column, (list, tuple)):
        if not column:
            raise PlanBuildError("An empty column list was given.")
        return tuple(_single_column(c) for c in column)
    return (_single_column(column),)


def _single_column(column: Any) -> Expr:
    if isinstance(column, str):
        expr = parse_expression(column)
    elif isinstance(column, (Column, Arithmetic, Function)):
        expr = column
    elif isinstance(column, _AllColumns):
        raise PlanBuildError("all_cols() cannot be combined with other columns.")
    else:
        raise PlanBuildError(f"Invalid column specification {column!r}.")
    if is_boolean(expr) or isinstance(expr, Literal):
        raise PlanBuildError(
            f"Column specification '{to_text(expr)}' must be a column or computed value."
        )
    return expr


def _value(value: Any) -> Expr:
    if isinstance(value, float) and value != value:
        raise PlanBuildError("NaN is not a valid comparison value.")
    return as_expression(value)


def _condition(preconditions: str | Expr | None) -> Expr | None:
    if preconditions is None:
        return None
    expr = parse_expression(preconditions) if isinstance(preconditions, str) \
        else as_expression(preconditions)
    if not (is_boolean(expr) or isinstance(expr, Column)):
        raise PlanBuildError(f"Preconditions '{to_text(expr)}' do not form a condition.")
    return expr


def _thresholds(thresholds: Thresholds | Mapping[str, Any] | None) -> Thresholds:
    if thresholds is None:
        return Thresholds().validate()
    if isinstance(thresholds, Mapping):
        try:
            thresholds = Thresholds(**thresholds)
        except TypeError as exc:
            raise PlanBuildError(f"Invalid threshold fields: {exc}") from exc
    if not isinstance(thresholds, Thresholds):
        raise PlanBuildError(f"Unsupported thresholds {thresholds!r}.")
    return thresholds.validate()
