"""Evaluate expression trees row-wise against a pandas DataFrame.

Evaluation follows SQL three-valued logic so that local tables and remote
tables agree on every row: a comparison with a null operand is unknown
(``pd.NA``), ``and``/``or``/``not`` use Kleene logic through pandas'
nullable ``boolean`` dtype, and division by zero yields null.
"""

from __future__ import annotations

import operator
from datetime import date
from functools import reduce
from typing import Any

import pandas as pd

from pointcheck.compile.expressions import (
    Arithmetic,
    ArithmeticOp,
    BoolOp,
    Column,
    Comparison,
    ComparisonOp,
    Expr,
    Function,
    Literal,
    Not,
    to_text,
)
from pointcheck.errors import PredicateError

_CMP = {
    ComparisonOp.LT: operator.lt,
    ComparisonOp.LTE: operator.le,
    ComparisonOp.GT: operator.gt,
    ComparisonOp.GTE: operator.ge,
    ComparisonOp.EQ: operator.eq,
    ComparisonOp.NE: operator.ne,
}

_ARITH = {
    ArithmeticOp.ADD: operator.add,
    ArithmeticOp.SUB: operator.sub,
    ArithmeticOp.MUL: operator.mul,
    ArithmeticOp.DIV: operator.truediv,
}


def holds(expr: Expr, frame: pd.DataFrame) -> pd.Series:
    """Plain ``bool`` mask of rows where ``expr`` is TRUE (unknown counts as not)."""
    return truth(expr, frame).fillna(False).astype(bool)


def truth(expr: Expr, frame: pd.DataFrame) -> pd.Series:
    """Nullable ``boolean`` Series with the truth value of ``expr`` per row."""
    if isinstance(expr, Comparison):
        return _compare(expr, frame)
    if isinstance(expr, BoolOp):
        parts = [truth(operand, frame) for operand in expr.operands]
        combine = operator.and_ if expr.op == "and" else operator.or_
        return reduce(combine, parts)
    if isinstance(expr, Not):
        return ~truth(expr.operand, frame)
    if isinstance(expr, Literal) and (expr.value is None or isinstance(expr.value, bool)):
        return _constant(expr.value, frame.index)
    if isinstance(expr, Column):
        values = _column(expr, frame)
        try:
            return values.astype("boolean")
        except (TypeError, ValueError) as exc:
            raise PredicateError(f"Column '{expr.name}' is not logical.") from exc
    raise PredicateError(f"Expression '{to_text(expr)}' is not a condition.")


def value(expr: Expr, frame: pd.DataFrame) -> Any:
    """Evaluate a value expression to a Series (or a scalar for constants)."""
    if isinstance(expr, Column):
        return _column(expr, frame)
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, Arithmetic):
        left = value(expr.left, frame)
        right = value(expr.right, frame)
        if _is_null_scalar(left) or _is_null_scalar(right):
            return pd.Series(pd.NA, index=frame.index, dtype="object")
        if expr.op is ArithmeticOp.DIV:
            right = _zero_to_null(right)
        try:
            return _ARITH[expr.op](left, right)
        except (TypeError, ValueError) as exc:
            raise PredicateError(
                f"Cannot compute '{to_text(expr)}': {exc}"
            ) from exc
    if isinstance(expr, Function):
        arg = value(expr.arg, frame)
        try:
            return arg.abs() if isinstance(arg, pd.Series) else abs(arg)
        except TypeError as exc:
            raise PredicateError(f"Cannot compute '{to_text(expr)}': {exc}") from exc
    return truth(expr, frame)


def _compare(expr: Comparison, frame: pd.DataFrame) -> pd.Series:
    left = value(expr.left, frame)
    right = value(expr.right, frame)
    if _is_null_scalar(left) or _is_null_scalar(right):
        return _constant(None, frame.index)
    left, right = _as_timestamp(left, right), _as_timestamp(right, left)
    try:
        raw = _CMP[expr.op](left, right)
    except (TypeError, ValueError) as exc:
        raise PredicateError(f"Cannot evaluate '{to_text(expr)}': {exc}") from exc
    if isinstance(raw, pd.Series):
        result = raw.astype("boolean")
    else:
        result = pd.Series(bool(raw), index=frame.index, dtype="boolean")
    nulls = _null_mask(left, frame.index) | _null_mask(right, frame.index)
    return result.mask(nulls)


def _as_timestamp(val: Any, other: Any) -> Any:
    # date literals against datetime64 columns, as SQL engines cast them
    if isinstance(val, date) and isinstance(other, pd.Series) \
            and pd.api.types.is_datetime64_any_dtype(other):
        return pd.Timestamp(val)
    return val


def _column(expr: Column, frame: pd.DataFrame) -> pd.Series:
    if expr.name not in frame.columns:
        raise PredicateError(
            f"Column '{expr.name}' not found. Available columns: {list(frame.columns)}."
        )
    return frame[expr.name]


def _constant(val: bool | None, index: pd.Index) -> pd.Series:
    return pd.Series(pd.NA if val is None else val, index=index, dtype="boolean")


def _null_mask(val: Any, index: pd.Index) -> pd.Series:
    if isinstance(val, pd.Series):
        return val.isna()
    return pd.Series(bool(pd.isna(val)), index=index)


def _is_null_scalar(val: Any) -> bool:
    return not isinstance(val, pd.Series) and bool(pd.isna(val))


def _zero_to_null(divisor: Any) -> Any:
    if isinstance(divisor, pd.Series):
        return divisor.where(divisor != 0)
    if divisor == 0:
        return float("nan")
    return divisor
