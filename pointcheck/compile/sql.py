"""Render expression trees to SQL conditions."""

from __future__ import annotations

import math
from datetime import date, datetime

from pointcheck.compile.dialects import SQLDialect
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
)
from pointcheck.errors import PredicateError

_CMP = {
    ComparisonOp.LT: "<",
    ComparisonOp.LTE: "<=",
    ComparisonOp.GT: ">",
    ComparisonOp.GTE: ">=",
    ComparisonOp.EQ: "=",
    ComparisonOp.NE: "<>",
}


def render(expr: Expr, dialect: SQLDialect) -> str:
    """Compile ``expr`` to a SQL fragment for ``dialect``."""
    if isinstance(expr, Column):
        return dialect.quote_identifier(expr.name)
    if isinstance(expr, Literal):
        return render_literal(expr.value, dialect)
    if isinstance(expr, Arithmetic):
        left = render(expr.left, dialect)
        right = render(expr.right, dialect)
        if expr.op is ArithmeticOp.DIV:
            # decimal quotient everywhere; a zero divisor yields NULL instead of an error
            return f"((1.0 * {left}) / NULLIF({right}, 0))"
        return f"({left} {expr.op.value} {right})"
    if isinstance(expr, Function):
        return f"{expr.name.upper()}({render(expr.arg, dialect)})"
    if isinstance(expr, Comparison):
        return f"({render(expr.left, dialect)} {_CMP[expr.op]} {render(expr.right, dialect)})"
    if isinstance(expr, BoolOp):
        joiner = " AND " if expr.op == "and" else " OR "
        return "(" + joiner.join(render(o, dialect) for o in expr.operands) + ")"
    if isinstance(expr, Not):
        return f"(NOT {render(expr.operand, dialect)})"
    raise PredicateError(f"Cannot render expression node {type(expr).__name__} as SQL.")


def render_literal(value: object, dialect: SQLDialect) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise PredicateError(f"Literal {value!r} has no SQL representation.")
        return repr(value)
    if isinstance(value, datetime):
        return dialect.quote_literal(value.isoformat(sep=" "))
    if isinstance(value, date):
        return dialect.quote_literal(value.isoformat())
    if isinstance(value, str):
        return dialect.quote_literal(value)
    raise PredicateError(f"Unsupported literal type {type(value).__name__} for SQL.")
