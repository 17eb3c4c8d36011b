"""Typed expression trees for column specs, comparison values and preconditions.

Column expressions such as ``a + b`` and precondition statements such as
``c > 0 and d != 'x'`` are parsed once, when a step is added, into the small
tree defined here.  Both the pandas evaluator and the SQL renderer consume
the same tree.

Strings use Python expression syntax::

    parse_expression("a + b")            # Arithmetic(+, Column(a), Column(b))
    parse_expression("1 < a <= 5")       # BoolOp(and, [...])
    parse_expression("col('unit price') * 2")
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Union

from pointcheck.errors import PlanBuildError


class ComparisonOp(str, Enum):
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    EQ = "=="
    NE = "!="


class ArithmeticOp(str, Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"


@dataclass(frozen=True)
class Column:
    name: str


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Arithmetic:
    op: ArithmeticOp
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Function:
    name: str
    arg: "Expr"


@dataclass(frozen=True)
class Comparison:
    op: ComparisonOp
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class BoolOp:
    op: str  # "and" | "or"
    operands: tuple["Expr", ...]


@dataclass(frozen=True)
class Not:
    operand: "Expr"


Expr = Union[Column, Literal, Arithmetic, Function, Comparison, BoolOp, Not]

#: Scalar functions understood by both evaluation paths.
FUNCTIONS = frozenset({"abs"})

LITERAL_TYPES = (bool, int, float, str, date, datetime, type(None))


def col(name: str) -> Column:
    """Reference a column by name (useful for names that are not identifiers)."""
    return Column(name)


def lit(value: Any) -> Literal:
    return Literal(value)


def as_expression(value: Any) -> Expr:
    """Wrap a plain Python scalar as a literal; pass expression nodes through."""
    if isinstance(value, (Column, Literal, Arithmetic, Function, Comparison, BoolOp, Not)):
        return value
    if isinstance(value, LITERAL_TYPES):
        return Literal(value)
    # numpy scalars and similar expose .item()
    item = getattr(value, "item", None)
    if callable(item):
        return Literal(item())
    raise PlanBuildError(f"Unsupported comparison value: {value!r}")


def is_boolean(expr: Expr) -> bool:
    return isinstance(expr, (Comparison, BoolOp, Not)) or (
        isinstance(expr, Literal) and isinstance(expr.value, bool)
    )


def to_text(expr: Expr) -> str:
    """Render ``expr`` back to readable expression syntax."""
    if isinstance(expr, Column):
        return expr.name if expr.name.isidentifier() else f"col({expr.name!r})"
    if isinstance(expr, Literal):
        return repr(expr.value)
    if isinstance(expr, Arithmetic):
        return f"({to_text(expr.left)} {expr.op.value} {to_text(expr.right)})"
    if isinstance(expr, Function):
        return f"{expr.name}({to_text(expr.arg)})"
    if isinstance(expr, Comparison):
        return f"{to_text(expr.left)} {expr.op.value} {to_text(expr.right)}"
    if isinstance(expr, BoolOp):
        return f" {expr.op} ".join(f"({to_text(o)})" for o in expr.operands)
    if isinstance(expr, Not):
        return f"not ({to_text(expr.operand)})"
    raise TypeError(f"Unknown expression node: {type(expr).__name__}")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_ARITHMETIC = {
    ast.Add: ArithmeticOp.ADD,
    ast.Sub: ArithmeticOp.SUB,
    ast.Mult: ArithmeticOp.MUL,
    ast.Div: ArithmeticOp.DIV,
}

_COMPARISON = {
    ast.Lt: ComparisonOp.LT,
    ast.LtE: ComparisonOp.LTE,
    ast.Gt: ComparisonOp.GT,
    ast.GtE: ComparisonOp.GTE,
    ast.Eq: ComparisonOp.EQ,
    ast.NotEq: ComparisonOp.NE,
}


def parse_expression(text: str) -> Expr:
    """Parse an expression string into an expression tree.

    Raises:
        PlanBuildError: If the text is not valid syntax or uses a construct
            outside the supported subset.
    """
    if not isinstance(text, str) or not text.strip():
        raise PlanBuildError(f"Expected a non-empty expression, got {text!r}.")
    try:
        tree = ast.parse(text.strip(), mode="eval")
    except SyntaxError as exc:
        raise PlanBuildError(f"Invalid expression {text!r}: {exc.msg}") from exc
    return _convert(tree.body, text)


def _convert(node: ast.AST, text: str) -> Expr:
    if isinstance(node, ast.Name):
        return Column(node.id)
    if isinstance(node, ast.Constant):
        if not isinstance(node.value, LITERAL_TYPES):
            raise PlanBuildError(f"Unsupported literal {node.value!r} in {text!r}.")
        return Literal(node.value)
    if isinstance(node, ast.UnaryOp):
        operand = _convert(node.operand, text)
        if isinstance(node.op, (ast.Not, ast.Invert)):
            return Not(operand)
        if isinstance(node.op, ast.UAdd):
            return operand
        if isinstance(node.op, ast.USub):
            if isinstance(operand, Literal) and isinstance(operand.value, (int, float)) \
                    and not isinstance(operand.value, bool):
                return Literal(-operand.value)
            return Arithmetic(ArithmeticOp.MUL, Literal(-1), operand)
    if isinstance(node, ast.BinOp):
        op = _ARITHMETIC.get(type(node.op))
        if op is not None:
            return Arithmetic(op, _convert(node.left, text), _convert(node.right, text))
        # `&` and `|` read as logical connectives, as in dataframe filters
        if isinstance(node.op, (ast.BitAnd, ast.BitOr)):
            kind = "and" if isinstance(node.op, ast.BitAnd) else "or"
            return _bool_op(kind, [_convert(node.left, text), _convert(node.right, text)])
    if isinstance(node, ast.BoolOp):
        kind = "and" if isinstance(node.op, ast.And) else "or"
        return _bool_op(kind, [_convert(v, text) for v in node.values])
    if isinstance(node, ast.Compare):
        return _convert_compare(node, text)
    if isinstance(node, ast.Call):
        return _convert_call(node, text)
    raise PlanBuildError(
        f"Unsupported syntax ({type(node).__name__}) in expression {text!r}."
    )


def _convert_compare(node: ast.Compare, text: str) -> Expr:
    parts: list[Expr] = []
    left = _convert(node.left, text)
    for op_node, right_node in zip(node.ops, node.comparators):
        op = _COMPARISON.get(type(op_node))
        if op is None:
            raise PlanBuildError(f"Unsupported comparison operator in {text!r}.")
        right = _convert(right_node, text)
        parts.append(Comparison(op, left, right))
        left = right
    return parts[0] if len(parts) == 1 else BoolOp("and", tuple(parts))


def _convert_call(node: ast.Call, text: str) -> Expr:
    if not isinstance(node.func, ast.Name) or node.keywords or len(node.args) != 1:
        raise PlanBuildError(f"Unsupported function call in {text!r}.")
    name = node.func.id
    if name == "col":
        arg = node.args[0]
        if not (isinstance(arg, ast.Constant) and isinstance(arg.value, str)):
            raise PlanBuildError(f"col() takes a string column name in {text!r}.")
        return Column(arg.value)
    if name in FUNCTIONS:
        return Function(name, _convert(node.args[0], text))
    raise PlanBuildError(f"Unknown function '{name}' in {text!r}.")


def _bool_op(kind: str, operands: list[Expr]) -> BoolOp:
    flat: list[Expr] = []
    for operand in operands:
        if isinstance(operand, BoolOp) and operand.op == kind:
            flat.extend(operand.operands)
        else:
            flat.append(operand)
    return BoolOp(kind, tuple(flat))
