"""Predicate compilation: expression trees, local evaluation and SQL rendering."""
from pointcheck.compile.dialects import SQLDialect, get_dialect, normalize_db_type
from pointcheck.compile.expressions import (
    ComparisonOp,
    Expr,
    col,
    lit,
    parse_expression,
)
from pointcheck.compile.predicate import Predicate, compile_predicate

__all__ = [
    "ComparisonOp",
    "Expr",
    "Predicate",
    "SQLDialect",
    "col",
    "compile_predicate",
    "get_dialect",
    "lit",
    "normalize_db_type",
    "parse_expression",
]
