"""Predicate compilation: SQL rendering per dialect and local evaluation."""

from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from pointcheck.compile import (
    ComparisonOp,
    col,
    compile_predicate,
    get_dialect,
    lit,
    normalize_db_type,
    parse_expression,
)
from pointcheck.compile import evaluate
from pointcheck.compile.sql import render, render_literal
from pointcheck.errors import PlanBuildError, PredicateError


def _pg():
    return get_dialect("postgresql")


def _my():
    return get_dialect("mysql")


# ---------------------------------------------------------------------------
# Dialects
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("tag", "expected"),
    [
        ("PostgreSQL", "postgresql"),
        ("postgres", "postgresql"),
        ("MySQL", "mysql"),
        ("MariaDB", "mysql"),
        ("DuckDB", "duckdb"),
        (" sqlite ", "sqlite"),
    ],
)
def test_normalize_db_type(tag, expected):
    assert normalize_db_type(tag) == expected


def test_unknown_db_type_raises():
    with pytest.raises(PlanBuildError):
        normalize_db_type("oracle")


def test_identifier_quoting():
    assert _pg().quote_identifier('we"ird') == '"we""ird"'
    assert _my().quote_identifier("we`ird") == "`we``ird`"


def test_literal_quoting():
    assert _pg().quote_literal("O'Brien") == "'O''Brien'"
    assert _my().quote_literal("a\\b") == "'a\\\\b'"


# ---------------------------------------------------------------------------
# SQL rendering
# ---------------------------------------------------------------------------


def test_render_single_comparison():
    predicate = compile_predicate(parse_expression("a + b"), "<=", 10)
    assert predicate.test_sql(_pg()) == '(("a" + "b") <= 10)'


def test_render_equality_operators():
    assert render(parse_expression("a == 1"), _pg()) == '("a" = 1)'
    assert render(parse_expression("a != 'x'"), _pg()) == "(\"a\" <> 'x')"


def test_render_division_forces_decimal():
    assert render(parse_expression("a / b"), _pg()) == '((1.0 * "a") / NULLIF("b", 0))'


def test_render_mysql_uses_backticks():
    predicate = compile_predicate(col("unit price"), ComparisonOp.GT, 0)
    assert predicate.test_sql(_my()) == "(`unit price` > 0)"


def test_render_multi_column_conjunction():
    predicate = compile_predicate([col("a"), col("b")], "<", 6)
    assert predicate.test_sql(_pg()) == '(("a" < 6) AND ("b" < 6))'


def test_render_preconditions():
    predicate = compile_predicate(
        col("a"), "<=", 3, preconditions=parse_expression("not (b > 2 or c == 'x')")
    )
    assert predicate.preconditions_sql(_pg()) == "(NOT ((\"b\" > 2) OR (\"c\" = 'x')))"


def test_render_without_preconditions():
    assert compile_predicate(col("a"), "<", 1).preconditions_sql(_pg()) is None


def test_render_function():
    assert render(parse_expression("abs(a) < 2"), _pg()) == '(ABS("a") < 2)'


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "NULL"),
        (True, "TRUE"),
        (False, "FALSE"),
        (7, "7"),
        (2.5, "2.5"),
        (date(2024, 1, 31), "'2024-01-31'"),
        ("it's", "'it''s'"),
    ],
)
def test_render_literal(value, expected):
    assert render_literal(value, _pg()) == expected


def test_render_nan_literal_raises():
    with pytest.raises(PredicateError):
        render_literal(float("nan"), _pg())


# ---------------------------------------------------------------------------
# compile_predicate validation
# ---------------------------------------------------------------------------


def test_unknown_operator_raises():
    with pytest.raises(PredicateError):
        compile_predicate(col("a"), "=~", 1)


def test_empty_columns_raise():
    with pytest.raises(PredicateError):
        compile_predicate([], "<", 1)


def test_non_condition_preconditions_raise():
    with pytest.raises(PredicateError):
        compile_predicate(col("a"), "<", 1, preconditions=parse_expression("a + 1"))


# ---------------------------------------------------------------------------
# Local evaluation
# ---------------------------------------------------------------------------


def test_local_passes(sample_frame):
    predicate = compile_predicate(col("a"), "<=", 3)
    assert predicate.passes(sample_frame).tolist() == [False, False, True, False, True, True]


def test_local_column_derived_value(sample_frame):
    predicate = compile_predicate(col("a"), ">", col("b"))
    assert predicate.passes(sample_frame).tolist() == [True, True, False, True, False, False]


def test_null_comparison_is_unknown(nullable_frame):
    result = evaluate.truth(parse_expression("a <= 3"), nullable_frame)
    assert result.dtype == "boolean"
    assert result.isna().tolist() == [False, True, False, False, False]


def test_kleene_logic(nullable_frame):
    # unknown OR TRUE is TRUE; unknown AND FALSE is FALSE
    either = evaluate.truth(parse_expression("a <= 3 or b > 1"), nullable_frame)
    both = evaluate.truth(parse_expression("a <= 3 and b > 100"), nullable_frame)
    assert not either.isna()[1] and either[1]
    assert not both.isna()[1] and not both[1]


def test_not_unknown_stays_unknown(nullable_frame):
    result = evaluate.truth(parse_expression("not a <= 3"), nullable_frame)
    assert result.isna().tolist()[1]


def test_null_literal_comparison_is_unknown(sample_frame):
    predicate = compile_predicate(col("a"), "==", None)
    assert evaluate.truth(predicate.test, sample_frame).isna().all()
    assert not predicate.passes(sample_frame).any()


def test_division_by_zero_is_null():
    frame = pd.DataFrame({"a": [4, 4], "b": [2, 0]})
    result = evaluate.truth(parse_expression("a / b > 1"), frame)
    assert result[0]
    assert result.isna().tolist() == [False, True]


def test_row_mask_excludes_unknown(nullable_frame):
    predicate = compile_predicate(col("a"), "<", 10, preconditions=parse_expression("b > 2"))
    assert predicate.row_mask(nullable_frame).tolist() == [True, False, False, True, True]


def test_missing_column_raises(sample_frame):
    with pytest.raises(PredicateError, match="not found"):
        compile_predicate(col("zzz"), "<", 1).passes(sample_frame)


def test_incompatible_types_raise():
    frame = pd.DataFrame({"a": ["x", "y"]})
    with pytest.raises(PredicateError):
        compile_predicate(col("a"), "<", 1).passes(frame)


def test_literal_helper_in_value(sample_frame):
    predicate = compile_predicate(col("a"), "==", lit(5))
    assert int(predicate.passes(sample_frame).sum()) == 2
