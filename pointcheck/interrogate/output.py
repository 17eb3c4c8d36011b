"""Summaries of interrogation results."""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from pointcheck.compile.expressions import to_text
from pointcheck.interrogate.models import Severity, StepResult

SUMMARY_COLUMNS = [
    "step",
    "assertion_type",
    "columns",
    "value",
    "preconditions",
    "brief",
    "source",
    "n_evaluated",
    "n_passed",
    "n_failed",
    "f_passed",
    "f_failed",
    "severity",
    "warn",
    "notify",
    "status",
    "error",
]


def all_passed(results: Iterable[StepResult]) -> bool:
    """True when no step escalated and none errored."""
    return all(
        result.error is None and result.severity is Severity.NONE for result in results
    )


def get_interrogation_summary(results: Iterable[StepResult]) -> pd.DataFrame:
    """One row per step, in plan order."""
    records: list[dict[str, object]] = []
    for result in results:
        step = result.step
        records.append(
            {
                "step": result.index,
                "assertion_type": step.assertion_type,
                "columns": step.column_text,
                "value": to_text(step.value),
                "preconditions": (
                    to_text(step.preconditions) if step.preconditions is not None else None
                ),
                "brief": step.describe(),
                "source": result.source,
                "n_evaluated": result.n_evaluated,
                "n_passed": result.n_passed,
                "n_failed": result.n_failed,
                "f_passed": result.f_passed,
                "f_failed": result.f_failed,
                "severity": result.severity.value,
                "warn": result.warn,
                "notify": result.notify,
                "status": result.status,
                "error": result.error,
            }
        )
    return pd.DataFrame(records, columns=SUMMARY_COLUMNS)
