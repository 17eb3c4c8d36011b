"""Severity classification from failure counts."""

from __future__ import annotations

from pointcheck.interrogate.models import Severity
from pointcheck.plan.models import Thresholds


def evaluate_thresholds(n_evaluated: int, n_failed: int, thresholds: Thresholds) -> Severity:
    """Return the highest severity reached by any set threshold.

    Count thresholds trigger at ``n_failed >= threshold``. Fraction
    thresholds need at least one evaluated row and trigger at
    ``n_failed / n_evaluated >= threshold``. Unset thresholds never trigger;
    when none are set the step behaves as ``warn_count=1``.
    """
    if thresholds.is_empty:
        thresholds = Thresholds(warn_count=1)
    if _reached(n_evaluated, n_failed, thresholds.notify_count, thresholds.notify_fraction):
        return Severity.NOTIFY
    if _reached(n_evaluated, n_failed, thresholds.warn_count, thresholds.warn_fraction):
        return Severity.WARN
    return Severity.NONE


def _reached(
    n_evaluated: int, n_failed: int, count: int | None, fraction: float | None
) -> bool:
    if count is not None and n_failed >= count:
        return True
    if fraction is not None and n_evaluated > 0:
        return n_failed / n_evaluated >= fraction
    return False
