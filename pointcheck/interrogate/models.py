"""Result models for interrogation runs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pointcheck.plan.models import ValidationStep


class Severity(str, Enum):
    NONE = "none"
    WARN = "warn"
    NOTIFY = "notify"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_RANKS = {Severity.NONE: 0, Severity.WARN: 1, Severity.NOTIFY: 2}


@dataclass(frozen=True)
class StepResult:
    """Outcome of one plan step.

    An errored step carries zero counts, severity ``none`` and the error
    message; its ``status`` is ``"error"``. ``source`` is the label of the
    table the step ran against.
    """

    index: int
    step: ValidationStep
    n_evaluated: int
    n_failed: int
    severity: Severity
    error: str | None = None
    error_type: str | None = None
    source: str | None = None

    @classmethod
    def failed(
        cls, index: int, step: ValidationStep, exc: Exception, source: str | None = None
    ) -> "StepResult":
        return cls(
            index=index,
            step=step,
            n_evaluated=0,
            n_failed=0,
            severity=Severity.NONE,
            error=str(exc),
            error_type=type(exc).__name__,
            source=source,
        )

    @property
    def n_passed(self) -> int:
        return self.n_evaluated - self.n_failed

    @property
    def f_failed(self) -> float:
        if not self.n_evaluated:
            return 0.0
        return self.n_failed / self.n_evaluated

    @property
    def f_passed(self) -> float:
        if not self.n_evaluated:
            return 0.0
        return self.n_passed / self.n_evaluated

    @property
    def warn(self) -> bool:
        return self.severity is Severity.WARN

    @property
    def notify(self) -> bool:
        return self.severity is Severity.NOTIFY

    @property
    def status(self) -> str:
        if self.error is not None:
            return "error"
        if self.severity is Severity.NONE:
            return "pass"
        return self.severity.value
