"""Execute every step of a validation plan."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from pointcheck.compile.predicate import compile_predicate
from pointcheck.errors import DataSourceError, PredicateError
from pointcheck.interrogate.models import StepResult
from pointcheck.interrogate.thresholds import evaluate_thresholds
from pointcheck.plan.models import Agent, ValidationStep
from pointcheck.resolve.resolver import resolve

logger = logging.getLogger(__name__)


class Interrogation:
    """Runs the steps of one agent.

    Each step resolves its own table, so no connection is shared between
    steps and a failing step leaves the others untouched.
    """

    def __init__(self, agent: Agent, max_workers: int | None = None) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1.")
        self.agent = agent
        self.max_workers = max_workers

    def run(self) -> list[StepResult]:
        indexed = list(enumerate(self.agent.steps, start=1))
        logger.info(
            "Interrogating %d steps%s",
            len(indexed),
            f" for '{self.agent.name}'" if self.agent.name else "",
        )
        if self.max_workers and self.max_workers > 1 and len(indexed) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(lambda item: self.run_step(*item), indexed))
        else:
            results = [self.run_step(index, step) for index, step in indexed]
        failed = sum(1 for r in results if r.status != "pass")
        logger.info("Interrogation finished: %d of %d steps did not pass", failed, len(results))
        return results

    def run_step(self, index: int, step: ValidationStep) -> StepResult:
        source = step.data_source or self.agent.focus
        try:
            predicate = compile_predicate(
                step.columns, step.operator, step.value, step.preconditions
            )
            with resolve(source, self.agent.tables) as table:
                n_evaluated, n_failed = table.evaluate(predicate)
        except (DataSourceError, PredicateError) as exc:
            logger.warning(
                "Step %d (%s on %s) failed: %s",
                index,
                step.assertion_type,
                step.column_text,
                exc,
            )
            return StepResult.failed(index, step, exc, source=source.label)

        severity = evaluate_thresholds(n_evaluated, n_failed, step.thresholds)
        logger.debug(
            "Step %d (%s on %s): %d evaluated, %d failed, severity=%s",
            index,
            step.assertion_type,
            step.column_text,
            n_evaluated,
            n_failed,
            severity.value,
        )
        return StepResult(
            index=index,
            step=step,
            n_evaluated=n_evaluated,
            n_failed=n_failed,
            severity=severity,
            source=source.label,
        )


def interrogate(agent: Agent, max_workers: int | None = None) -> list[StepResult]:
    """Run every step of ``agent`` and return the results in plan order.

    Resolution and evaluation errors are recorded on the step's result;
    the remaining steps still run.
    """
    return Interrogation(agent, max_workers=max_workers).run()
