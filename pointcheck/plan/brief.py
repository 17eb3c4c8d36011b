"""Generated step descriptions."""

from __future__ import annotations

from pointcheck.compile.expressions import ComparisonOp, to_text
from pointcheck.plan.models import ValidationStep

OPERATOR_WORDS = {
    ComparisonOp.LT: "less than",
    ComparisonOp.LTE: "less than or equal to",
    ComparisonOp.GT: "greater than",
    ComparisonOp.GTE: "greater than or equal to",
    ComparisonOp.EQ: "equal to",
    ComparisonOp.NE: "not equal to",
}


def create_autobrief(step: ValidationStep) -> str:
    """Describe ``step`` in one sentence, e.g. "Expect that values in `a` should be
    less than or equal to 3."
    """
    names = [f"`{to_text(column)}`" for column in step.columns]
    subject = f"values in {names[0]}" if len(names) == 1 else f"values in each of {', '.join(names)}"
    brief = f"Expect that {subject} should be {OPERATOR_WORDS[step.operator]} {to_text(step.value)}"
    if step.preconditions is not None:
        brief += f" (with preconditions `{to_text(step.preconditions)}`)"
    return brief + "."
