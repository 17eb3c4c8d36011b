"""pointcheck: declarative data-quality checks over frames, files and databases.

    import pointcheck as pc

    agent = pc.create_agent(tables={"orders": df}, tbl_name="orders")
    agent = pc.col_vals_lte(agent, column="a + b", value=10)
    agent = pc.col_vals_gt(agent, column="a", value=0, notify_fraction=0.5)
    results = pc.interrogate(agent)
    pc.all_passed(results)
"""

from pointcheck.compile.expressions import col, lit
from pointcheck.errors import (
    ColumnTypeError,
    DataSourceError,
    PlanBuildError,
    PointcheckError,
    PredicateError,
)
from pointcheck.interrogate.engine import interrogate
from pointcheck.interrogate.models import Severity, StepResult
from pointcheck.interrogate.output import all_passed, get_interrogation_summary
from pointcheck.interrogate.thresholds import evaluate_thresholds
from pointcheck.plan.agent import (
    add_step,
    all_cols,
    col_vals_equal,
    col_vals_gt,
    col_vals_gte,
    col_vals_lt,
    col_vals_lte,
    col_vals_not_equal,
    create_agent,
    focus_on,
)
from pointcheck.plan.brief import create_autobrief
from pointcheck.plan.config import load_plan
from pointcheck.plan.models import Agent, DataSource, Thresholds, ValidationStep

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "ColumnTypeError",
    "DataSource",
    "DataSourceError",
    "PlanBuildError",
    "PointcheckError",
    "PredicateError",
    "Severity",
    "StepResult",
    "Thresholds",
    "ValidationStep",
    "add_step",
    "all_cols",
    "all_passed",
    "col",
    "col_vals_equal",
    "col_vals_gt",
    "col_vals_gte",
    "col_vals_lt",
    "col_vals_lte",
    "col_vals_not_equal",
    "create_agent",
    "create_autobrief",
    "evaluate_thresholds",
    "focus_on",
    "get_interrogation_summary",
    "interrogate",
    "lit",
    "load_plan",
]
