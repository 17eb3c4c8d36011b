"""Load validation plans from YAML.

Example document::

    name: orders
    focus:
      tbl_name: orders
    steps:
      - assertion: col_vals_lte
        column: a + b
        value: 10
      - assertion: col_vals_gt
        column: [price, quantity]
        value: 0
        preconditions: status != 'void'
        thresholds:
          notify_fraction: 0.1
      - assertion: col_vals_lte
        column: discount
        value: {col: price}
        data_source:
          file_path: exports/orders.csv
          col_types: "cdd"

Relative ``file_path`` and credential-file references are resolved against
the directory holding the plan.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from pointcheck.compile.expressions import Column
from pointcheck.errors import PlanBuildError
from pointcheck.plan.agent import add_step, create_agent
from pointcheck.plan.models import Agent
from pointcheck.resolve.credentials import YAML_SUFFIXES

logger = logging.getLogger(__name__)

STEP_KEYS = frozenset(
    {"assertion", "column", "value", "preconditions", "brief", "thresholds", "data_source"}
)


def load_plan(path: str | Path, tables: Mapping[str, pd.DataFrame] | None = None) -> Agent:
    """Build an agent from the YAML plan at ``path``.

    Raises:
        PlanBuildError: If the file is missing, is not valid YAML, or
            declares a malformed step.
    """
    plan_path = Path(path)
    if not plan_path.exists():
        raise PlanBuildError(f"Plan file not found: {plan_path}")
    try:
        raw = yaml.safe_load(plan_path.read_text()) or {}
    except OSError as exc:
        raise PlanBuildError(f"Cannot read plan file {plan_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise PlanBuildError(f"Invalid YAML in {plan_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise PlanBuildError(f"Plan file {plan_path} must hold a mapping.")

    base_dir = plan_path.resolve().parent
    focus = _source_fields(raw.get("focus") or {}, base_dir)
    agent = create_agent(tables=tables, name=raw.get("name"), **focus)

    for number, entry in enumerate(raw.get("steps") or [], start=1):
        if not isinstance(entry, dict):
            raise PlanBuildError(f"Step {number} in {plan_path} must be a mapping.")
        unknown = sorted(set(entry) - STEP_KEYS)
        if unknown:
            raise PlanBuildError(f"Step {number} in {plan_path} has unknown keys: {unknown}.")
        if "assertion" not in entry or "column" not in entry:
            raise PlanBuildError(f"Step {number} in {plan_path} needs 'assertion' and 'column'.")
        try:
            agent = add_step(
                agent,
                entry["assertion"],
                entry["column"],
                _value(entry.get("value")),
                preconditions=entry.get("preconditions"),
                brief=entry.get("brief"),
                thresholds=entry.get("thresholds"),
                data_source=_source_fields(entry.get("data_source") or {}, base_dir) or None,
            )
        except PlanBuildError as exc:
            raise PlanBuildError(f"Step {number} in {plan_path}: {exc}") from exc

    logger.info("Loaded %d steps from %s", len(agent.steps), plan_path)
    return agent


def _value(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) != {"col"}:
            raise PlanBuildError(f"Column-derived values use {{col: name}}, got {value!r}.")
        return Column(str(value["col"]))
    return value


def _source_fields(fields: Mapping[str, Any], base_dir: Path) -> dict[str, Any]:
    if not isinstance(fields, Mapping):
        raise PlanBuildError(f"Data source must be a mapping, got {fields!r}.")
    resolved = dict(fields)
    file_path = resolved.get("file_path")
    if file_path is not None:
        resolved["file_path"] = _relative_to(file_path, base_dir)
    creds_ref = resolved.get("creds_ref")
    if isinstance(creds_ref, str) and (
        creds_ref.lower().endswith(YAML_SUFFIXES) or (resolved.get("db_type") or "").lower()
        in ("duckdb", "sqlite")
    ):
        resolved["creds_ref"] = _relative_to(creds_ref, base_dir)
    return resolved


def _relative_to(value: str, base_dir: Path) -> str:
    path = Path(value)
    return str(path if path.is_absolute() else base_dir / path)
