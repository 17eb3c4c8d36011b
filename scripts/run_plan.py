#!/usr/bin/env python3
"""Run a YAML validation plan and report one line per step."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pointcheck.errors import PointcheckError
from pointcheck.interrogate.engine import interrogate
from pointcheck.interrogate.models import StepResult
from pointcheck.plan.config import load_plan
from pointcheck.resolve.files import read_table_file


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interrogate a validation plan.")
    parser.add_argument("plan", type=Path, help="YAML plan file.")
    parser.add_argument(
        "--table",
        action="append",
        default=[],
        metavar="NAME=PATH",
        help="Register a CSV/TSV file as a local table (repeatable).",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Evaluate steps in a thread pool of this size.",
    )
    parser.add_argument(
        "--fail-on-warn",
        action="store_true",
        help="Exit non-zero when any step warns.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args()


def register_tables(specs: list[str]) -> dict[str, object]:
    tables: dict[str, object] = {}
    for spec in specs:
        name, sep, path = spec.partition("=")
        if not sep or not name or not path:
            raise SystemExit(f"--table expects NAME=PATH, got {spec!r}")
        tables[name] = read_table_file(path)
    return tables


def format_result(result: StepResult) -> str:
    head = f"[{result.status.upper():>6}] step {result.index}: {result.step.describe()}"
    if result.error is not None:
        return f"{head}\n         {result.error_type}: {result.error}"
    return f"{head} ({result.n_failed}/{result.n_evaluated} failed)"


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        agent = load_plan(args.plan, tables=register_tables(args.table))
        results = interrogate(agent, max_workers=args.max_workers)
    except (PointcheckError, ValueError) as exc:
        raise SystemExit(f"Plan could not be run: {exc}") from exc

    for result in results:
        print(format_result(result))

    statuses = {result.status for result in results}
    failing = {"notify", "error"} | ({"warn"} if args.fail_on_warn else set())
    if statuses & failing:
        raise SystemExit(f"Validation failed: {sorted(statuses & failing)}")
    print(f"{len(results)} steps interrogated for {args.plan.name}")


if __name__ == "__main__":
    main()
