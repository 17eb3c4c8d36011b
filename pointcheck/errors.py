"""Exception hierarchy for pointcheck.

Build-time problems raise immediately; resolution and predicate problems are
recorded on the step result by the interrogation engine.
"""

from __future__ import annotations


class PointcheckError(Exception):
    """Base exception for all pointcheck errors."""


class PlanBuildError(PointcheckError):
    """Raised when a step or data-source declaration is malformed."""


class DataSourceError(PointcheckError):
    """Raised when a table, file or database connection cannot be resolved.

    Args:
        message: Human-readable description.
        source: Label of the data source that failed, when known.
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class ColumnTypeError(DataSourceError):
    """Raised when a file column cannot be read as its declared type."""

    def __init__(self, column: str, type_code: str, source: str | None = None) -> None:
        super().__init__(
            f"Column '{column}' could not be read with type code '{type_code}'.",
            source=source,
        )
        self.column = column
        self.type_code = type_code


class PredicateError(PointcheckError):
    """Raised when a check cannot be evaluated against the resolved table."""
