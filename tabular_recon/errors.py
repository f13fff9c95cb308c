from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence


class ReconcileError(RuntimeError):
    """Base class for reconciliation and merge failures."""


class SchemaValidationError(ReconcileError):
    """Raised when mandatory fields are missing from an input table."""

    def __init__(self, message: str, missing_fields: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.missing_fields = list(missing_fields)


class CastError(ReconcileError):
    """Raised when values cannot be coerced to their declared type."""

    def __init__(self, field: str, data_type: str, samples: Sequence[Any] = (), failures: Optional[int] = None) -> None:
        rendered = ", ".join(repr(value) for value in samples)
        message = f"Cannot cast column `{field}` to {data_type}"
        if failures is not None:
            message += f" ({failures} rows)"
        if rendered:
            message += f"; offending values: [{rendered}]"
        super().__init__(message)
        self.field = field
        self.data_type = data_type
        self.samples = list(samples)
        self.failures = failures


class NullabilityViolation(ReconcileError):
    """Raised when a non-nullable column holds nulls."""

    def __init__(self, violations: Mapping[str, int], phase: str) -> None:
        detail = ", ".join(f"{name}={count}" for name, count in violations.items())
        super().__init__(f"Null values in non-nullable columns ({phase}): [{detail}]")
        self.violations: Dict[str, int] = dict(violations)
        self.phase = phase


class MergeKeyError(ReconcileError):
    """Raised when join/merge keys are absent from one side of an operation."""

    def __init__(self, message: str, missing: Mapping[str, Sequence[str]]) -> None:
        super().__init__(message)
        self.missing: Dict[str, List[str]] = {side: list(cols) for side, cols in missing.items()}


class UnionConflictError(ReconcileError):
    """Raised by the ``error`` conflict policy when input tables disagree on a column type."""

    def __init__(self, conflicts: Sequence[Mapping[str, str]]) -> None:
        rendered = "; ".join(f"{c['column']}:{c['existing']}<>{c['incoming']}" for c in conflicts)
        super().__init__(f"Conflicting column types in union: {rendered}")
        self.conflicts = [dict(c) for c in conflicts]


__all__ = [
    "ReconcileError",
    "SchemaValidationError",
    "CastError",
    "NullabilityViolation",
    "MergeKeyError",
    "UnionConflictError",
]
