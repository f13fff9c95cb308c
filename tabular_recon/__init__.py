"""
Schema reconciliation and incremental merge for Spark DataFrames.

Batches are aligned to a declared schema (or unioned by column name),
fingerprinted, then either folded against older snapshots or merged into a
persisted table with type-1 slowly changing dimension semantics.
"""

from .errors import (
    CastError,
    MergeKeyError,
    NullabilityViolation,
    ReconcileError,
    SchemaValidationError,
    UnionConflictError,
)
from .merge import ArchivalDiff, ChangeHasher, MergeOutcome, Scd1MergeEngine
from .schema import ConflictPolicy, Field, MISSING, SchemaReconciler, SchemaUnifier, TableSchema, union_by_name

__all__ = [
    "ArchivalDiff",
    "CastError",
    "ChangeHasher",
    "ConflictPolicy",
    "Field",
    "MISSING",
    "MergeKeyError",
    "MergeOutcome",
    "NullabilityViolation",
    "ReconcileError",
    "Scd1MergeEngine",
    "SchemaReconciler",
    "SchemaUnifier",
    "SchemaValidationError",
    "TableSchema",
    "UnionConflictError",
    "union_by_name",
]
