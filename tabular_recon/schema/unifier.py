from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pyspark.sql import Column, DataFrame
from pyspark.sql import functions as F
from pyspark.sql.types import (
    ByteType,
    DataType,
    DecimalType,
    DoubleType,
    FloatType,
    IntegerType,
    LongType,
    NullType,
    ShortType,
    StringType,
    StructField,
    StructType,
)

from ..errors import SchemaValidationError, UnionConflictError
from .model import col_ref


class ConflictPolicy(str, Enum):
    """How the unifier resolves two inputs declaring different types for one logical column."""

    FIRST_WINS = "first_wins"
    WIDEN = "widen"
    ERROR = "error"

    @staticmethod
    def from_config(config: Optional[Mapping[str, Any]]) -> "ConflictPolicy":
        cfg = dict(config or {})
        raw = cfg.get("conflict_policy", cfg.get("conflictPolicy", ConflictPolicy.FIRST_WINS.value))
        normalized = str(raw).strip().lower().replace("-", "_")
        for policy in ConflictPolicy:
            if policy.value == normalized:
                return policy
        raise ValueError(f"Unsupported union conflict policy: {raw}")


_NUMERIC_RANK = {
    ByteType: 0,
    ShortType: 1,
    IntegerType: 2,
    LongType: 3,
    DecimalType: 4,
    FloatType: 5,
    DoubleType: 6,
}


def widen_types(left: DataType, right: DataType) -> DataType:
    if left == right:
        return left
    if isinstance(left, NullType):
        return right
    if isinstance(right, NullType):
        return left
    left_rank = _NUMERIC_RANK.get(type(left))
    right_rank = _NUMERIC_RANK.get(type(right))
    if left_rank is not None and right_rank is not None:
        if isinstance(left, DecimalType) and isinstance(right, DecimalType):
            scale = max(left.scale, right.scale)
            integral = max(left.precision - left.scale, right.precision - right.scale)
            return DecimalType(min(integral + scale, 38), scale)
        return left if left_rank >= right_rank else right
    return StringType()


@dataclass
class UnionDiagnostics:
    """What the unifier decided, returned next to the unioned frame."""

    superset_schema: StructType
    display_names: List[str]
    missing_columns: List[List[str]] = field(default_factory=list)
    type_conflicts: List[Dict[str, str]] = field(default_factory=list)
    row_sources: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "columns": list(self.display_names),
            "missing_columns": [list(cols) for cols in self.missing_columns],
            "type_conflicts": [dict(c) for c in self.type_conflicts],
            "inputs": self.row_sources,
        }


@dataclass
class UnionResult:
    frame: DataFrame
    diagnostics: UnionDiagnostics


@dataclass
class _LogicalColumn:
    display_name: str
    data_type: DataType
    nullable: bool


class SchemaUnifier:
    """Union DataFrames by column name, tolerating different column subsets, orders and casing."""

    def __init__(self, policy: ConflictPolicy = ConflictPolicy.FIRST_WINS) -> None:
        self.policy = ConflictPolicy(policy)

    def superset(self, frames: Sequence[DataFrame]) -> Tuple[StructType, List[Dict[str, str]]]:
        columns, conflicts = self._logical_columns(frames)
        struct = StructType(
            [StructField(c.display_name, c.data_type, c.nullable) for c in columns.values()]
        )
        return struct, conflicts

    def union(self, frames: Sequence[DataFrame]) -> UnionResult:
        frames = list(frames)
        if not frames:
            raise ValueError("union requires at least one DataFrame")
        columns, conflicts = self._logical_columns(frames)
        superset = StructType(
            [StructField(c.display_name, c.data_type, c.nullable) for c in columns.values()]
        )
        spark = frames[0].sparkSession
        accumulator = spark.createDataFrame([], superset)
        missing_per_frame: List[List[str]] = []
        projected: List[DataFrame] = []
        for df in frames:
            lookup = self._frame_lookup(df)
            exprs: List[Column] = []
            missing: List[str] = []
            for key, logical in columns.items():
                source_name = lookup.get(key)
                if source_name is None:
                    missing.append(logical.display_name)
                    exprs.append(F.lit(None).cast(logical.data_type).alias(logical.display_name))
                else:
                    exprs.append(col_ref(source_name).cast(logical.data_type).alias(logical.display_name))
            missing_per_frame.append(missing)
            projected.append(df.select(*exprs))
        frame = reduce(DataFrame.union, projected, accumulator)
        diagnostics = UnionDiagnostics(
            superset_schema=superset,
            display_names=[c.display_name for c in columns.values()],
            missing_columns=missing_per_frame,
            type_conflicts=conflicts,
            row_sources=len(frames),
        )
        return UnionResult(frame=frame, diagnostics=diagnostics)

    def _frame_lookup(self, df: DataFrame) -> Dict[str, str]:
        lookup: Dict[str, str] = {}
        for name in df.columns:
            key = name.upper()
            if key in lookup:
                raise SchemaValidationError(
                    f"Columns `{lookup[key]}` and `{name}` differ only by case within one input",
                    missing_fields=[],
                )
            lookup[key] = name
        return lookup

    def _logical_columns(self, frames: Sequence[DataFrame]) -> Tuple[Dict[str, _LogicalColumn], List[Dict[str, str]]]:
        columns: Dict[str, _LogicalColumn] = {}
        conflicts: List[Dict[str, str]] = []
        keys_per_frame: List[set] = []
        for df in frames:
            self._frame_lookup(df)
            keys = set()
            for sf in df.schema.fields:
                key = sf.name.upper()
                keys.add(key)
                existing = columns.get(key)
                if existing is None:
                    columns[key] = _LogicalColumn(sf.name, sf.dataType, sf.nullable)
                    continue
                existing.nullable = existing.nullable or sf.nullable
                if existing.data_type == sf.dataType:
                    continue
                conflicts.append(
                    {
                        "column": existing.display_name,
                        "existing": existing.data_type.simpleString(),
                        "incoming": sf.dataType.simpleString(),
                    }
                )
                if self.policy is ConflictPolicy.WIDEN:
                    existing.data_type = widen_types(existing.data_type, sf.dataType)
            keys_per_frame.append(keys)
        if conflicts and self.policy is ConflictPolicy.ERROR:
            raise UnionConflictError(conflicts)
        for key, logical in columns.items():
            if any(key not in keys for keys in keys_per_frame):
                logical.nullable = True
        return columns, conflicts


def union_by_name(
    frames: Sequence[DataFrame],
    policy: ConflictPolicy = ConflictPolicy.FIRST_WINS,
) -> DataFrame:
    """Union frames by case-insensitive column name; missing columns become typed nulls."""
    return SchemaUnifier(policy).union(frames).frame


__all__ = [
    "ConflictPolicy",
    "SchemaUnifier",
    "UnionDiagnostics",
    "UnionResult",
    "union_by_name",
    "widen_types",
]
