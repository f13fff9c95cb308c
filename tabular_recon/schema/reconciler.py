from __future__ import annotations

from typing import Dict, List, Sequence, Union

from pyspark.sql import Column, DataFrame
from pyspark.sql import functions as F
from pyspark.sql.types import StructType

from ..errors import CastError, NullabilityViolation, SchemaValidationError
from .model import Field, TableSchema, col_ref, quote_ident, sql_type

SchemaLike = Union[TableSchema, StructType, Sequence[Field]]


def _null_count_exprs(names: Sequence[str], prefix: str) -> List[Column]:
    return [
        F.sum(F.when(col_ref(name).isNull(), 1).otherwise(0)).alias(f"{prefix}{idx}")
        for idx, name in enumerate(names)
    ]


def _try_cast(fld: Field) -> Column:
    return F.expr(f"try_cast({quote_ident(fld.name)} AS {sql_type(fld.data_type)})")


class SchemaReconciler:
    """Reshape a DataFrame so it matches a target schema exactly.

    ``align`` runs the three stages in order: mandatory-column validation,
    soft reconciliation (drop extras, add defaults, reorder) and
    cast-with-nullability-validation. Each stage is usable on its own.
    """

    def __init__(self, strict_casts: bool = True, sample_size: int = 5) -> None:
        self.strict_casts = strict_casts
        self.sample_size = sample_size

    def validate_mandatory(self, df: DataFrame, schema: SchemaLike) -> None:
        target = TableSchema.coerce(schema)
        present = set(df.columns)
        missing = [fld.name for fld in target.mandatory() if fld.name not in present]
        if missing:
            raise SchemaValidationError(
                f"Missing columns in the data: [{', '.join(missing)}]",
                missing_fields=missing,
            )

    def reconcile_soft(self, df: DataFrame, schema: SchemaLike) -> DataFrame:
        target = TableSchema.coerce(schema)
        present = set(df.columns)
        projection: List[Column] = []
        for fld in target:
            if fld.name in present:
                projection.append(col_ref(fld.name))
            elif fld.is_optional:
                projection.append(fld.default_literal().alias(fld.name))
            else:
                raise SchemaValidationError(
                    f"Missing columns in the data: [{fld.name}]",
                    missing_fields=[fld.name],
                )
        return df.select(*projection)

    def cast_and_validate(self, df: DataFrame, schema: SchemaLike) -> DataFrame:
        target = TableSchema.coerce(schema)
        present = set(df.columns)
        absent = [fld.name for fld in target if fld.name not in present]
        if absent:
            raise SchemaValidationError(
                f"Missing columns in the data: [{', '.join(absent)}]",
                missing_fields=absent,
            )
        required = target.non_nullable_names()
        self._check_nulls(df, required, phase="pre_cast")

        by_name = {fld.name: fld for fld in target}
        projection: List[Column] = []
        casted: List[Field] = []
        current_types = {sf.name: sf.dataType for sf in df.schema.fields}
        for name in df.columns:
            fld = by_name.get(name)
            if fld is None or current_types.get(name) == fld.data_type:
                projection.append(col_ref(name))
                continue
            projection.append(_try_cast(fld).alias(name))
            casted.append(fld)

        failure_exprs: List[Column] = []
        if self.strict_casts:
            failure_exprs = [
                F.sum(F.when(col_ref(fld.name).isNotNull() & _try_cast(fld).isNull(), 1).otherwise(0)).alias(f"c{idx}")
                for idx, fld in enumerate(casted)
            ]
        if failure_exprs:
            row = df.select(*failure_exprs).first()
            for idx, fld in enumerate(casted):
                failures = int(row[f"c{idx}"] or 0)
                if failures:
                    samples = [
                        r[0]
                        for r in df.where(col_ref(fld.name).isNotNull() & _try_cast(fld).isNull())
                        .select(col_ref(fld.name))
                        .limit(self.sample_size)
                        .collect()
                    ]
                    raise CastError(fld.name, fld.data_type.simpleString(), samples, failures=failures)

        result = df.select(*projection)
        self._check_nulls(result, required, phase="post_cast")
        return result

    def align(self, df: DataFrame, schema: SchemaLike) -> DataFrame:
        target = TableSchema.coerce(schema)
        self.validate_mandatory(df, target)
        reconciled = self.reconcile_soft(df, target)
        return self.cast_and_validate(reconciled, target)

    def _check_nulls(self, df: DataFrame, names: Sequence[str], *, phase: str) -> None:
        if not names:
            return
        row = df.select(*_null_count_exprs(names, "n")).first()
        violations: Dict[str, int] = {}
        for idx, name in enumerate(names):
            count = int(row[f"n{idx}"] or 0)
            if count:
                violations[name] = count
        if violations:
            raise NullabilityViolation(violations, phase=phase)


def apply_schema(df: DataFrame, schema: SchemaLike, strict_casts: bool = True) -> DataFrame:
    """Validate, reorder, fill defaults and cast ``df`` to ``schema``."""
    return SchemaReconciler(strict_casts=strict_casts).align(df, schema)


def apply_schema_soft(df: DataFrame, schema: SchemaLike) -> DataFrame:
    """Validate mandatory columns, drop extras, add defaults and reorder, without casting."""
    reconciler = SchemaReconciler()
    reconciler.validate_mandatory(df, schema)
    return reconciler.reconcile_soft(df, schema)


__all__ = ["SchemaReconciler", "apply_schema", "apply_schema_soft"]
