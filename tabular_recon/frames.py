from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from pyspark.sql import Column, DataFrame, SparkSession
from pyspark.sql import functions as F
from pyspark.sql.types import StringType, StructType
from pyspark.sql.window import Window as W

from .schema.model import TableSchema, col_ref

_EDGE_WHITESPACE = r"^\s+|\s+$"


@dataclass
class DedupReport:
    removed: int
    columns: List[str] = field(default_factory=list)


def trim_all(df: DataFrame) -> DataFrame:
    """Trim every string column and turn blank strings into nulls."""
    projection: List[Column] = []
    for sf in df.schema.fields:
        if isinstance(sf.dataType, StringType):
            trimmed = F.regexp_replace(col_ref(sf.name), _EDGE_WHITESPACE, "")
            projection.append(F.when(trimmed == "", F.lit(None)).otherwise(trimmed).alias(sf.name))
        else:
            projection.append(col_ref(sf.name))
    return df.select(*projection)


def remove_null_rows(df: DataFrame, column: str) -> Tuple[DataFrame, int]:
    keep = col_ref(column).isNotNull() & (F.trim(col_ref(column).cast("string")) != "")
    removed = df.where(~keep).count()
    return df.where(keep), removed


def remove_duplicates(df: DataFrame, *columns: str) -> Tuple[DataFrame, DedupReport]:
    subset = list(columns) or None
    deduped = df.dropDuplicates(subset)
    removed = df.count() - deduped.count()
    return deduped, DedupReport(removed=removed, columns=list(columns))


def add_sequence(df: DataFrame, column: str, start: int = 0) -> DataFrame:
    """Number rows 1..n (plus ``start``) ordered by the first column."""
    first = df.columns[0]
    w = W.orderBy(col_ref(first))
    return df.withColumn(column, F.row_number().over(w) + F.lit(start))


def rename_columns(df: DataFrame, mapping: Mapping[str, str]) -> DataFrame:
    result = df
    for old, new in mapping.items():
        result = result.withColumnRenamed(old, new)
    return result


def normalize_name(name: str) -> str:
    decomposed = unicodedata.normalize("NFD", name.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"[^\w]+", "_", stripped)


def normalize_column_names(df: DataFrame) -> DataFrame:
    return df.select(*[col_ref(name).alias(normalize_name(name)) for name in df.columns])


def to_timestamp(column: Union[str, Column], fmt: str) -> Column:
    source = col_ref(column) if isinstance(column, str) else column
    return F.to_timestamp(source, fmt)


def simple_pivot(
    df: DataFrame,
    group_by: str,
    key: str,
    agg_expr: str,
    levels: Optional[Sequence[str]] = None,
) -> DataFrame:
    """Pivot ``key`` values into columns holding ``agg_expr`` per ``group_by`` value."""
    if not levels:
        levels = [
            str(row[0])
            for row in df.where(col_ref(key).isNotNull()).select(col_ref(key)).distinct().collect()
        ]
    levels = list(levels)
    grouped = (
        df.where(col_ref(key).isin(levels))
        .groupBy(col_ref(group_by))
        .agg(F.map_from_entries(F.collect_list(F.struct(col_ref(key), F.expr(agg_expr)))).alias("group_map"))
    )
    return grouped.select(
        col_ref(group_by),
        *[F.col("group_map").getItem(level).alias(level) for level in levels],
    )


def create_empty_frame(spark: SparkSession, schema: Union[TableSchema, StructType]) -> DataFrame:
    struct = schema.to_struct() if isinstance(schema, TableSchema) else schema
    return spark.createDataFrame([], struct)


__all__ = [
    "DedupReport",
    "add_sequence",
    "create_empty_frame",
    "normalize_column_names",
    "normalize_name",
    "remove_duplicates",
    "remove_null_rows",
    "rename_columns",
    "simple_pivot",
    "to_timestamp",
    "trim_all",
]
