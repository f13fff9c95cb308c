from __future__ import annotations

import re
import uuid
from typing import Optional, Sequence

from pyspark.sql import DataFrame, SparkSession

from ..common import PrintLogger
from ..events import emit_log
from ..merge.scd1 import scd1_merged_frame
from ..schema.model import quote_ident
from .base import TableTarget, WriteMode

MERGE_PROVIDERS = frozenset({"delta", "iceberg"})
_STAGING_SUFFIX = "__scd1_staging"


def build_scd1_merge_sql(target: str, source_view: str, keys: Sequence[str], fingerprint: str) -> str:
    if not keys:
        raise ValueError("MERGE requires at least one key column")
    on_clause = " AND ".join(f"t.{quote_ident(k)} = s.{quote_ident(k)}" for k in keys)
    fp = quote_ident(fingerprint)
    return (
        f"MERGE INTO {target} t USING {source_view} s ON {on_clause} "
        f"WHEN MATCHED AND s.{fp} <> t.{fp} THEN UPDATE SET * "
        f"WHEN NOT MATCHED THEN INSERT *"
    )


class CatalogTarget(TableTarget):
    """Table registered in the session catalog (Hive metastore, Delta or Iceberg)."""

    def __init__(
        self,
        spark: SparkSession,
        database: str,
        table: str,
        fmt: str = "delta",
        logger: Optional[PrintLogger] = None,
    ) -> None:
        self.spark = spark
        self.database = database
        self.table = table
        self.fmt = fmt
        self.logger = logger

    @property
    def qualified_name(self) -> str:
        return f"{quote_ident(self.database)}.{quote_ident(self.table)}"

    def describe(self) -> str:
        return f"{self.database}.{self.table}"

    def exists(self) -> bool:
        return bool(self.spark.catalog.tableExists(self.table, self.database))

    def read(self) -> DataFrame:
        return self.spark.table(self.qualified_name)

    def write(self, df: DataFrame, mode: WriteMode) -> None:
        mode = WriteMode.parse(mode)
        self.spark.sql(f"CREATE DATABASE IF NOT EXISTS {quote_ident(self.database)}")
        save_mode = {
            WriteMode.OVERWRITE: "overwrite",
            WriteMode.APPEND: "append",
            WriteMode.UPSERT_AS_NEW_TABLE: "errorifexists",
        }[mode]
        df.write.format(self.fmt).mode(save_mode).saveAsTable(self.qualified_name)
        emit_log(None, level="INFO", msg="target_written", logger=self.logger, target=self.describe(), mode=mode.value)

    def provider(self) -> str:
        """Storage provider recorded in the catalog, falling back to the configured format."""
        for row in self.spark.sql(f"DESCRIBE TABLE EXTENDED {self.qualified_name}").collect():
            if str(row["col_name"]).strip().lower() == "provider":
                return str(row["data_type"]).strip().lower()
        return self.fmt.lower()

    def apply_scd1(self, candidate: DataFrame, keys: Sequence[str], fingerprint: str) -> None:
        provider = self.provider()
        if provider in MERGE_PROVIDERS:
            self._merge_into(candidate, keys, fingerprint)
        else:
            self._merge_through_staging(candidate, keys, fingerprint, provider)

    def _merge_into(self, candidate: DataFrame, keys: Sequence[str], fingerprint: str) -> None:
        safe_table = re.sub(r"\W+", "_", self.table)
        view = f"src_{safe_table}_{uuid.uuid4().hex[:8]}"
        candidate.createOrReplaceTempView(view)
        try:
            self.spark.sql(build_scd1_merge_sql(self.qualified_name, view, keys, fingerprint))
        finally:
            self.spark.catalog.dropTempView(view)

    def _merge_through_staging(self, candidate: DataFrame, keys: Sequence[str], fingerprint: str, provider: str) -> None:
        # v1 tables cannot be overwritten while being read; the merged rows land in a staging table first.
        staging = CatalogTarget(self.spark, self.database, self.table + _STAGING_SUFFIX, fmt=provider)
        self.spark.sql(f"DROP TABLE IF EXISTS {staging.qualified_name}")
        merged = scd1_merged_frame(self.read(), candidate, keys, fingerprint)
        merged.write.format(provider).mode("errorifexists").saveAsTable(staging.qualified_name)
        try:
            staged = staging.read()
            staged.write.format(provider).mode("overwrite").saveAsTable(self.qualified_name)
        finally:
            self.spark.sql(f"DROP TABLE IF EXISTS {staging.qualified_name}")
        emit_log(
            None,
            level="INFO",
            msg="target_written",
            logger=self.logger,
            target=self.describe(),
            mode=WriteMode.OVERWRITE.value,
            staged=True,
        )


__all__ = ["CatalogTarget", "MERGE_PROVIDERS", "build_scd1_merge_sql"]
