from __future__ import annotations

from typing import Any, Dict, Optional

from pyspark.sql import DataFrame, SparkSession

from ..common import PrintLogger
from .base import TableTarget
from .catalog import CatalogTarget
from .path import PathTarget


def _split_table(name: str) -> tuple[Optional[str], str]:
    text = str(name).strip().replace("`", "")
    if "." in text:
        db, _, table = text.partition(".")
        return db, table
    return None, text


def resolve_target(
    spark: SparkSession,
    database_or_path: str,
    table: str,
    fmt: Optional[str] = None,
    logger: Optional[PrintLogger] = None,
) -> TableTarget:
    """Catalog table when ``database_or_path`` names an existing database, else ``<path>/<table>``.

    Without an explicit ``fmt`` catalog tables are created as delta and paths as parquet.
    """
    looks_like_path = "/" in database_or_path or ":" in database_or_path
    if not looks_like_path and spark.catalog.databaseExists(database_or_path):
        return CatalogTarget(spark, database_or_path, table, fmt=fmt or "delta", logger=logger)
    return PathTarget(spark, f"{database_or_path.rstrip('/')}/{table}", fmt=fmt or "parquet", logger=logger)


class EndpointFactory:
    """Construct readers and targets from job configuration entries."""

    @staticmethod
    def read_source(spark: SparkSession, source_cfg: Dict[str, Any]) -> DataFrame:
        if source_cfg.get("path"):
            reader = spark.read.format(source_cfg.get("format", "parquet"))
            options = source_cfg.get("options") or {}
            if options:
                reader = reader.options(**{k: str(v) for k, v in options.items()})
            return reader.load(source_cfg["path"])
        table = source_cfg.get("table")
        if not table:
            raise ValueError("source entries require 'path' or 'table'")
        database = source_cfg.get("database")
        if not database:
            database, table = _split_table(table)
        target = CatalogTarget(spark, database or "default", table)
        return target.read()

    @staticmethod
    def build_target(
        spark: SparkSession,
        target_cfg: Dict[str, Any],
        logger: Optional[PrintLogger] = None,
    ) -> TableTarget:
        fmt = target_cfg.get("format")
        if target_cfg.get("path"):
            return PathTarget(
                spark,
                target_cfg["path"],
                fmt=fmt or "parquet",
                options=target_cfg.get("options"),
                logger=logger,
            )
        table = target_cfg.get("table")
        if not table:
            raise ValueError("target requires 'path' or 'table'")
        database = target_cfg.get("database")
        if not database:
            database, table = _split_table(table)
        if target_cfg.get("resolve", False) and database:
            return resolve_target(spark, database, table, fmt=fmt, logger=logger)
        return CatalogTarget(spark, database or "default", table, fmt=fmt or "delta", logger=logger)


__all__ = ["EndpointFactory", "resolve_target"]
