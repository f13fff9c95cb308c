from __future__ import annotations

from typing import Any, Dict

from pyspark.sql import SparkSession


class SparkTool:
    """Owns the Spark session used by a job run."""

    def __init__(self, spark: SparkSession, owns_session: bool = True) -> None:
        self.spark = spark
        self._owns_session = owns_session

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "SparkTool":
        runtime = cfg.get("runtime", {})
        builder = SparkSession.builder.appName(
            runtime.get("app_name") or runtime.get("job_name") or "tabular_recon"
        )
        master = runtime.get("master")
        if master:
            builder = builder.master(master)
        for key, value in (runtime.get("spark_conf") or {}).items():
            builder = builder.config(key, str(value))
        spark = builder.getOrCreate()
        log_level = runtime.get("spark_log_level")
        if log_level:
            spark.sparkContext.setLogLevel(str(log_level).upper())
        return cls(spark)

    def stop(self) -> None:
        if self._owns_session and self.spark is not None:
            self.spark.stop()
