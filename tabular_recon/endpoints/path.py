from __future__ import annotations

from typing import Any, Dict, Optional

from pyspark.sql import DataFrame, SparkSession

from ..common import PrintLogger
from ..events import emit_log
from .base import TableTarget, WriteMode

_SWAP_SUFFIX = ".__tmp_swap__"
_OLD_SUFFIX = ".__tmp_old__"


class PathTarget(TableTarget):
    """Dataset stored as files under a filesystem path (local, HDFS, object store)."""

    def __init__(
        self,
        spark: SparkSession,
        path: str,
        fmt: str = "parquet",
        options: Optional[Dict[str, Any]] = None,
        logger: Optional[PrintLogger] = None,
    ) -> None:
        self.spark = spark
        self.path = path.rstrip("/")
        self.fmt = fmt
        self.options = {k: str(v) for k, v in (options or {}).items()}
        self.logger = logger

    def describe(self) -> str:
        return f"{self.fmt}:{self.path}"

    def _fs_and_path(self, location: str):
        jvm = self.spark.sparkContext._jvm
        conf = self.spark._jsc.hadoopConfiguration()
        hadoop_path = jvm.org.apache.hadoop.fs.Path(location)
        return hadoop_path.getFileSystem(conf), hadoop_path

    def exists(self) -> bool:
        fs, path = self._fs_and_path(self.path)
        return bool(fs.exists(path))

    def read(self) -> DataFrame:
        return self.spark.read.format(self.fmt).options(**self.options).load(self.path)

    def write(self, df: DataFrame, mode: WriteMode) -> None:
        mode = WriteMode.parse(mode)
        if mode is WriteMode.APPEND:
            df.write.format(self.fmt).options(**self.options).mode("append").save(self.path)
        elif mode is WriteMode.UPSERT_AS_NEW_TABLE:
            df.write.format(self.fmt).options(**self.options).mode("errorifexists").save(self.path)
        else:
            self._swap_overwrite(df)
        emit_log(None, level="INFO", msg="target_written", logger=self.logger, target=self.describe(), mode=mode.value)

    def _swap_overwrite(self, df: DataFrame) -> None:
        tmp_location = self.path + _SWAP_SUFFIX
        fs, tmp = self._fs_and_path(tmp_location)
        if fs.exists(tmp):
            fs.delete(tmp, True)
        df.write.format(self.fmt).options(**self.options).mode("overwrite").save(tmp_location)
        _, dst = self._fs_and_path(self.path)
        _, old = self._fs_and_path(self.path + _OLD_SUFFIX)
        if fs.exists(old):
            fs.delete(old, True)
        had_previous = bool(fs.exists(dst))
        if had_previous and not fs.rename(dst, old):
            raise RuntimeError(f"Could not move {self.path} aside before swap")
        if not fs.rename(tmp, dst):
            if had_previous:
                fs.rename(old, dst)
            raise RuntimeError(f"Atomic rename failed for {self.path}")
        if had_previous:
            fs.delete(old, True)


__all__ = ["PathTarget"]
