from __future__ import annotations

import abc
from enum import Enum
from typing import Sequence

from pyspark.sql import DataFrame

from ..merge.scd1 import scd1_merged_frame


class WriteMode(str, Enum):
    OVERWRITE = "overwrite"
    APPEND = "append"
    UPSERT_AS_NEW_TABLE = "upsert_as_new_table"

    @staticmethod
    def parse(value: "str | WriteMode | None") -> "WriteMode":
        if isinstance(value, WriteMode):
            return value
        normalized = str(value or WriteMode.OVERWRITE.value).strip().lower().replace("-", "_")
        for mode in WriteMode:
            if mode.value == normalized:
                return mode
        raise ValueError(f"Unsupported write mode: {value}")


class TableTarget(abc.ABC):
    """Persisted destination the merge engine reads from and writes to."""

    @abc.abstractmethod
    def describe(self) -> str:
        ...

    @abc.abstractmethod
    def exists(self) -> bool:
        ...

    @abc.abstractmethod
    def read(self) -> DataFrame:
        ...

    @abc.abstractmethod
    def write(self, df: DataFrame, mode: WriteMode) -> None:
        ...

    def create(self, df: DataFrame) -> None:
        self.write(df, WriteMode.UPSERT_AS_NEW_TABLE)

    def apply_scd1(self, candidate: DataFrame, keys: Sequence[str], fingerprint: str) -> None:
        merged = scd1_merged_frame(self.read(), candidate, keys, fingerprint)
        self.write(merged, WriteMode.OVERWRITE)


__all__ = ["TableTarget", "WriteMode"]
