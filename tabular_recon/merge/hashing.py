from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from pyspark.sql import Column, DataFrame
from pyspark.sql import functions as F
from pyspark.sql.types import ArrayType, DataType, MapType, StructType

from ..schema.model import col_ref

DEFAULT_FINGERPRINT_COLUMN = "hash"


def _contains_map(data_type: DataType) -> bool:
    if isinstance(data_type, MapType):
        return True
    if isinstance(data_type, ArrayType):
        return _contains_map(data_type.elementType)
    if isinstance(data_type, StructType):
        return any(_contains_map(f.dataType) for f in data_type.fields)
    return False


def _hash_input(name: str, data_type: DataType) -> Column:
    """Column as fed to the hash; maps are not hashable, so they go in as sorted entries."""
    column = col_ref(name)
    if isinstance(data_type, MapType) and not (
        _contains_map(data_type.keyType) or _contains_map(data_type.valueType)
    ):
        return F.array_sort(F.map_entries(column))
    if _contains_map(data_type):
        return F.to_json(column)
    return column


def _null_markers(names: List[str]) -> List[Column]:
    # hash() skips nulls, so (v, null) and (null, v) collide without the null pattern.
    return [col_ref(name).isNull() for name in names]


def _murmur3(names: List[str], inputs: List[Column]) -> Column:
    return F.hash(*inputs, *_null_markers(names))


def _xxhash64(names: List[str], inputs: List[Column]) -> Column:
    return F.xxhash64(*inputs, *_null_markers(names))


def _sha256(names: List[str], inputs: List[Column]) -> Column:
    return F.sha2(F.to_json(F.struct(*[value.alias(name) for name, value in zip(names, inputs)])), 256)


_ALGORITHMS: Dict[str, Callable[[List[str], List[Column]], Column]] = {
    "murmur3": _murmur3,
    "xxhash64": _xxhash64,
    "sha256": _sha256,
}

FINGERPRINT_ALGORITHMS = tuple(_ALGORITHMS)


@dataclass(frozen=True)
class ChangeHasher:
    """Append a deterministic content fingerprint computed from a row's columns."""

    column: str = DEFAULT_FINGERPRINT_COLUMN
    algorithm: str = "murmur3"
    exclude: Sequence[str] = ()

    def __post_init__(self) -> None:
        algo = str(self.algorithm).strip().lower()
        if algo not in _ALGORITHMS:
            raise ValueError(f"Unsupported fingerprint algorithm: {self.algorithm}")
        object.__setattr__(self, "algorithm", algo)
        object.__setattr__(self, "exclude", tuple(self.exclude))

    @staticmethod
    def from_config(config: Optional[Mapping[str, Any]]) -> "ChangeHasher":
        cfg = dict(config or {})
        exclude = cfg.get("exclude") or []
        if isinstance(exclude, str):
            exclude = [exclude]
        return ChangeHasher(
            column=str(cfg.get("column", DEFAULT_FINGERPRINT_COLUMN)),
            algorithm=str(cfg.get("algorithm", "murmur3")),
            exclude=tuple(str(c) for c in exclude),
        )

    def hashed_columns(self, df: DataFrame, exclude: Iterable[str] = ()) -> List[str]:
        skip = set(self.exclude) | set(exclude) | {self.column}
        return [name for name in df.columns if name not in skip]

    def with_fingerprint(self, df: DataFrame, exclude: Iterable[str] = (), recompute: bool = False) -> DataFrame:
        if self.column in df.columns:
            if not recompute:
                return df
            df = df.drop(self.column)
        included = self.hashed_columns(df, exclude)
        if not included:
            raise ValueError("Fingerprint requires at least one column outside the exclusion list")
        types = {sf.name: sf.dataType for sf in df.schema.fields}
        inputs = [_hash_input(name, types[name]) for name in included]
        return df.withColumn(self.column, _ALGORITHMS[self.algorithm](included, inputs))


def add_fingerprint(df: DataFrame, exclude: Iterable[str] = (), column: str = DEFAULT_FINGERPRINT_COLUMN) -> DataFrame:
    """Append a murmur3 fingerprint of every non-excluded column."""
    return ChangeHasher(column=column).with_fingerprint(df, exclude)


__all__ = ["ChangeHasher", "DEFAULT_FINGERPRINT_COLUMN", "FINGERPRINT_ALGORITHMS", "add_fingerprint"]
