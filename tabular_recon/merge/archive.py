from __future__ import annotations

from typing import Dict, List, Sequence

from pyspark.sql import DataFrame

from ..errors import MergeKeyError
from ..schema.model import col_ref
from ..schema.unifier import ConflictPolicy, SchemaUnifier


def check_keys(keys: Sequence[str], **sides: DataFrame) -> None:
    """Raise ``MergeKeyError`` unless every key is a column of every named side."""
    if not keys:
        raise MergeKeyError("At least one join key is required", {})
    missing: Dict[str, List[str]] = {}
    for side, df in sides.items():
        absent = [key for key in keys if key not in df.columns]
        if absent:
            missing[side] = absent
    if missing:
        detail = "; ".join(f"{side}: {', '.join(cols)}" for side, cols in missing.items())
        raise MergeKeyError(f"Join keys missing ({detail})", missing)


class ArchivalDiff:
    """Keep the newest snapshot plus rows of older snapshots whose keys disappeared.

    A key present in the newer frame always shadows every older row carrying
    the same key, whatever the older row's other values.
    """

    def __init__(self, policy: ConflictPolicy = ConflictPolicy.FIRST_WINS) -> None:
        self.unifier = SchemaUnifier(policy)

    def diff_one(self, current: DataFrame, previous: DataFrame, keys: Sequence[str]) -> DataFrame:
        keys = list(keys)
        check_keys(keys, current=current, previous=previous)
        archived = previous.join(current.select(*[col_ref(k) for k in keys]), on=keys, how="left_anti")
        return self.unifier.union([current, archived]).frame

    def diff_many(self, current: DataFrame, previous: Sequence[DataFrame], keys: Sequence[str]) -> DataFrame:
        keys = list(keys)
        check_keys(keys, current=current)
        result = current
        for older in previous:
            result = self.diff_one(result, older, keys)
        return result


def get_archived(keys: Sequence[str], current: DataFrame, *previous: DataFrame) -> DataFrame:
    return ArchivalDiff().diff_many(current, previous, keys)


__all__ = ["ArchivalDiff", "check_keys", "get_archived"]
