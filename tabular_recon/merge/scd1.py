from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence, Tuple

from pyspark.sql import DataFrame
from pyspark.sql import functions as F
from pyspark.sql.window import Window as W

from ..common import PrintLogger
from ..errors import MergeKeyError
from ..events import Emitter, emit_log
from ..schema.model import col_ref
from ..schema.unifier import SchemaUnifier
from .archive import check_keys
from .hashing import ChangeHasher

if TYPE_CHECKING:
    from ..endpoints.base import TableTarget

_TIEBREAK = "_recon_tiebreak"
_ROW_NUMBER = "_recon_rn"


def dedup_last_wins(df: DataFrame, keys: Sequence[str]) -> DataFrame:
    """Keep one row per key: the one appearing last in partition order.

    Rows with a null in any key column never match each other and are all kept.
    """
    tagged = df.withColumn(_TIEBREAK, F.monotonically_increasing_id())
    w = W.partitionBy(*[col_ref(k) for k in keys]).orderBy(F.col(_TIEBREAK).desc())
    null_key = reduce(lambda left, right: left | right, [col_ref(k).isNull() for k in keys])
    return (
        tagged.withColumn(_ROW_NUMBER, F.row_number().over(w))
        .where((F.col(_ROW_NUMBER) == 1) | null_key)
        .orderBy(_TIEBREAK)
        .drop(_ROW_NUMBER, _TIEBREAK)
    )


def changed_rows(destination: DataFrame, candidate: DataFrame, keys: Sequence[str], fingerprint: str) -> DataFrame:
    """Candidate rows that are new or whose fingerprint differs from the destination row."""
    existing = destination.select(*[col_ref(k) for k in keys], col_ref(fingerprint))
    return candidate.join(existing, on=list(keys) + [fingerprint], how="left_anti")


def scd1_merged_frame(
    destination: DataFrame,
    candidate: DataFrame,
    keys: Sequence[str],
    fingerprint: str,
) -> DataFrame:
    """Full destination contents after a type-1 merge of ``candidate``.

    Matched keys with a different fingerprint are replaced by the candidate
    row, matched keys with an equal fingerprint keep the destination row,
    unmatched candidate rows are appended and unmatched destination rows are
    kept as they are.
    """
    changes = changed_rows(destination, candidate, keys, fingerprint)
    kept = destination.join(changes.select(*[col_ref(k) for k in keys]), on=list(keys), how="left_anti")
    return SchemaUnifier().union([kept, changes]).frame


@dataclass
class MergeOutcome:
    action: str
    target: str
    candidate_rows: int = 0
    duplicates_dropped: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "target": self.target,
            "candidate_rows": self.candidate_rows,
            "duplicates_dropped": self.duplicates_dropped,
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
        }


class Scd1MergeEngine:
    """Upsert a batch into a persisted table keyed by business key and fingerprint.

    Duplicate keys inside one batch are resolved by keeping the last row in
    input order. Destination rows absent from the batch are never deleted.
    """

    def __init__(
        self,
        hasher: Optional[ChangeHasher] = None,
        logger: Optional[PrintLogger] = None,
        emitter: Optional[Emitter] = None,
    ) -> None:
        self.hasher = hasher or ChangeHasher()
        self.logger = logger
        self.emitter = emitter

    @property
    def fingerprint(self) -> str:
        return self.hasher.column

    def prepare(self, batch: DataFrame, keys: Sequence[str]) -> Tuple[DataFrame, int]:
        check_keys(keys, candidate=batch)
        fingerprinted = self.hasher.with_fingerprint(batch)
        # Materialized once so the tiebreak, the counts and the write all see the same rows.
        candidate = dedup_last_wins(fingerprinted, keys).localCheckpoint()
        duplicates = fingerprinted.count() - candidate.count()
        return candidate, duplicates

    def merge(self, batch: DataFrame, target: "TableTarget", keys: Sequence[str]) -> MergeOutcome:
        keys = list(keys)
        candidate, duplicates = self.prepare(batch, keys)
        if duplicates:
            emit_log(
                self.emitter,
                level="WARN",
                msg="scd1_duplicate_keys_dropped",
                logger=self.logger,
                target=target.describe(),
                duplicates=duplicates,
                keys=keys,
            )
        if not target.exists():
            rows = candidate.count()
            emit_log(
                self.emitter,
                level="WARN",
                msg="scd1_target_absent",
                logger=self.logger,
                target=target.describe(),
                rows=rows,
            )
            target.create(candidate)
            return MergeOutcome(
                action="created",
                target=target.describe(),
                candidate_rows=rows,
                duplicates_dropped=duplicates,
                inserted=rows,
            )

        destination = target.read()
        try:
            check_keys(keys + [self.fingerprint], destination=destination)
        except MergeKeyError as exc:
            raise MergeKeyError(f"Destination {target.describe()} cannot be merged: {exc}", exc.missing) from exc

        changes = changed_rows(destination, candidate, keys, self.fingerprint)
        candidate_rows = candidate.count()
        changed = changes.count()
        inserted = changes.join(destination.select(*[col_ref(k) for k in keys]), on=keys, how="left_anti").count()
        outcome = MergeOutcome(
            action="merged",
            target=target.describe(),
            candidate_rows=candidate_rows,
            duplicates_dropped=duplicates,
            inserted=inserted,
            updated=changed - inserted,
            unchanged=candidate_rows - changed,
        )
        emit_log(
            self.emitter,
            level="INFO",
            msg="scd1_merge_start",
            logger=self.logger,
            target=target.describe(),
            rows=candidate_rows,
        )
        target.apply_scd1(candidate, keys, self.fingerprint)
        emit_log(
            self.emitter,
            level="INFO",
            msg="scd1_merge_applied",
            logger=self.logger,
            **outcome.as_dict(),
        )
        return outcome


__all__ = [
    "MergeOutcome",
    "Scd1MergeEngine",
    "changed_rows",
    "dedup_last_wins",
    "scd1_merged_frame",
]
