from .archive import ArchivalDiff, check_keys, get_archived
from .hashing import DEFAULT_FINGERPRINT_COLUMN, ChangeHasher, add_fingerprint
from .scd1 import MergeOutcome, Scd1MergeEngine, changed_rows, dedup_last_wins, scd1_merged_frame

__all__ = [
    "ArchivalDiff",
    "ChangeHasher",
    "DEFAULT_FINGERPRINT_COLUMN",
    "MergeOutcome",
    "Scd1MergeEngine",
    "add_fingerprint",
    "changed_rows",
    "check_keys",
    "dedup_last_wins",
    "get_archived",
    "scd1_merged_frame",
]
