from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable


@dataclass
class JobResult:
    name: str
    mode: str
    status: str
    target: str | None = None
    rows: int | None = None
    detail: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "mode": self.mode,
            "status": self.status,
            "target": self.target,
            "rows": self.rows,
            "detail": self.detail,
        }


@dataclass
class RunSummary:
    total: int
    succeeded: int
    failed: int

    @classmethod
    def from_results(cls, results: Iterable[JobResult]) -> "RunSummary":
        total = succeeded = failed = 0
        for result in results:
            total += 1
            if (result.status or "").lower() == "success":
                succeeded += 1
            else:
                failed += 1
        return cls(total=total, succeeded=succeeded, failed=failed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "completed" if not self.failed else "completed_with_errors",
            "summary": {
                "total": self.total,
                "succeeded": self.succeeded,
                "failed": self.failed,
            },
        }
