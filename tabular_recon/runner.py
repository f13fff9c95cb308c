from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from pyspark.sql import DataFrame, SparkSession

from .common import PrintLogger
from .endpoints.base import TableTarget, WriteMode
from .endpoints.factory import EndpointFactory
from .errors import ReconcileError
from .events import Emitter, emit_log
from .merge.archive import ArchivalDiff
from .merge.hashing import ChangeHasher
from .merge.scd1 import Scd1MergeEngine
from .results import JobResult, RunSummary
from .schema.model import TableSchema
from .schema.reconciler import SchemaReconciler
from .schema.unifier import ConflictPolicy, SchemaUnifier


class _JobRun:
    """One configured job: read sources, reshape, then write or merge into the target."""

    def __init__(
        self,
        spark: SparkSession,
        job_cfg: Dict[str, Any],
        logger: PrintLogger,
        emitter: Optional[Emitter] = None,
    ) -> None:
        self.spark = spark
        self.cfg = job_cfg
        self.logger = logger
        self.emitter = emitter
        self.name = job_cfg["name"]
        self.mode = str(job_cfg["mode"]).lower()
        self.policy = ConflictPolicy.from_config(job_cfg.get("union"))
        self.schema = TableSchema.from_config(job_cfg["schema"]) if job_cfg.get("schema") else None
        self.reconciler = SchemaReconciler(strict_casts=bool((job_cfg.get("cast") or {}).get("strict", True)))
        self.keys: List[str] = list(job_cfg.get("keys") or [])

    def _sources(self) -> List[DataFrame]:
        return [EndpointFactory.read_source(self.spark, source) for source in self.cfg["sources"]]

    def _shape(self, df: DataFrame) -> DataFrame:
        return self.reconciler.align(df, self.schema) if self.schema is not None else df

    def _write(self, df: DataFrame, target: TableTarget) -> JobResult:
        mode = WriteMode.parse(self.cfg["target"].get("mode"))
        rows = df.count()
        target.write(df, mode)
        return JobResult(name=self.name, mode=self.mode, status="success", target=target.describe(), rows=rows)

    def execute(self) -> JobResult:
        target = EndpointFactory.build_target(self.spark, self.cfg["target"], logger=self.logger)
        frames = self._sources()
        if self.mode == "align":
            batch = frames[0] if len(frames) == 1 else SchemaUnifier(self.policy).union(frames).frame
            return self._write(self._shape(batch), target)
        if self.mode == "union":
            result = SchemaUnifier(self.policy).union(frames)
            outcome = self._write(self._shape(result.frame), target)
            outcome.detail = result.diagnostics.as_dict()
            return outcome
        if self.mode == "archive":
            shaped = [self._shape(df) for df in frames]
            archived = ArchivalDiff(self.policy).diff_many(shaped[0], shaped[1:], self.keys)
            return self._write(archived, target)
        fp_cfg = self.cfg.get("fingerprint") or {}
        hasher = ChangeHasher.from_config(fp_cfg)
        batch = frames[0] if len(frames) == 1 else SchemaUnifier(self.policy).union(frames).frame
        batch = self._shape(batch)
        if fp_cfg.get("recompute"):
            batch = hasher.with_fingerprint(batch, recompute=True)
        engine = Scd1MergeEngine(hasher, logger=self.logger, emitter=self.emitter)
        outcome = engine.merge(batch, target, self.keys)
        return JobResult(
            name=self.name,
            mode=self.mode,
            status="success",
            target=outcome.target,
            rows=outcome.candidate_rows,
            detail=outcome.as_dict(),
        )


def run_jobs(
    *,
    spark: SparkSession,
    jobs: Iterable[Dict[str, Any]],
    logger: PrintLogger,
    emitter: Optional[Emitter] = None,
    fail_fast: bool = False,
) -> Dict[str, Any]:
    results: List[JobResult] = []
    for job_cfg in jobs:
        name = job_cfg.get("name")
        mode = str(job_cfg.get("mode", "")).lower()
        emit_log(emitter, level="INFO", msg="job_started", logger=logger, job_name=name, mode=mode)
        try:
            result = _JobRun(spark, job_cfg, logger, emitter).execute()
        except ReconcileError as exc:
            emit_log(
                emitter,
                level="ERROR",
                msg="job_rejected",
                logger=logger,
                job_name=name,
                error_type=type(exc).__name__,
                err=str(exc),
            )
            if fail_fast:
                raise
            results.append(JobResult(name=name, mode=mode, status="rejected", detail=str(exc)))
            continue
        except Exception as exc:
            emit_log(emitter, level="ERROR", msg="job_failed", logger=logger, job_name=name, err=str(exc))
            if fail_fast:
                raise
            results.append(JobResult(name=name, mode=mode, status="error", detail=str(exc)))
            continue
        emit_log(
            emitter,
            level="INFO",
            msg="job_finished",
            logger=logger,
            job_name=name,
            target=result.target,
            rows=result.rows,
        )
        results.append(result)
    payload = RunSummary.from_results(results).to_dict()
    payload["jobs"] = [result.to_dict() for result in results]
    return payload


__all__ = ["run_jobs"]
