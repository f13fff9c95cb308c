from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from .endpoints.base import WriteMode
from .merge.hashing import FINGERPRINT_ALGORITHMS
from .schema.unifier import ConflictPolicy

JOB_MODES = {"align", "union", "archive", "scd1"}


def validate_config(cfg: Dict[str, Any]) -> None:
    def _validate_location(entry: Any, context: str) -> None:
        if not isinstance(entry, dict):
            raise ValueError(f"{context} must be an object")
        if not entry.get("path") and not entry.get("table"):
            raise ValueError(f"{context} requires 'path' or 'table'")
        options = entry.get("options")
        if options is not None and not isinstance(options, dict):
            raise ValueError(f"{context}.options must be an object when provided")

    def _validate_schema(entries: Any, context: str) -> None:
        if not isinstance(entries, list) or not entries:
            raise ValueError(f"{context}.schema must be a non-empty list")
        seen = set()
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError(f"{context}.schema entries must be objects")
            name = entry.get("name")
            dtype = entry.get("type") or entry.get("data_type")
            if not name or not isinstance(name, str):
                raise ValueError(f"{context}.schema entries require a string 'name'")
            if not dtype or not isinstance(dtype, str):
                raise ValueError(f"{context}.schema entry '{name}' requires a string 'type'")
            if name in seen:
                raise ValueError(f"{context}.schema declares '{name}' twice")
            seen.add(name)
            if "nullable" in entry and not isinstance(entry["nullable"], bool):
                raise ValueError(f"{context}.schema entry '{name}'.nullable must be a boolean")

    def _validate_keys(keys: Any, context: str) -> None:
        if not isinstance(keys, list) or not keys:
            raise ValueError(f"{context}.keys must be a non-empty list")
        if not all(isinstance(key, str) and key for key in keys):
            raise ValueError(f"{context}.keys entries must be strings")

    if not isinstance(cfg, dict):
        raise ValueError("Configuration must be an object")
    runtime = cfg.get("runtime", {})
    if not isinstance(runtime, dict):
        raise ValueError("runtime must be an object when provided")
    spark_conf = runtime.get("spark_conf")
    if spark_conf is not None and not isinstance(spark_conf, dict):
        raise ValueError("runtime.spark_conf must be an object when provided")
    jobs = cfg.get("jobs")
    if not isinstance(jobs, list) or not jobs:
        raise ValueError("Missing config key: jobs")
    names = set()
    for idx, job in enumerate(jobs):
        context = f"jobs[{idx}]"
        if not isinstance(job, dict):
            raise ValueError(f"{context} must be an object")
        name = job.get("name")
        if not name or not isinstance(name, str):
            raise ValueError(f"{context}.name must be a string")
        if name in names:
            raise ValueError(f"Duplicate job name: {name}")
        names.add(name)
        mode = str(job.get("mode", "")).lower()
        if mode not in JOB_MODES:
            raise ValueError(f"Unsupported job mode '{job.get('mode')}' in {context}")
        sources = job.get("sources")
        if not isinstance(sources, list) or not sources:
            raise ValueError(f"{context}.sources must be a non-empty list")
        for s_idx, source in enumerate(sources):
            _validate_location(source, f"{context}.sources[{s_idx}]")
        _validate_location(job.get("target"), f"{context}.target")
        try:
            WriteMode.parse(job["target"].get("mode"))
        except ValueError as exc:
            raise ValueError(f"{context}.target.mode: {exc}") from exc
        if mode == "align" or "schema" in job:
            _validate_schema(job.get("schema"), context)
        if mode in {"archive", "scd1"}:
            _validate_keys(job.get("keys"), context)
        union_cfg = job.get("union")
        if union_cfg is not None:
            if not isinstance(union_cfg, dict):
                raise ValueError(f"{context}.union must be an object when provided")
            ConflictPolicy.from_config(union_cfg)
        fp_cfg = job.get("fingerprint")
        if fp_cfg is not None:
            if not isinstance(fp_cfg, dict):
                raise ValueError(f"{context}.fingerprint must be an object when provided")
            algorithm = str(fp_cfg.get("algorithm", "murmur3")).lower()
            if algorithm not in FINGERPRINT_ALGORITHMS:
                raise ValueError(f"Unsupported fingerprint algorithm '{algorithm}' in {context}")
            exclude = fp_cfg.get("exclude")
            if exclude is not None and not isinstance(exclude, (list, str)):
                raise ValueError(f"{context}.fingerprint.exclude must be a list or string")
        cast_cfg = job.get("cast")
        if cast_cfg is not None and not isinstance(cast_cfg, dict):
            raise ValueError(f"{context}.cast must be an object when provided")


def filter_jobs(jobs: Iterable[Dict[str, Any]], only_jobs: Optional[str]) -> List[Dict[str, Any]]:
    if not only_jobs:
        return list(jobs)
    allow = {s.strip().lower() for s in only_jobs.split(",") if s.strip()}
    return [job for job in jobs if str(job.get("name", "")).lower() in allow]


__all__ = ["JOB_MODES", "filter_jobs", "validate_config"]
