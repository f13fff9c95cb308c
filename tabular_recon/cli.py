from __future__ import annotations

import argparse
import json
from typing import Any, Dict, List, Optional

from .common import PrintLogger
from .orchestrator_helpers import filter_jobs, validate_config
from .runner import run_jobs
from .tools.spark import SparkTool


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tabular_recon")
    parser.add_argument("--config", required=True, help="Path to the JSON job configuration")
    parser.add_argument("--only-jobs", help="Comma separated job names to run", default=None)
    parser.add_argument(
        "--output-json",
        help="Optional path to write the run summary as JSON",
        default=None,
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop at the first failing job instead of recording it and continuing",
        default=False,
    )
    parser.add_argument("--log-level", default=None, help="Override runtime.log_level")
    return parser.parse_args(argv)


def run_cli(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    with open(args.config, "r", encoding="utf-8") as handle:
        cfg: Dict[str, Any] = json.load(handle)
    validate_config(cfg)
    jobs = filter_jobs(cfg["jobs"], args.only_jobs)
    if not jobs:
        print(json.dumps({"status": "no_jobs"}))
        return
    runtime = cfg.get("runtime", {})
    logger = PrintLogger(
        job_name=runtime.get("job_name", "tabular_recon"),
        level=args.log_level or runtime.get("log_level", "INFO"),
    )
    tool = SparkTool.from_config(cfg)
    logger.spark = tool.spark
    try:
        results = run_jobs(spark=tool.spark, jobs=jobs, logger=logger, fail_fast=args.fail_fast)
    finally:
        tool.stop()
    if args.output_json:
        with open(args.output_json, "w", encoding="utf-8") as handle:
            json.dump(results, handle, indent=2, sort_keys=True)
    else:
        print(json.dumps(results, indent=2, sort_keys=True))
    if results["summary"]["failed"]:
        raise SystemExit(2)


__all__ = ["parse_args", "run_cli"]
