from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

RUN_ID = uuid.uuid4().hex


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple, set)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    return str(value)


class PrintLogger:
    """Structured logger emitting one JSON document per event."""

    _LEVELS = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARN": logging.WARNING,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
    }

    def __init__(self, job_name: str = "tabular_recon", level: str = "INFO", logger: Optional[logging.Logger] = None) -> None:
        self.job_name = job_name
        self.spark = None
        self._logger = logger or logging.getLogger(f"tabular_recon.{job_name}")
        self._logger.setLevel(self._LEVELS.get(level.upper(), logging.INFO))
        if not self._logger.handlers and not logging.getLogger().handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)

    def log(self, level: str, msg: str, **fields: Any) -> None:
        lvl = self._LEVELS.get(level.upper(), logging.INFO)
        if not self._logger.isEnabledFor(lvl):
            return
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level.upper(),
            "job": self.job_name,
            "run_id": RUN_ID,
            "msg": msg,
        }
        payload.update({k: _to_jsonable(v) for k, v in fields.items()})
        self._logger.log(lvl, json.dumps(payload, sort_keys=True))

    def debug(self, msg: str, **fields: Any) -> None:
        self.log("DEBUG", msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self.log("INFO", msg, **fields)

    def warn(self, msg: str, **fields: Any) -> None:
        self.log("WARN", msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        self.log("ERROR", msg, **fields)


__all__ = ["RUN_ID", "PrintLogger"]
