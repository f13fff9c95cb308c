from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .common import PrintLogger


class Emitter:
    """Fan-out of job events to registered subscribers."""

    def __init__(self) -> None:
        self._subscribers: List[Callable[[Dict[str, Any]], None]] = []

    def subscribe(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        self._subscribers.append(callback)

    def emit(self, event: Dict[str, Any]) -> None:
        for callback in list(self._subscribers):
            callback(event)


def emit_log(
    emitter: Optional[Emitter],
    level: str,
    msg: str,
    logger: Optional[PrintLogger] = None,
    **fields: Any,
) -> None:
    if logger is not None:
        logger.log(level, msg, **fields)
    if emitter is not None:
        event = {"level": level.upper(), "msg": msg}
        event.update(fields)
        emitter.emit(event)


__all__ = ["Emitter", "emit_log"]
