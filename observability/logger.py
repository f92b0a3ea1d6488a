"""Structured event logging for bouncer turns, sessions and signatures.

Each event is written twice: a compact ``key=value`` line for humans
(console and ``*-human.log``) and a JSON line for machines (``LOG_FILE``).
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any, Callable, Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "1") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/bouncer.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

HUMAN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s :: %(message)s"
HUMAN_FIELDS = ("project_id", "turn", "decision", "knowledge", "vibe", "nonce", "allocation", "ms", "error")

_logger = logging.getLogger("bouncer")
_logger.setLevel(LOG_LEVEL)
_logger.propagate = False


def _json_only(record: logging.LogRecord) -> bool:
    return getattr(record, "is_json", False) is True


def _human_only(record: logging.LogRecord) -> bool:
    return not _json_only(record)


def _handler(
    handler: logging.Handler,
    accept: Callable[[logging.LogRecord], bool],
    fmt: Optional[str] = None,
) -> logging.Handler:
    handler.setLevel(LOG_LEVEL)
    if fmt:
        handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(accept)
    return handler


def _rotating(path: str) -> logging.Handler:
    return logging.handlers.RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)


def _human_log_path() -> str:
    base = LOG_FILE[: -len(".log")] if LOG_FILE.endswith(".log") else LOG_FILE
    return f"{base}-human.log"


def _ensure_handlers() -> None:
    if _logger.handlers:
        return
    _logger.addHandler(_handler(logging.StreamHandler(stream=sys.stdout), _human_only, HUMAN_FORMAT))
    if not ENABLE_FILE_LOGS:
        return
    log_dir = os.path.dirname(LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    _logger.addHandler(_handler(_rotating(LOG_FILE), _json_only))
    _logger.addHandler(_handler(_rotating(_human_log_path()), _human_only, HUMAN_FORMAT))


def _format_human(evt: dict[str, Any]) -> str:
    extras = " ".join(f"{key}={evt[key]}" for key in HUMAN_FIELDS if key in evt)
    line = f"session={evt.get('session_id')} kind={evt.get('kind')}"
    return f"{line} {extras}" if extras else line


def _emit(message: str, *, level: int, is_json: bool) -> None:
    record = _logger.makeRecord(_logger.name, level, "", 0, message, (), None)
    record.is_json = is_json  # type: ignore[attr-defined]
    _logger.handle(record)


def log_event(kind: str, session_id: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit ``kind`` for ``session_id`` (the user id) with arbitrary fields."""

    _ensure_handlers()
    payload: dict[str, Any] = {
        "ts": time.time(),
        "trace": str(uuid.uuid4()),
        "kind": kind,
        "session_id": session_id,
        **fields,
    }
    _emit(_format_human(payload), level=level, is_json=False)
    if ENABLE_FILE_LOGS:
        _emit(json.dumps(payload, ensure_ascii=False, default=str), level=level, is_json=True)


__all__ = ["log_event"]
