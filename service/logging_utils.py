# service/logging_utils.py
"""
Daily JSONL files for poll-cycle activity and failures.

Environment (read on every write so tests and `.env` changes apply):

    LOG_DIR                 base directory, default ./local/logs
    ACTIVITY_LOG_PREFIX     default "activity"
    ERROR_LOG_PREFIX        default "error"
    ACTIVITY_LOG_MAX_BYTES  move a file aside once it reaches this size; <=0 disables

Files are named <prefix>-YYYY-MM-DD.jsonl, so a new day starts a new file.
"""
from __future__ import annotations

import contextlib
import datetime as _dt
import json
import os
import socket
from typing import Any

_REDACTED = "***REDACTED***"

# substrings of key names whose values never reach disk
_SENSITIVE_KEY_PARTS = frozenset(
    {"password", "token", "apikey", "api_key", "secret", "webhook", "authorization", "cookie"}
)

# Authorization schemes used by chat APIs; the credential after them is dropped.
_AUTH_SCHEMES = frozenset({"bearer", "bot"})

_META = {"host": socket.gethostname(), "pid": os.getpid()}


def write_activity_log(record: dict[str, Any]) -> None:
    """
    Append one activity record (a check, a send, a command) as a JSON line.

    The caller's dict is not modified. I/O errors propagate after one retry.
    """
    _append(_stream_path("ACTIVITY_LOG_PREFIX", "activity"), record)


def write_error_log(record: dict[str, Any]) -> None:
    _append(_stream_path("ERROR_LOG_PREFIX", "error"), record)


def get_activity_log_path() -> str:
    return _stream_path("ACTIVITY_LOG_PREFIX", "activity")


def redact(record: dict[str, Any], keys: set[str] | None = None) -> dict[str, Any]:
    """Scrubbed deep copy: sensitive keys are masked, `Bot x`/`Bearer x` values lose the credential."""
    return _scrub(record, frozenset(keys) if keys else _SENSITIVE_KEY_PARTS)


def _stream_path(prefix_var: str, default_prefix: str) -> str:
    prefix = os.getenv(prefix_var, default_prefix)
    base = os.getenv("LOG_DIR") or "./local/logs"
    return os.path.join(base, f"{prefix}-{_dt.date.today().isoformat()}.jsonl")


def _is_sensitive(key: Any, parts: frozenset[str]) -> bool:
    if not isinstance(key, str):
        return False
    lowered = key.lower()
    return any(part in lowered for part in parts)


def _scrub(value: Any, parts: frozenset[str]) -> Any:
    if isinstance(value, dict):
        return {k: (_REDACTED if _is_sensitive(k, parts) else _scrub(v, parts)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(item, parts) for item in value]
    if isinstance(value, str):
        scheme, space, _credential = value.partition(" ")
        if space and scheme.lower() in _AUTH_SCHEMES:
            return f"{scheme} {_REDACTED}"
    return value


def _size_limit() -> int:
    try:
        return int(os.getenv("ACTIVITY_LOG_MAX_BYTES", "0"))
    except ValueError:
        return 0


def _roll_over(path: str) -> None:
    limit = _size_limit()
    if limit <= 0:
        return
    try:
        too_big = os.path.getsize(path) >= limit
    except FileNotFoundError:
        return
    if too_big:
        suffix = _dt.datetime.now().strftime("%Y%m%d-%H%M%S")
        with contextlib.suppress(FileNotFoundError):
            os.replace(path, f"{path}.{suffix}")


def _encode(record: dict[str, Any]) -> bytes:
    line = dict(_scrub(record, _SENSITIVE_KEY_PARTS))
    line.setdefault("ts", _dt.datetime.now(_dt.timezone.utc).isoformat())
    line["_meta"] = dict(_META)
    # default=str: Job ids, datetimes and enums are logged as their text form
    return (json.dumps(line, ensure_ascii=False, separators=(",", ":"), default=str) + "\n").encode("utf-8")


def _append(path: str, record: dict[str, Any]) -> None:
    data = _encode(record)
    for attempt in (1, 2):
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            _roll_over(path)
            # single O_APPEND write keeps lines whole across scheduler threads
            fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o644)
            try:
                os.write(fd, data)
            finally:
                os.close(fd)
            return
        except OSError:
            if attempt == 2:
                raise
