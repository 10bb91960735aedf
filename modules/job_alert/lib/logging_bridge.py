from __future__ import annotations

import logging
from typing import Any

# The JSONL writer lives in the service package; the core library also runs
# without it (one-shot use, tests of lib/ alone), so it is optional here.
try:
    from service import logging_utils as _jsonl
except ImportError:
    _jsonl = None

_SECRET_SUFFIXES = ("token", "secret", "password", "webhook_url", "api_key", "apikey")
_MASK = "***REDACTED***"

_ACTIVITY = logging.getLogger("job_alert.activity")
_ERROR = logging.getLogger("job_alert.error")


def _masked(record: dict[str, Any]) -> dict[str, Any]:
    """Copy of `record` with credential-looking top-level values masked."""
    out = dict(record)
    for key in out:
        name = str(key).lower()
        if name == "authorization" or name.endswith(_SECRET_SUFFIXES):
            out[key] = _MASK
    return out


def _emit(writer_name: str, logger: logging.Logger, level: int, record: dict[str, Any]) -> None:
    payload = _masked(record)
    logger.log(level, "%s.%s %s", payload.get("component", "?"), payload.get("op", "?"), payload)
    writer = getattr(_jsonl, writer_name, None)
    if writer is None:
        return
    try:
        writer(payload)
    except Exception:
        # log write failures never propagate
        logging.getLogger(__name__).debug("%s failed", writer_name, exc_info=True)


def activity(record: dict[str, Any]) -> None:
    """Structured record of something that happened (`component` + `op` keys)."""
    _emit("write_activity_log", _ACTIVITY, logging.DEBUG, record)


def error(record: dict[str, Any]) -> None:
    """Structured failure record; also a WARNING on the console."""
    _emit("write_error_log", _ERROR, logging.WARNING, record)
