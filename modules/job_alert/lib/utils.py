from __future__ import annotations

import os
import re
from datetime import datetime, timezone
from typing import Any

_WS_RE = re.compile(r"\s+")


def truthy(v: Any) -> bool:
    """
    Normalize common truthy inputs from env/kwargs.
    Accepts bools or strings like: '1', 'true', 'yes', 'on'.
    """
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "on", "y", "t"}


def now_iso() -> str:
    """
    UTC ISO-8601 timestamp with 'Z' suffix.
    """
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def collapse_ws(s: str | None) -> str:
    return _WS_RE.sub(" ", s or "").strip()


def clip(s: str | None, limit: int, marker: str = "...") -> str:
    """
    Cut `s` to at most `limit` characters of content, appending `marker` when anything was dropped.
    """
    text = (s or "").strip()
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit].rstrip() + marker


def getenv_str(name: str, default: str | None = None) -> str | None:
    """
    Typed wrapper for environment access. Empty strings count as unset.
    """
    val = os.getenv(name)
    return val if val not in (None, "") else default
