# job_alert/sources/__init__.py
from __future__ import annotations

from .base import BaseSource, SourceError
from .registry import all_kinds, build, get, register

# Built-in adapters register themselves on import.
from . import linkedin, remotive, rss, static, synthetic  # noqa: E402,F401  isort:skip

__all__ = [
    "BaseSource",
    "SourceError",
    "all_kinds",
    "build",
    "get",
    "register",
]
