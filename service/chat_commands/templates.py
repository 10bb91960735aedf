# service/chat_commands/templates.py
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from modules.job_alert.lib.config import DIMENSIONS, allowed_values
from modules.job_alert.lib.render import source_label

CHECKING = "Checking for new job postings..."


def help_text() -> str:
    lines = [
        "**Job Alert - Help**",
        "`!jobfilter <filter> <value>` - change a search filter; `!jobfilter` alone shows the current ones",
    ]
    for dim in DIMENSIONS:
        lines.append(f"  - `{dim}`: {allowed_values(dim)}")
    lines += [
        "`!jobcheck` - check for new job postings now",
        "`!jobsources` - list job sources in priority order",
        "`!jobclear` - forget every job already posted",
        "`!jobhelp` - show this help message",
    ]
    return "\n".join(lines)


def filters_text(current: Mapping[str, Any]) -> str:
    rows = [f"- {k}: {v}" for k, v in current.items()]
    return "**Current filters**\n" + "\n".join(rows)


def filter_set_text(dimension: str, current: Mapping[str, Any]) -> str:
    key = "interval_minutes" if dimension == "interval" else dimension
    value = current.get(key)
    if value in ("NONE", "ANY"):
        return f"{dimension} filter set to: No filter"
    return f"{dimension} filter set to: {value}"


def sources_text(labels: Iterable[str], strategy: str) -> str:
    labels = list(labels)
    if not labels:
        return "No job sources are enabled."
    mode = "first source with results wins" if strategy == "fallback" else "all sources, merged"
    rows = [f"{i}. {source_label(lbl)} (`{lbl}`)" for i, lbl in enumerate(labels, start=1)]
    return f"**Job sources** ({mode})\n" + "\n".join(rows)


def cleared_text(dropped: int) -> str:
    return f"Job history cleared ({dropped} entries removed)."


def unknown_text(name: str) -> str:
    return f"Unknown command `{name}`. Type `!jobhelp` for the list of commands."
