from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

from ..config import FilterConfig, FilterSnapshot
from ..logging_bridge import error as log_error
from ..models import SourceResult


class SourceError(Exception):
    """Raised inside an adapter for an unusable payload; never escapes fetch()."""


class BaseSource(ABC):
    """
    Abstract source adapter.

    Contract:
      - fetch(filters) returns ONE SourceResult and never raises; any failure
        (network, non-2xx, malformed payload) becomes items=[] plus an error string.
      - The filter snapshot is taken once at the start of every fetch, so a
        "set filter" lands on the next poll.
      - Return every candidate found (seen-filtering happens in the Aggregator).
      - Do NOT send messages, print, or mutate shared state.
    """

    # Concrete subclasses MUST set this to a stable string, e.g. "remotive", "rss", "linkedin"
    kind: str = ""

    def __init__(self, params: dict[str, Any] | None = None) -> None:
        self.params: dict[str, Any] = dict(params or {})

    @property
    def label(self) -> str:
        return str(self.params.get("label") or self.kind)

    def fetch(self, filters: FilterConfig | FilterSnapshot) -> SourceResult:
        snapshot = filters.snapshot() if isinstance(filters, FilterConfig) else filters
        t0 = time.perf_counter_ns()
        try:
            result = self._fetch(snapshot)
        except Exception as e:
            log_error({
                "component": "job_alert.sources",
                "op": "fetch",
                "source": self.label,
                "error": repr(e),
                "duration_us": int((time.perf_counter_ns() - t0) // 1000),
            })
            return SourceResult(source=self.label, items=[], errors=[f"{self.label}: {e!r}"])

        cap = max(1, snapshot.limit) * 3
        if len(result.items) > cap:
            result.items = result.items[:cap]
        return result

    @abstractmethod
    def _fetch(self, filters: FilterSnapshot) -> SourceResult:
        """Adapter-specific fetch; may raise, the public fetch() contains it."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any held resources (HTTP sessions)."""
