# modules/job_alert/lib/sources/remotive.py
from __future__ import annotations

from typing import Any

from ..config import FilterSnapshot
from ..http_client import HttpClient
from ..models import Job, SourceResult
from ..normalize import normalize_record
from .base import BaseSource, SourceError
from .registry import register


@register
class RemotiveSource(BaseSource):
    """
    Remotive public JSON API (structured query, no auth).

    params:
      url: str        # default https://remotive.com/api/remote-jobs
      category: str   # optional Remotive category slug, e.g. "software-dev"

    Reads `keyword` and `limit` from the filters; requests limit*3 rows so the
    seen-filter still leaves enough new ones.
    """

    kind = "remotive"
    API_URL = "https://remotive.com/api/remote-jobs"

    def __init__(self, params: dict[str, Any] | None = None, client: HttpClient | None = None) -> None:
        super().__init__(params)
        self._client = client or HttpClient()

    def _fetch(self, filters: FilterSnapshot) -> SourceResult:
        query: dict[str, Any] = {"search": filters.keyword, "limit": max(1, filters.limit) * 3}
        category = str(self.params.get("category") or "").strip()
        if category:
            query["category"] = category

        data = self._client.get_json(str(self.params.get("url") or self.API_URL), params=query)
        rows = data.get("jobs") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise SourceError("malformed payload: no 'jobs' list")

        items: list[Job] = []
        for row in rows:
            if isinstance(row, dict):
                items.append(normalize_record(row, self.kind))
        return SourceResult(source=self.label, items=items)

    def close(self) -> None:
        self._client.close()
