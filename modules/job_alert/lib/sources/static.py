from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from ..config import FilterSnapshot
from ..models import Job, SourceResult
from ..normalize import normalize_record
from .base import BaseSource
from .registry import register

# Job-board landing pages; {q} and {loc} are url-encoded query values.
_LANDING_PAGES = (
    ("LinkedIn", "https://www.linkedin.com/jobs/search/?{q}"),
    ("Indeed", "https://www.indeed.com/jobs?{q}"),
    ("Remotive", "https://remotive.com/remote-jobs?{q}"),
)


@register
class StaticSource(BaseSource):
    """
    Zero-network fallback list.

    params:
      items: list[{title, company, location?, link?, posted_time?, description?}]
             # replaces the built-in landing-page list when given

    Without `items`, emits one "browse" posting per job board, built from the
    current keyword and location. Ids are composites, so they stay stable for a
    given search and change when the search changes.
    """

    kind = "static"

    def _fetch(self, filters: FilterSnapshot) -> SourceResult:
        raw_items = self.params.get("items")
        if not isinstance(raw_items, list):
            raw_items = self._landing_pages(filters)

        items: list[Job] = []
        for item in raw_items:
            if not isinstance(item, dict) or not str(item.get("title") or "").strip():
                continue
            raw = dict(item)
            raw.setdefault("disambiguator", str(item.get("link") or ""))
            items.append(normalize_record(raw, self.kind))
        return SourceResult(source=self.label, items=items)

    @staticmethod
    def _landing_pages(filters: FilterSnapshot) -> list[dict[str, Any]]:
        keyword = filters.keyword or "jobs"
        out = []
        for board, template in _LANDING_PAGES:
            query = urlencode({"keywords": keyword, "location": filters.location})
            if board == "Indeed":
                query = urlencode({"q": keyword, "l": filters.location})
            elif board == "Remotive":
                query = urlencode({"search": keyword})
            out.append({
                "title": f"Latest {keyword} openings",
                "company": board,
                "location": filters.location,
                "link": template.format(q=query),
                "posted_time": "Recently",
                "description": f"Browse the newest {keyword} postings on {board}.",
            })
        return out
