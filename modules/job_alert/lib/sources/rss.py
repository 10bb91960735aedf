# modules/job_alert/lib/sources/rss.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

import feedparser

from ..config import FilterSnapshot
from ..http_client import HttpClient
from ..logging_bridge import activity as log_activity
from ..models import Job, SourceResult
from ..normalize import normalize_record, strip_markup
from .base import BaseSource
from .registry import register

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Feed:
    url: str
    label: str  # e.g., "weworkremotely"


DEFAULT_FEEDS = (
    _Feed("https://weworkremotely.com/categories/remote-programming-jobs.rss", "weworkremotely"),
    _Feed("https://remoteok.com/remote-jobs.rss", "remoteok"),
)

_FEED_HEADERS = {"Accept": "application/rss+xml, application/xml;q=0.9, */*;q=0.8"}


def _normalize_feeds(raw: object) -> list[_Feed]:
    """
    Accept either:
      - ["https://...rss", ...]                       (label derived from host)
      - [{"url": "...", "label": "wwr"}, ...]
    """
    out: list[_Feed] = []
    if not isinstance(raw, list):
        return out
    for item in raw:
        if isinstance(item, str) and item.strip():
            url = item.strip()
            host = url.split("//", 1)[-1].split("/", 1)[0]
            out.append(_Feed(url, host.removeprefix("www.")))
        elif isinstance(item, dict):
            url = str(item.get("url") or "").strip()
            label = str(item.get("label") or item.get("source") or "").strip()
            if url:
                out.append(_Feed(url, label or url))
    return out


def split_company_title(title_raw: str) -> tuple[str, str]:
    """'Acme: Backend Engineer' -> ('Acme', 'Backend Engineer'); no company -> ('', title)."""
    if ":" in title_raw:
        left, right = title_raw.split(":", 1)
        if left.strip() and right.strip():
            return left.strip(), right.strip()
    return "", title_raw.strip()


def matches_keyword(keyword: str, *texts: str) -> bool:
    """Case-insensitive substring test; an empty keyword accepts everything."""
    needle = (keyword or "").strip().casefold()
    if not needle:
        return True
    return any(needle in (t or "").casefold() for t in texts)


@register
class RssSource(BaseSource):
    """
    RSS/Atom feeds from several job boards, parsed with feedparser.

    params:
      feeds: list of URLs or {"url", "label"} objects (default: We Work Remotely, Remote OK)

    Only entries whose title or description contain the active keyword are kept,
    at most an equal share of the fetch cap per feed.
    One failing feed does not hide the others; its error is reported alongside.
    """

    kind = "rss"

    def __init__(self, params: dict[str, Any] | None = None, client: HttpClient | None = None) -> None:
        super().__init__(params)
        self._client = client or HttpClient()

    def _fetch(self, filters: FilterSnapshot) -> SourceResult:
        feeds = _normalize_feeds(self.params.get("feeds")) or list(DEFAULT_FEEDS)
        items: list[Job] = []
        errors: list[str] = []
        # each feed gets an equal slice of the per-fetch cap
        share = math.ceil(max(1, filters.limit) * 3 / len(feeds))

        for feed in feeds:
            try:
                body = self._client.get_bytes(feed.url, headers=_FEED_HEADERS)
                parsed = feedparser.parse(body)
            except Exception as e:
                errors.append(f"rss:{feed.label}: {e!r}")
                continue

            entries = list(getattr(parsed, "entries", []) or [])
            if not entries and getattr(parsed, "bozo", False):
                errors.append(f"rss:{feed.label}: unparseable feed ({parsed.get('bozo_exception')!r})")
                continue

            kept = 0
            for entry in entries:
                if kept >= share:
                    break
                job = self._entry_to_job(entry, feed, filters.keyword)
                if job is not None:
                    items.append(job)
                    kept += 1

            log_activity({
                "component": "job_alert.sources.rss",
                "op": "feed",
                "feed": feed.label,
                "entries": len(entries),
                "kept": kept,
            })

        return SourceResult(source=self.label, items=items, errors=errors)

    def _entry_to_job(self, entry: Any, feed: _Feed, keyword: str) -> Job | None:
        title_raw = strip_markup(entry.get("title"))
        description = entry.get("summary") or entry.get("description") or ""
        if not matches_keyword(keyword, title_raw, strip_markup(description)):
            return None

        company, title = split_company_title(title_raw)
        raw = {
            "id": entry.get("id") or entry.get("guid") or entry.get("link"),
            "title": title,
            "company": company or entry.get("author") or "",
            "location": entry.get("location") or entry.get("region") or "",
            "link": entry.get("link"),
            "published": entry.get("published") or entry.get("updated"),
            "summary": description,
        }
        return normalize_record(raw, f"rss:{feed.label}")

    def close(self) -> None:
        self._client.close()
