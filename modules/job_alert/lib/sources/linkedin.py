# modules/job_alert/lib/sources/linkedin.py
from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup  # pip install beautifulsoup4 html5lib

from ..config import FilterSnapshot
from ..http_client import HttpClient
from ..models import Job, SourceResult
from ..normalize import normalize_record
from .base import BaseSource
from .registry import register

# Filter value -> LinkedIn query code
EXPERIENCE_CODES = {
    "INTERNSHIP": "1",
    "ENTRY_LEVEL": "2",
    "ASSOCIATE": "3",
    "MID_SENIOR": "4",
    "DIRECTOR": "5",
    "EXECUTIVE": "6",
}
JOB_TYPE_CODES = {
    "FULL_TIME": "F",
    "PART_TIME": "P",
    "CONTRACT": "C",
    "TEMPORARY": "T",
    "INTERNSHIP": "I",
    "VOLUNTEER": "V",
}
DATE_RANGE_CODES = {
    "PAST_24H": "r86400",
    "PAST_WEEK": "r604800",
    "PAST_MONTH": "r2592000",
}
REMOTE_CODES = {
    "ON_SITE": "1",
    "REMOTE": "2",
    "HYBRID": "3",
}


def build_query(filters: FilterSnapshot) -> dict[str, str]:
    """Search parameters for the guest job search page, newest first."""
    q = {"keywords": filters.keyword, "location": filters.location}
    for param, table, value in (
        ("f_E", EXPERIENCE_CODES, filters.experience),
        ("f_JT", JOB_TYPE_CODES, filters.job_type),
        ("f_TPR", DATE_RANGE_CODES, filters.date_range),
        ("f_WT", REMOTE_CODES, filters.remote),
    ):
        if value and value in table:
            q[param] = table[value]
    q["sortBy"] = "DD"
    return q


def parse_cards(html: str) -> list[dict[str, Any]]:
    """
    Raw records from the job cards of a search results page.
    Cards without an id, a title or a company are skipped.
    """
    soup = BeautifulSoup(html, "html5lib")
    out: list[dict[str, Any]] = []
    for card in soup.select(".job-search-card, .base-search-card"):
        urn = (card.get("data-entity-urn") or "").strip()
        job_id = urn.rsplit(":", 1)[-1] if urn else (card.get("data-id") or "").strip()

        title_el = card.select_one(".base-search-card__title")
        company_el = card.select_one(".base-search-card__subtitle")
        location_el = card.select_one(".job-search-card__location")
        link_el = card.select_one("a.base-card__full-link") or card.select_one("a[href]")
        time_el = card.select_one("time")

        title = title_el.get_text(" ", strip=True) if title_el else ""
        company = company_el.get_text(" ", strip=True) if company_el else ""
        if not (job_id and title and company):
            continue

        href = (link_el.get("href") or "").strip() if link_el else ""
        out.append({
            "id": job_id,
            "title": title,
            "company": company,
            "location": location_el.get_text(" ", strip=True) if location_el else "",
            "link": href.split("?", 1)[0] if href else None,
            "posted_time": time_el.get_text(" ", strip=True) if time_el else "",
        })
    return out


@register
class LinkedInSource(BaseSource):
    """
    LinkedIn public (guest) job search, scraped from HTML.

    params:
      url: str   # default https://www.linkedin.com/jobs/search/

    Reads every filter dimension. Anything that is not a result page (login
    wall, captcha) simply yields no cards.
    """

    kind = "linkedin"
    SEARCH_URL = "https://www.linkedin.com/jobs/search/"

    def __init__(self, params: dict[str, Any] | None = None, client: HttpClient | None = None) -> None:
        super().__init__(params)
        self._client = client or HttpClient()

    def _fetch(self, filters: FilterSnapshot) -> SourceResult:
        html = self._client.get_text(str(self.params.get("url") or self.SEARCH_URL), params=build_query(filters))
        seen: set[str] = set()
        items: list[Job] = []
        for raw in parse_cards(html):
            job = normalize_record(raw, self.kind)
            if job.id in seen:
                continue
            seen.add(job.id)
            items.append(job)
        return SourceResult(source=self.label, items=items)

    def close(self) -> None:
        self._client.close()
