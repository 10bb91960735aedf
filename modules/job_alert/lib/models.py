from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_LOCATION = "Remote/Various"
DEFAULT_LINK = "https://www.linkedin.com/jobs/"


@dataclass(frozen=True)
class Job:
    """
    A single job posting in canonical form, as produced by every source adapter.

    `id` is the only deduplication key; it must be stable across fetches of the
    same posting from the same source (see normalize.derive_job_id).
    """

    id: str
    title: str
    company: str
    location: str = DEFAULT_LOCATION
    link: str | None = None  # synthetic records may not have one
    posted_time: str = ""  # human-readable recency, display only
    source: str = ""  # adapter kind, e.g. "linkedin", "rss:weworkremotely"
    description: str = ""


@dataclass(frozen=True)
class SeenEntry:
    """
    Persisted record of a delivered job. Written once, never mutated.
    """

    id: str
    title: str
    date_found: str  # ISO-8601
    company: str | None = None

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "title": self.title, "dateFound": self.date_found}
        if self.company:
            out["company"] = self.company
        return out

    @classmethod
    def from_json(cls, key: str, raw: Any) -> SeenEntry | None:
        """
        Build an entry from one value of the state file; unknown fields are ignored.
        Returns None when the value is not an object.
        """
        if not isinstance(raw, dict):
            return None
        company = raw.get("company")
        return cls(
            id=str(raw.get("id") or key),
            title=str(raw.get("title") or ""),
            date_found=str(raw.get("dateFound") or ""),
            company=str(company) if company else None,
        )


@dataclass
class SourceResult:
    """
    Result bundle produced by one source adapter for one fetch.
    - items: normalized jobs, in discovery order (NOT filtered for 'new').
    - errors: non-fatal conditions the adapter caught at its boundary.
    """

    source: str
    items: list[Job] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors
