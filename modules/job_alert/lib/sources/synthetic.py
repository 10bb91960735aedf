from __future__ import annotations

import random
from datetime import datetime, timezone

from ..config import FilterSnapshot
from ..models import Job, SourceResult
from ..normalize import normalize_record
from .base import BaseSource
from .registry import register

_SENIORITY = ("Junior", "Senior", "Staff", "Lead", "Principal")
_COMPANIES = ("TechCorp", "CloudScale", "DataWorks", "Nimbus Labs", "Quantum Apps", "Brightline")
_LOCATIONS = ("Remote", "New York, NY", "Austin, TX", "San Francisco, CA", "Seattle, WA")
_BLURBS = (
    "Build and operate distributed services.",
    "Own features end to end with a small team.",
    "Work across the stack on customer-facing products.",
)


@register
class SyntheticSource(BaseSource):
    """
    Randomized generator, the last link of the fallback chain.

    params:
      seed: int    # fixes the output (tests, demos); default: the UTC date
      count: int   # postings per fetch (default: min(limit, 3))

    Never fails. Unseeded output is fixed for the whole UTC day.
    """

    kind = "synthetic"

    def _fetch(self, filters: FilterSnapshot) -> SourceResult:
        day = datetime.now(timezone.utc).date().isoformat()
        seed = self.params.get("seed")
        rng = random.Random(day if seed is None else seed)
        count = int(self.params.get("count") or min(max(1, filters.limit), 3))
        role = (filters.keyword or "software engineer").title()

        items: list[Job] = []
        for i in range(count):
            raw = {
                "title": f"{rng.choice(_SENIORITY)} {role}",
                "company": rng.choice(_COMPANIES),
                "location": rng.choice(_LOCATIONS),
                "posted_time": f"{rng.randint(1, 23)} hours ago",
                "description": rng.choice(_BLURBS),
                "disambiguator": f"{day}-{i}",
            }
            items.append(normalize_record(raw, self.kind))
        return SourceResult(source=self.label, items=items)
