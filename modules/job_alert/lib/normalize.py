"""
Raw source record -> canonical Job.

Everything here is pure (no I/O, no clock, no shared state) so each source
shape can be tested with literal fixtures.

Id precedence:
  1. native identifier of the source (listing id, RSS guid, LinkedIn job urn)
     -> "<kind>:<native id>"
  2. otherwise a composite of title + company + source + disambiguator
     -> "<kind>:<sha256 prefix>"
"""

from __future__ import annotations

import hashlib
import html
import re
from collections.abc import Mapping
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any

from .models import DEFAULT_LOCATION, Job
from .utils import collapse_ws

_TAG_RE = re.compile(r"<[^>]*>")

# Field aliases per source kind, most specific first.
_SHAPES: dict[str, dict[str, tuple[str, ...]]] = {
    "remotive": {
        "native_id": ("id",),
        "title": ("title",),
        "company": ("company_name",),
        "location": ("candidate_required_location",),
        "link": ("url",),
        "posted_time": ("publication_date",),
        "description": ("description",),
    },
    "rss": {
        "native_id": ("id", "guid"),
        "title": ("title",),
        "company": ("company", "author"),
        "location": ("location", "region"),
        "link": ("link",),
        "posted_time": ("published", "updated"),
        "description": ("summary", "description"),
    },
    "linkedin": {
        "native_id": ("id", "data_id", "job_id"),
        "title": ("title",),
        "company": ("company",),
        "location": ("location",),
        "link": ("link", "href"),
        "posted_time": ("posted_time", "listdate"),
        "description": ("description",),
    },
}

# static / synthetic and unknown kinds use the canonical names directly.
_CANONICAL: dict[str, tuple[str, ...]] = {
    "native_id": ("native_id",),
    "title": ("title",),
    "company": ("company",),
    "location": ("location",),
    "link": ("link", "url"),
    "posted_time": ("posted_time", "postedTime"),
    "description": ("description",),
}


def source_kind(source: str) -> str:
    """'rss:weworkremotely' -> 'rss'."""
    return (source or "").split(":", 1)[0].strip().lower()


def strip_markup(text: Any) -> str:
    """Remove angle-bracket fragments and entities, collapse whitespace."""
    if text is None:
        return ""
    s = _TAG_RE.sub(" ", str(text))
    s = html.unescape(s)
    # Escaped markup (&lt;b&gt;) becomes real markup after unescaping.
    s = _TAG_RE.sub(" ", s)
    return collapse_ws(s)


def derive_job_id(
    source: str,
    native_id: Any = None,
    *,
    title: str = "",
    company: str = "",
    disambiguator: str = "",
) -> str:
    kind = source_kind(source) or "unknown"
    native = collapse_ws(str(native_id)) if native_id not in (None, "") else ""
    if native:
        return f"{kind}:{native}"
    payload = "\n".join(
        [collapse_ws(title).lower(), collapse_ws(company).lower(), (source or "").lower(), disambiguator or ""]
    )
    return f"{kind}:{hashlib.sha256(payload.encode('utf-8')).hexdigest()[:16]}"


def merge_key(job: Job) -> str:
    """Near-duplicate key across sources: case-folded title|company."""
    return f"{collapse_ws(job.title).casefold()}|{collapse_ws(job.company).casefold()}"


def display_date(value: Any) -> str:
    """
    Best-effort short form of a timestamp for display: ISO-8601 and RFC-822
    become YYYY-MM-DD; anything else is returned trimmed.
    """
    s = collapse_ws(str(value)) if value is not None else ""
    if not s:
        return ""
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(s).date().isoformat()
    except (TypeError, ValueError, IndexError):
        return s


def normalize_record(raw: Mapping[str, Any], source: str) -> Job:
    """
    Convert one source-specific record into a Job.

    Missing optional fields get defaults; `location` and `description` are
    stripped of markup. A `disambiguator` key in `raw` feeds the composite id
    when no native identifier exists.
    """
    shape = _SHAPES.get(source_kind(source), _CANONICAL)

    def first(name: str) -> Any:
        for key in shape.get(name, ()) + _CANONICAL[name]:
            val = raw.get(key)
            if val not in (None, ""):
                return val
        return None

    title = collapse_ws(strip_markup(first("title"))) or "(no title)"
    company = collapse_ws(strip_markup(first("company"))) or "Unknown company"
    location = strip_markup(first("location")) or DEFAULT_LOCATION
    link = collapse_ws(str(first("link") or "")) or None
    posted = display_date(first("posted_time"))
    description = strip_markup(first("description"))

    job_id = derive_job_id(
        source,
        first("native_id"),
        title=title,
        company=company,
        disambiguator=str(raw.get("disambiguator") or ""),
    )

    return Job(
        id=job_id,
        title=title,
        company=company,
        location=location,
        link=link,
        posted_time=posted,
        source=source,
        description=description,
    )
