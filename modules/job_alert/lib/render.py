from __future__ import annotations

from typing import Any

from . import utils
from .models import DEFAULT_LINK, Job

EMBED_COLOR = 0x0077B5
FOOTER_PREFIX = "Job Alert • "
_SOURCE_LABELS = {
    "remotive": "Remotive",
    "rss": "RSS",
    "linkedin": "LinkedIn",
    "static": "Job boards",
    "synthetic": "Sample",
}


def source_label(source: str) -> str:
    """'linkedin' -> 'LinkedIn'; 'rss:weworkremotely' -> 'RSS (weworkremotely)'."""
    kind, _, detail = (source or "").partition(":")
    name = _SOURCE_LABELS.get(kind.lower(), kind or "unknown")
    return f"{name} ({detail})" if detail else name


def _detail_lines(job: Job, description_chars: int) -> list[str]:
    lines = [
        f"**Company:** {job.company}",
        f"**Location:** {job.location}",
        f"**Posted:** {job.posted_time or 'Recently'}",
    ]
    if job.description and description_chars > 0:
        lines.append("")
        lines.append(utils.clip(job.description, description_chars))
    return lines


def build_message(job: Job, description_chars: int = 200) -> dict[str, Any]:
    """
    Discord message payload with one embed:

      title / url (default landing page when the job has no link)
      description: Company, Location, Posted, then the clipped description
      footer: "Job Alert • <source>", timestamp: now (UTC)
    """
    return {
        "embeds": [
            {
                "title": utils.clip(job.title, 250),
                "url": job.link or DEFAULT_LINK,
                "description": "\n".join(_detail_lines(job, description_chars)),
                "color": EMBED_COLOR,
                "footer": {"text": FOOTER_PREFIX + source_label(job.source)},
                "timestamp": utils.now_iso(),
            }
        ]
    }


def payload_text(payload: dict[str, Any]) -> str:
    """
    Plain text of a message payload, for dry runs and `check --print`.

    Job embeds come out as title, detail lines, `Source:` and `Link:`;
    plain `content` replies pass through unchanged.
    """
    parts: list[str] = []
    if payload.get("content"):
        parts.append(str(payload["content"]))
    for embed in payload.get("embeds") or []:
        if embed.get("title"):
            parts.append(str(embed["title"]))
        if embed.get("description"):
            parts.append(str(embed["description"]).replace("**", ""))
        footer = str((embed.get("footer") or {}).get("text") or "")
        if footer.startswith(FOOTER_PREFIX):
            parts.append(f"Source: {footer[len(FOOTER_PREFIX):]}")
        if embed.get("url"):
            parts.append(f"Link: {embed['url']}")
    return "\n".join(parts)
