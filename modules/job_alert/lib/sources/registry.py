from __future__ import annotations

from ..config import SourceConfig
from .base import BaseSource

# adapter kind (lowercase) -> adapter class; filled at import time by @register
_ADAPTERS: dict[str, type[BaseSource]] = {}


def _normalize_kind(kind: object) -> str:
    return kind.strip().lower() if isinstance(kind, str) else ""


def register(cls: type[BaseSource]) -> type[BaseSource]:
    """Class decorator: makes an adapter constructible from a `sources:` config entry."""
    key = _normalize_kind(getattr(cls, "kind", None))
    if not key:
        raise ValueError(f"{cls.__name__} has no 'kind'; cannot register it as a job source.")
    existing = _ADAPTERS.setdefault(key, cls)
    if existing is not cls:
        raise ValueError(f"Two job sources claim kind {key!r}: {existing.__name__} and {cls.__name__}.")
    return cls


def get(kind: str) -> type[BaseSource]:
    try:
        return _ADAPTERS[_normalize_kind(kind)]
    except KeyError:
        raise KeyError(f"No job source of kind {kind!r}.") from None


def all_kinds() -> dict[str, type[BaseSource]]:
    return dict(_ADAPTERS)


def build(configs: list[SourceConfig]) -> list[BaseSource]:
    """Instantiate enabled sources in priority order. Unknown kinds raise KeyError."""
    sources: list[BaseSource] = []
    for entry in configs:
        if entry.enabled:
            sources.append(get(entry.kind)(entry.params))
    return sources
