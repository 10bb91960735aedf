from __future__ import annotations

import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from .utils import getenv_str, truthy


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env/commands cannot form a valid configuration."""


# -----------------------------
# Filter dimensions
# -----------------------------
EXPERIENCE_LEVELS = ("INTERNSHIP", "ENTRY_LEVEL", "ASSOCIATE", "MID_SENIOR", "DIRECTOR", "EXECUTIVE")
JOB_TYPES = ("FULL_TIME", "PART_TIME", "CONTRACT", "TEMPORARY", "INTERNSHIP", "VOLUNTEER")
DATE_RANGES = ("PAST_24H", "PAST_WEEK", "PAST_MONTH")
REMOTE_PREFERENCES = ("ON_SITE", "REMOTE", "HYBRID")

# Values that clear an enum-valued dimension.
_CLEAR_VALUES = {"NONE", "ANY", ""}

MAX_LIMIT = 50
MAX_INTERVAL_MINUTES = 24 * 60

# command alias -> canonical dimension
_DIMENSION_ALIASES = {
    "experience": "experience",
    "exp": "experience",
    "level": "experience",
    "type": "job_type",
    "jobtype": "job_type",
    "job_type": "job_type",
    "date": "date_range",
    "daterange": "date_range",
    "date_range": "date_range",
    "posted": "date_range",
    "remote": "remote",
    "workplace": "remote",
    "keyword": "keyword",
    "keywords": "keyword",
    "title": "keyword",
    "location": "location",
    "loc": "location",
    "limit": "limit",
    "max": "limit",
    "interval": "interval",
}

_ENUM_DIMENSIONS: dict[str, tuple[str, ...]] = {
    "experience": EXPERIENCE_LEVELS,
    "job_type": JOB_TYPES,
    "date_range": DATE_RANGES,
    "remote": REMOTE_PREFERENCES,
}

DIMENSIONS = ("keyword", "location", "experience", "job_type", "date_range", "remote", "limit", "interval")


def canonical_dimension(name: str) -> str:
    key = (name or "").strip().lower().replace("-", "_")
    if key not in _DIMENSION_ALIASES:
        raise ConfigError(f"Unknown filter {name!r}. Available filters: {', '.join(DIMENSIONS)}")
    return _DIMENSION_ALIASES[key]


def allowed_values(dimension: str) -> str:
    """Human-readable description of what a dimension accepts (used in replies and help)."""
    dim = canonical_dimension(dimension)
    if dim in _ENUM_DIMENSIONS:
        clear = "ANY" if dim == "date_range" else "NONE"
        return ", ".join((*_ENUM_DIMENSIONS[dim], clear))
    if dim == "limit":
        return f"an integer between 1 and {MAX_LIMIT}"
    if dim == "interval":
        return f"minutes, an integer between 1 and {MAX_INTERVAL_MINUTES}"
    return "any non-empty text"


@dataclass(frozen=True)
class FilterSnapshot:
    """Immutable view of the active search parameters, taken once per fetch."""

    keyword: str = "software engineer"
    location: str = "United States"
    experience: str = ""
    job_type: str = ""
    date_range: str = ""
    remote: str = ""
    limit: int = 10
    interval_ms: int = 5 * 60 * 1000


class FilterConfig:
    """
    Process-wide, mutable search parameters.

    Mutated only through `set()`; adapters call `snapshot()` at the start of
    every fetch, so a change is picked up by the next poll.
    """

    def __init__(self, initial: FilterSnapshot | None = None) -> None:
        self._lock = threading.RLock()
        self._state = initial or FilterSnapshot()

    def snapshot(self) -> FilterSnapshot:
        with self._lock:
            return self._state

    def set(self, dimension: str, value: Any) -> FilterSnapshot:
        """
        Validate `value` for `dimension` and apply it. Returns the new snapshot.
        Raises ConfigError with the allowed set when the value is rejected.
        """
        dim = canonical_dimension(dimension)
        parsed = _parse_dimension_value(dim, value)
        with self._lock:
            if dim == "interval":
                self._state = replace(self._state, interval_ms=parsed)
            else:
                self._state = replace(self._state, **{dim: parsed})
            return self._state

    def describe(self) -> dict[str, Any]:
        s = self.snapshot()
        return {
            "keyword": s.keyword,
            "location": s.location,
            "experience": s.experience or "NONE",
            "job_type": s.job_type or "NONE",
            "date_range": s.date_range or "ANY",
            "remote": s.remote or "NONE",
            "limit": s.limit,
            "interval_minutes": s.interval_ms // 60000,
        }

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None, base: FilterSnapshot | None = None) -> FilterConfig:
        fc = cls(base)
        for k, v in (raw or {}).items():
            if v is None:
                continue
            if k in {"interval_ms", "check_interval_ms"}:
                fc._state = replace(fc._state, interval_ms=_positive_ms(v, field_name=k))
                continue
            fc.set(k, v)
        return fc


def _parse_dimension_value(dim: str, value: Any) -> Any:
    text = str(value if value is not None else "").strip()

    if dim in _ENUM_DIMENSIONS:
        upper = text.upper().replace("-", "_").replace(" ", "_")
        if upper in _CLEAR_VALUES:
            return ""
        if upper not in _ENUM_DIMENSIONS[dim]:
            raise ConfigError(f"Invalid value {text!r} for {dim}. Allowed: {allowed_values(dim)}")
        return upper

    if dim in {"keyword", "location"}:
        if not text:
            raise ConfigError(f"{dim} cannot be empty")
        return " ".join(text.split())

    try:
        n = int(text)
    except ValueError as err:
        raise ConfigError(f"Invalid value {text!r} for {dim}. Allowed: {allowed_values(dim)}") from err

    if dim == "limit":
        if not 1 <= n <= MAX_LIMIT:
            raise ConfigError(f"Invalid value {n} for limit. Allowed: {allowed_values(dim)}")
        return n

    # interval (minutes) -> ms
    if not 1 <= n <= MAX_INTERVAL_MINUTES:
        raise ConfigError(f"Invalid value {n} for interval. Allowed: {allowed_values(dim)}")
    return n * 60 * 1000


def _positive_ms(v: Any, *, field_name: str) -> int:
    try:
        n = int(v)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"'{field_name}' must be an integer number of milliseconds.") from err
    if n <= 0:
        raise ConfigError(f"'{field_name}' must be > 0 (got {n}).")
    return n


# -----------------------------
# Merge strategy / sources
# -----------------------------
class MergeStrategy(str, Enum):
    FALLBACK_CHAIN = "fallback"
    FANOUT_ALL = "fanout"

    @classmethod
    def parse(cls, raw: Any) -> MergeStrategy:
        if isinstance(raw, MergeStrategy):
            return raw
        key = str(raw or "").strip().lower().replace("-", "_")
        aliases = {
            "fallback": cls.FALLBACK_CHAIN,
            "fallback_chain": cls.FALLBACK_CHAIN,
            "chain": cls.FALLBACK_CHAIN,
            "fanout": cls.FANOUT_ALL,
            "fan_out": cls.FANOUT_ALL,
            "fanout_all": cls.FANOUT_ALL,
            "all": cls.FANOUT_ALL,
        }
        if key not in aliases:
            raise ConfigError(f"Unknown merge strategy {raw!r} (expected 'fallback' or 'fanout').")
        return aliases[key]


@dataclass(frozen=True)
class SourceConfig:
    """
    One source adapter in the priority list.
    - kind: adapter family (e.g., "remotive", "rss", "linkedin", "static", "synthetic")
    - params: arbitrary dict passed to the adapter constructor
    """

    kind: str
    enabled: bool = True
    params: dict[str, Any] = field(default_factory=dict)


LIVE_SOURCE_KINDS = ("remotive", "rss", "linkedin")
FALLBACK_SOURCE_KINDS = ("static", "synthetic")


def default_sources(strategy: MergeStrategy) -> list[SourceConfig]:
    kinds = LIVE_SOURCE_KINDS
    if strategy is MergeStrategy.FALLBACK_CHAIN:
        kinds = LIVE_SOURCE_KINDS + FALLBACK_SOURCE_KINDS
    return [SourceConfig(kind=k) for k in kinds]


# -----------------------------
# Settings
# -----------------------------
@dataclass
class Settings:
    """
    Canonical configuration for the job alert poller.

    The filter fields seed the process-wide FilterConfig; everything else is
    fixed for the process lifetime.
    """

    # Destination
    channel_id: str = ""
    bot_token: str = ""
    webhook_url: str = ""
    dry_run: bool = False

    # Search
    filters: FilterSnapshot = field(default_factory=FilterSnapshot)

    # Pipeline
    strategy: MergeStrategy = MergeStrategy.FALLBACK_CHAIN
    sources: list[SourceConfig] = field(default_factory=list)
    jobs_data_file: str = "jobs.json"
    max_threads: int = 4
    message_delay_ms: int = 1000
    initial_check_delay_ms: int = 5000
    description_chars: int = 200
    command_poll_seconds: int = 5
    timezone: str = "UTC"

    # ------------- convenience -------------
    def active_sources(self) -> list[SourceConfig]:
        selected = self.sources or default_sources(self.strategy)
        return [s for s in selected if s.enabled]

    def filter_config(self) -> FilterConfig:
        return FilterConfig(self.filters)

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(
        cls,
        kwargs: Mapping[str, Any] | None = None,
        file_cfg: Mapping[str, Any] | None = None,
    ) -> Settings:
        """
        Build Settings with validation.

        Precedence: kwargs > environment > file_cfg (already-loaded config file) > defaults.

            channel_id: str            (CHANNEL_ID)
            bot_token: str             (DISCORD_BOT_TOKEN)
            webhook_url: str           (DISCORD_WEBHOOK_URL)
            dry_run: bool              (DRY_RUN)
            check_interval_ms: int     (CHECK_INTERVAL)
            keyword/location/experience/job_type/date_range/remote/limit
                                       (SEARCH_KEYWORD, SEARCH_LOCATION, EXPERIENCE_LEVEL,
                                        JOB_TYPE, DATE_RANGE, REMOTE_PREFERENCE, MAX_JOBS_PER_CHECK)
            strategy: "fallback" | "fanout"   (MERGE_STRATEGY)
            jobs_data_file: str        (JOBS_DATA_FILE)
            message_delay_ms: int      (MESSAGE_DELAY_MS)
            initial_check_delay_ms: int (INITIAL_CHECK_DELAY_MS)
            sources: list[{kind, enabled?, params?}]  (file/kwargs only)
        """
        kw = dict(kwargs or {})
        fc = dict(file_cfg or {})

        def pick(key: str, env: str | None, default: Any = None) -> Any:
            if kw.get(key) is not None:
                return kw[key]
            if env:
                val = getenv_str(env)
                if val is not None:
                    return val
            if fc.get(key) is not None:
                return fc[key]
            return default

        # Filters: file 'filters' block first, then env, then kwargs
        filter_raw: dict[str, Any] = dict(fc.get("filters") or {})
        env_filters = {
            "keyword": "SEARCH_KEYWORD",
            "location": "SEARCH_LOCATION",
            "experience": "EXPERIENCE_LEVEL",
            "job_type": "JOB_TYPE",
            "date_range": "DATE_RANGE",
            "remote": "REMOTE_PREFERENCE",
            "limit": "MAX_JOBS_PER_CHECK",
            "interval_ms": "CHECK_INTERVAL",
        }
        for dim, env in env_filters.items():
            val = getenv_str(env)
            if val is not None:
                filter_raw[dim] = val
        for dim in ("keyword", "location", "experience", "job_type", "date_range", "remote", "limit"):
            if kw.get(dim) is not None:
                filter_raw[dim] = kw[dim]
        if kw.get("check_interval_ms") is not None:
            filter_raw["interval_ms"] = kw["check_interval_ms"]
        filters = FilterConfig.from_mapping(filter_raw).snapshot()

        strategy = MergeStrategy.parse(pick("strategy", "MERGE_STRATEGY", MergeStrategy.FALLBACK_CHAIN.value))

        raw_sources = kw.get("sources") if kw.get("sources") is not None else fc.get("sources")
        sources = parse_sources(raw_sources) if raw_sources else []

        settings = cls(
            channel_id=str(pick("channel_id", "CHANNEL_ID", "") or "").strip(),
            bot_token=str(pick("bot_token", "DISCORD_BOT_TOKEN", "") or "").strip(),
            webhook_url=str(pick("webhook_url", "DISCORD_WEBHOOK_URL", "") or "").strip(),
            dry_run=truthy(pick("dry_run", "DRY_RUN", False)),
            filters=filters,
            strategy=strategy,
            sources=sources,
            jobs_data_file=str(pick("jobs_data_file", "JOBS_DATA_FILE", "jobs.json")),
            max_threads=_int(pick("max_threads", None, 4), "max_threads"),
            message_delay_ms=_int(pick("message_delay_ms", "MESSAGE_DELAY_MS", 1000), "message_delay_ms"),
            initial_check_delay_ms=_int(
                pick("initial_check_delay_ms", "INITIAL_CHECK_DELAY_MS", 5000), "initial_check_delay_ms"
            ),
            description_chars=_int(pick("description_chars", None, 200), "description_chars"),
            command_poll_seconds=_int(
                pick("command_poll_seconds", "COMMAND_POLL_SECONDS", 5), "command_poll_seconds"
            ),
            timezone=str(pick("timezone", "TZ", "UTC")),
        )
        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def parse_sources(value: Any) -> list[SourceConfig]:
    """
    Parse a flat list into SourceConfig objects, preserving order (= priority).
    Accepts: ["remotive", {"kind": "rss", "enabled": true, "params": {...}}, ...]
    """
    if not value:
        return []
    if not isinstance(value, list):
        raise ConfigError("Expected 'sources' to be a list.")
    out: list[SourceConfig] = []
    for i, item in enumerate(value):
        if isinstance(item, str):
            item = {"kind": item}
        if not isinstance(item, dict):
            raise ConfigError(f"sources[{i}] must be a string or an object.")
        kind = str(item.get("kind") or "").strip().lower()
        params = item.get("params") or {}
        if not kind:
            raise ConfigError(f"sources[{i}] requires 'kind'.")
        if not isinstance(params, dict):
            raise ConfigError(f"sources[{i}].params must be an object.")
        out.append(SourceConfig(kind=kind, enabled=truthy(item.get("enabled", True)), params=dict(params)))
    return out


def _int(v: Any, name: str) -> int:
    try:
        return int(v)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"'{name}' must be an integer.") from err


def _validate_settings(s: Settings) -> None:
    if s.max_threads <= 0:
        raise ConfigError("'max_threads' must be >= 1.")
    if s.message_delay_ms < 0:
        raise ConfigError("'message_delay_ms' must be >= 0.")
    if s.initial_check_delay_ms < 0:
        raise ConfigError("'initial_check_delay_ms' must be >= 0.")
    if not s.jobs_data_file.strip():
        raise ConfigError("'jobs_data_file' cannot be empty.")
    if not s.active_sources():
        raise ConfigError("No enabled sources to run.")
    # Relative state paths resolve against the working directory.
    s.jobs_data_file = os.path.expanduser(s.jobs_data_file)
