# service/config_schema.py
from __future__ import annotations

import json
import logging
import os
from typing import Any

import yaml

from modules.job_alert.lib.config import ConfigError, FilterConfig, MergeStrategy, parse_sources
from modules.job_alert.lib.sources import registry

logger = logging.getLogger(__name__)

__all__ = ["ConfigError", "load_config", "validate"]

# Top-level keys a config file may carry; everything else is a typo.
_ALLOWED_KEYS = {
    "filters",
    "sources",
    "strategy",
    "timezone",
    "jobs_data_file",
    "max_threads",
    "message_delay_ms",
    "initial_check_delay_ms",
    "description_chars",
    "dry_run",
}
_INT_KEYS = ("max_threads", "message_delay_ms", "initial_check_delay_ms", "description_chars")


def load_config(path: str | None = None) -> dict[str, Any]:
    """
    Load the optional service configuration file.

    Resolution order:
      1) Explicit `path` argument (if provided)
      2) os.environ['CONFIG_PATH'] (if set)
      3) Empty config (everything comes from the environment)

    Example (YAML):
        strategy: fanout
        timezone: America/New_York
        filters: {keyword: "data engineer", remote: REMOTE, limit: 5}
        sources:
          - remotive
          - kind: rss
            params: {feeds: ["https://weworkremotely.com/remote-jobs.rss"]}
    """
    resolved_path = path or os.environ.get("CONFIG_PATH")
    if not resolved_path:
        logger.info("CONFIG_PATH not provided; using environment-only config.")
        cfg: dict[str, Any] = {}
    else:
        cfg = _read_any(resolved_path)

    tz = cfg.get("timezone")
    if not isinstance(tz, str) or not tz.strip():
        cfg["timezone"] = os.environ.get("TZ", "UTC")
    return cfg


def validate(cfg: dict[str, Any]) -> None:
    """
    Validate the configuration. Raise ConfigError on any problem.
    No prints, no sys.exit().
    """
    if not isinstance(cfg, dict):
        raise ConfigError("Config must be a mapping/object.")

    unknown = sorted(set(cfg) - _ALLOWED_KEYS)
    if unknown:
        raise ConfigError(f"Unknown top-level key(s): {', '.join(unknown)}")

    tz = cfg.get("timezone")
    if tz is not None and not isinstance(tz, str):
        raise ConfigError("'timezone' must be a string if provided.")

    if cfg.get("strategy") is not None:
        MergeStrategy.parse(cfg["strategy"])

    filters = cfg.get("filters")
    if filters is not None:
        if not isinstance(filters, dict):
            raise ConfigError("'filters' must be an object of dimension -> value.")
        FilterConfig.from_mapping(filters)  # raises ConfigError with the allowed set

    for idx, src in enumerate(parse_sources(cfg.get("sources"))):
        try:
            registry.get(src.kind)
        except KeyError as err:
            known = ", ".join(sorted(registry.all_kinds()))
            raise ConfigError(f"sources[{idx}]: unknown kind {src.kind!r} (known: {known})") from err

    for key in _INT_KEYS:
        if key in cfg:
            _to_int(cfg[key], field=key)

    if "jobs_data_file" in cfg and (not isinstance(cfg["jobs_data_file"], str) or not cfg["jobs_data_file"].strip()):
        raise ConfigError("'jobs_data_file' must be a non-empty string.")


def _to_int(value: Any, *, field: str) -> int:
    try:
        iv = int(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"'{field}' must be an integer.") from err
    if iv < 0:
        raise ConfigError(f"'{field}' must be >= 0 (got {iv}).")
    return iv


def _read_any(path: str) -> dict[str, Any]:
    lower = path.lower()
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {path}: {e}") from e

    if lower.endswith((".yml", ".yaml")):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    else:
        # .json and unknown extensions are parsed as JSON
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top-level config in {path} must be a mapping/object.")
    return data
