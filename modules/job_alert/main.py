from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .lib.config import Settings
from .lib.logging_bridge import activity as log_activity
from .lib.pipeline import JobAlertPipeline


def run(channel: Any = None, file_cfg: Mapping[str, Any] | None = None, **kwargs: Any) -> dict[str, Any]:
    """
    Entry point for the 'job_alert' module: one check-and-notify cycle.

    Args:
      channel: object with send(payload); None means the destination could not
               be resolved and the cycle is aborted without side effects.
      file_cfg: already-loaded config file mapping (filters/sources/strategy).
      kwargs: Settings overrides, e.g.
          keyword: str = "software engineer"
          location: str = "United States"
          experience / job_type / date_range / remote: str
          limit: int = 10
          strategy: "fallback" | "fanout"
          sources: list[str | {kind, enabled?, params?}]
          jobs_data_file: str = "jobs.json"
          message_delay_ms: int = 1000

    Returns the cycle summary (see JobAlertPipeline.run_cycle).
    """
    settings = Settings.from_env_and_kwargs(kwargs, file_cfg=file_cfg)

    log_activity({
        "component": "job_alert.main",
        "op": "start",
        "strategy": settings.strategy.value,
        "sources": [s.kind for s in settings.active_sources()],
        "jobs_data_file": settings.jobs_data_file,
        "dry_run": settings.dry_run,
    })

    pipeline = JobAlertPipeline.from_settings(settings, lambda: channel)
    try:
        pipeline.store.load()
        return pipeline.run_cycle(trigger="oneshot")
    finally:
        pipeline.close()
