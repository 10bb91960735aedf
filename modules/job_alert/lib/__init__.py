# modules/job_alert/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .aggregator import AggregateReport, Aggregator
from .config import ConfigError, FilterConfig, FilterSnapshot, MergeStrategy, Settings, SourceConfig
from .models import Job, SeenEntry, SourceResult
from .notifier import DeliveryReport, Notifier
from .pipeline import JobAlertPipeline
from .seen_store import SeenJobStore

__all__ = [
    "AggregateReport",
    "Aggregator",
    "ConfigError",
    "DeliveryReport",
    "FilterConfig",
    "FilterSnapshot",
    "Job",
    "JobAlertPipeline",
    "MergeStrategy",
    "Notifier",
    "SeenEntry",
    "SeenJobStore",
    "Settings",
    "SourceConfig",
    "SourceResult",
]
