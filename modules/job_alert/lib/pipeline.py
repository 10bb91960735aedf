"""
One check-and-notify cycle: resolve the channel, aggregate, deliver.

Shared by the one-shot entry point (modules/job_alert/main.py) and the
long-running scheduler (service/scheduler.py). The channel is anything with a
`send(payload)` method; resolving it is the caller's business.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import Any

from . import logging_bridge
from .aggregator import Aggregator
from .config import FilterConfig, Settings
from .notifier import Notifier
from .seen_store import SeenJobStore
from .sources import build as build_sources
from .sources.base import BaseSource

ResolveChannel = Callable[[], Any]


class JobAlertPipeline:
    def __init__(
        self,
        *,
        filters: FilterConfig,
        store: SeenJobStore,
        aggregator: Aggregator,
        notifier: Notifier,
        resolve_channel: ResolveChannel,
    ) -> None:
        self.filters = filters
        self.store = store
        self.aggregator = aggregator
        self.notifier = notifier
        self.resolve_channel = resolve_channel

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        resolve_channel: ResolveChannel,
        *,
        filters: FilterConfig | None = None,
        store: SeenJobStore | None = None,
        sources: Sequence[BaseSource] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> JobAlertPipeline:
        filters = filters or settings.filter_config()
        store = store or SeenJobStore(settings.jobs_data_file)
        if sources is None:
            sources = build_sources(settings.active_sources())
        return cls(
            filters=filters,
            store=store,
            aggregator=Aggregator(sources, store, settings.strategy, settings.max_threads),
            notifier=Notifier(
                store,
                max_per_check=filters.snapshot().limit,
                delay_seconds=settings.message_delay_ms / 1000.0,
                description_chars=settings.description_chars,
                sleep=sleep,
            ),
            resolve_channel=resolve_channel,
        )

    # ---- operations ----
    def run_cycle(self, trigger: str = "manual") -> dict[str, Any]:
        """
        Returns a summary dict; `status` is "ok" or "channel_unresolved".
        An unresolved channel aborts before any fetch, send or write.
        """
        t0 = time.perf_counter_ns()
        channel = self.resolve_channel()
        if channel is None:
            logging_bridge.error({
                "component": "job_alert.pipeline",
                "op": "channel_unresolved",
                "trigger": trigger,
            })
            return {"status": "channel_unresolved", "trigger": trigger}

        snapshot = self.filters.snapshot()
        found = self.aggregator.collect(self.filters)
        self.notifier.max_per_check = snapshot.limit
        delivery = self.notifier.deliver(found.jobs, channel.send)

        summary = {
            "status": "ok",
            "trigger": trigger,
            "strategy": self.aggregator.strategy.value,
            "tried": found.tried,
            "found_by_source": found.found_by_source,
            "new": len(found.jobs),
            "delivered": len(delivery.delivered),
            "failed": len(delivery.failed),
            "skipped": delivery.skipped,
            "persisted": delivery.persisted,
            "errors": found.errors,
            "total_us": int((time.perf_counter_ns() - t0) // 1000),
        }
        logging_bridge.activity({"component": "job_alert.pipeline", "op": "cycle", **summary})
        return summary

    def source_labels(self) -> list[str]:
        return [s.label for s in self.aggregator.sources]

    def close(self) -> None:
        for src in self.aggregator.sources:
            src.close()
