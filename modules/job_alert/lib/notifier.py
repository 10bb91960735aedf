from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from . import logging_bridge, render
from .models import Job
from .seen_store import SeenJobStore

SendFn = Callable[[dict[str, Any]], Any]


@dataclass
class DeliveryReport:
    attempted: int = 0
    delivered: list[str] = field(default_factory=list)  # job ids, delivery order
    failed: list[str] = field(default_factory=list)
    skipped: int = 0  # over the per-check cap; not sent, not recorded
    persisted: bool | None = None  # None: nothing was attempted, no write needed


class Notifier:
    """
    Deliver new jobs one message each, paced, recording successes as seen.

    - At most `max_per_check` jobs per batch, in the order given.
    - A failed send is logged and left unrecorded, so the job is retried on the
      next check; later jobs in the batch are still attempted.
    - `sleep(delay_seconds)` runs after each successful send that is followed by
      another attempt.
    - The store is persisted once per non-empty batch, after the last attempt.
    """

    def __init__(
        self,
        store: SeenJobStore,
        max_per_check: int = 10,
        delay_seconds: float = 1.0,
        description_chars: int = 200,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.max_per_check = max(0, int(max_per_check))
        self.delay_seconds = max(0.0, float(delay_seconds))
        self.description_chars = int(description_chars)
        self._sleep = sleep

    def deliver(self, jobs: Sequence[Job], send: SendFn) -> DeliveryReport:
        batch = list(jobs)[: self.max_per_check]
        report = DeliveryReport(skipped=max(0, len(jobs) - len(batch)))
        if not batch:
            return report

        for i, job in enumerate(batch):
            report.attempted += 1
            try:
                send(render.build_message(job, self.description_chars))
            except Exception as e:
                report.failed.append(job.id)
                logging_bridge.error({
                    "component": "job_alert.notifier",
                    "op": "send",
                    "job_id": job.id,
                    "source": job.source,
                    "error": repr(e),
                })
                continue

            self.store.record_job(job)
            report.delivered.append(job.id)
            if self.delay_seconds > 0 and i < len(batch) - 1:
                self._sleep(self.delay_seconds)

        report.persisted = self.store.persist()
        logging_bridge.activity({
            "component": "job_alert.notifier",
            "op": "delivered",
            "attempted": report.attempted,
            "delivered": len(report.delivered),
            "failed": len(report.failed),
            "skipped": report.skipped,
            "persisted": report.persisted,
        })
        return report
