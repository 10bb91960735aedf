# service/scheduler.py
from __future__ import annotations

import logging
import threading
import time as _time
import uuid
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any

import pytz
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from modules.job_alert.lib.config import FilterSnapshot, MergeStrategy, Settings
from modules.job_alert.lib.pipeline import JobAlertPipeline
from modules.job_alert.lib.sources.base import BaseSource

from . import chat, config_schema
from .logging_utils import write_activity_log

LOG = logging.getLogger(__name__)

CHECK_JOB_ID = "job-check"
INITIAL_JOB_ID = "job-check-initial"


# ---- Public controller ------------------------------------------------------


class SchedulerController:
    """
    Façade over APScheduler plus the operations exposed to commands and the CLI:
    check_now, set_filter, list_sources, clear_history, stop, join.

    Cycles never overlap: a trigger that fires while one is running is skipped
    and logged, not queued.
    """

    def __init__(self, scheduler: BackgroundScheduler, pipeline: JobAlertPipeline, settings: Settings) -> None:
        self._scheduler = scheduler
        self.pipeline = pipeline
        self.settings = settings
        self.channel: Any = None  # set by start() when a real channel was built
        self._cycle_lock = threading.Lock()
        self._stopped_evt = threading.Event()

    @property
    def strategy(self) -> MergeStrategy:
        return self.pipeline.aggregator.strategy

    # ---- lifecycle ----
    def stop(self) -> None:
        if self._scheduler.running:
            LOG.info("Shutting down scheduler...")
            # wait=False -> stop immediately; an in-flight cycle is allowed to finish.
            self._scheduler.shutdown(wait=False)
        self.pipeline.close()
        self._stopped_evt.set()
        LOG.info("Scheduler shut down complete.")

    def join(self, timeout: float | None = None) -> bool:
        """
        Block until the scheduler is fully stopped (or timeout).
        Returns True if stopped before timeout, else False.
        """
        return self._stopped_evt.wait(timeout=timeout)

    def get_job_ids(self) -> Iterable[str]:
        return (job.id for job in self._scheduler.get_jobs())

    # ---- operations ----
    def check_now(self, wait: bool = False) -> dict[str, Any] | None:
        """
        On-demand trigger. With wait=True the cycle runs on the calling thread
        and its summary is returned; otherwise it is handed to the scheduler's
        worker pool and None is returned.
        """
        if wait:
            return self._run_cycle("manual")
        self._scheduler.add_job(
            func=self._run_cycle,
            trigger=DateTrigger(run_date=datetime.now(self._scheduler.timezone)),
            kwargs={"trigger": "manual"},
            id=f"job-check-now-{uuid.uuid4().hex[:8]}",
            misfire_grace_time=60,
        )
        return None

    def set_filter(self, dimension: str, value: Any) -> FilterSnapshot:
        """Apply a filter change (raises ConfigError); an interval change reschedules the poll."""
        before = self.pipeline.filters.snapshot()
        after = self.pipeline.filters.set(dimension, value)
        if after.interval_ms != before.interval_ms and self._scheduler.get_job(CHECK_JOB_ID):
            self._scheduler.reschedule_job(CHECK_JOB_ID, trigger=_interval_trigger(after.interval_ms, self._scheduler))
        _write_activity("set_filter", dimension=dimension, filters=self.pipeline.filters.describe())
        return after

    def describe_filters(self) -> dict[str, Any]:
        return self.pipeline.filters.describe()

    def list_sources(self) -> list[str]:
        return self.pipeline.source_labels()

    def clear_history(self) -> int:
        """Forget every delivered job; returns how many entries were dropped."""
        dropped = self.pipeline.store.clear()
        self.pipeline.store.persist()
        _write_activity("clear_history", dropped=dropped)
        return dropped

    # ---- internals ----
    def _run_cycle(self, trigger: str = "scheduled") -> dict[str, Any]:
        if not self._cycle_lock.acquire(blocking=False):
            LOG.info("Check (%s) skipped: a cycle is already running.", trigger)
            _write_activity("cycle_skipped", trigger=trigger)
            return {"status": "skipped", "trigger": trigger}

        started = _time.monotonic()
        try:
            LOG.info("Check (%s) starting", trigger)
            summary = self.pipeline.run_cycle(trigger=trigger)
        except Exception as e:
            LOG.exception("Check (%s) raised an exception.", trigger)
            _write_activity(
                "cycle",
                trigger=trigger,
                status="error",
                error=repr(e),
                duration_ms=int((_time.monotonic() - started) * 1000),
            )
            return {"status": "error", "trigger": trigger, "error": repr(e)}
        finally:
            self._cycle_lock.release()

        LOG.info(
            "Check (%s) finished in %.3fs: status=%s new=%s delivered=%s",
            trigger,
            _time.monotonic() - started,
            summary.get("status"),
            summary.get("new"),
            summary.get("delivered"),
        )
        return summary


# ---- Module API -------------------------------------------------------------


def start(
    settings: Settings | None = None,
    *,
    config_path: str | None = None,
    resolve_channel: Callable[[], Any] | None = None,
    sources: Sequence[BaseSource] | None = None,
) -> SchedulerController:
    """
    Build the pipeline, rehydrate the seen-job store, schedule the periodic
    check plus one delayed initial check, and start the scheduler.

    Notes:
      * APScheduler 3.x prefers a pytz scheduler timezone.
      * Without `resolve_channel`, the channel is built from settings once and
        re-resolved at the start of every cycle.
    """
    if settings is None:
        cfg = config_schema.load_config(config_path)
        config_schema.validate(cfg)
        settings = Settings.from_env_and_kwargs(file_cfg=cfg)

    channel = None
    resolver = resolve_channel
    if resolver is None:
        channel = chat.build_channel(settings)

        def _resolve() -> Any:
            return channel if channel is not None and channel.resolve() else None

        resolver = _resolve

    pipeline = JobAlertPipeline.from_settings(settings, resolver, sources=sources)
    pipeline.store.load()

    tz = _resolve_timezone(settings.timezone)
    scheduler = BackgroundScheduler(
        timezone=tz,
        job_defaults={"coalesce": True, "max_instances": 1},
        executors={"default": ThreadPoolExecutor(4)},
        jobstores={"default": MemoryJobStore()},
    )
    controller = SchedulerController(scheduler, pipeline, settings)
    controller.channel = channel

    interval_ms = pipeline.filters.snapshot().interval_ms
    scheduler.add_job(
        func=controller._run_cycle,
        trigger=_interval_trigger(interval_ms, scheduler),
        kwargs={"trigger": "scheduled"},
        id=CHECK_JOB_ID,
        replace_existing=True,
    )
    scheduler.add_job(
        func=controller._run_cycle,
        trigger=DateTrigger(run_date=datetime.now(tz) + timedelta(milliseconds=settings.initial_check_delay_ms)),
        kwargs={"trigger": "initial"},
        id=INITIAL_JOB_ID,
        replace_existing=True,
    )

    scheduler.start()
    LOG.info(
        "Scheduler started: every %ss, initial check in %sms, sources=%s, strategy=%s",
        interval_ms // 1000,
        settings.initial_check_delay_ms,
        pipeline.source_labels(),
        settings.strategy.value,
    )
    _write_activity("start", interval_ms=interval_ms, sources=pipeline.source_labels())
    return controller


# ---- Helpers ----------------------------------------------------------------


def _interval_trigger(interval_ms: int, scheduler: BackgroundScheduler) -> IntervalTrigger:
    return IntervalTrigger(seconds=max(1, interval_ms // 1000), timezone=scheduler.timezone)


def _resolve_timezone(tz_name: str | None):
    """
    APScheduler 3.x expects a pytz timezone; invalid names fall back to UTC.
    """
    try:
        return pytz.timezone(tz_name or "UTC")
    except pytz.UnknownTimeZoneError:
        LOG.warning("Falling back to UTC timezone (invalid tz '%s')", tz_name)
        return pytz.UTC


def _write_activity(op: str, **fields: Any) -> None:
    """Best-effort JSONL activity logging; non-fatal on errors."""
    try:
        write_activity_log({"component": "service.scheduler", "op": op, **fields})
    except Exception:
        LOG.debug("write_activity_log failed for op=%s", op, exc_info=True)
