"""
Aggregator: run source adapters under a merge strategy and return only new jobs.

Strategies:
  - FALLBACK_CHAIN: adapters in priority order, stop at the first non-empty result
  - FANOUT_ALL: every adapter concurrently, merged back in priority order and
    collapsed on title|company (the higher-priority adapter's entry survives)

Either way, ids already in the SeenJobStore are dropped before returning, and
duplicate ids inside one batch keep their first occurrence.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from . import logging_bridge
from .config import FilterConfig, FilterSnapshot, MergeStrategy
from .models import Job, SourceResult
from .normalize import merge_key
from .seen_store import SeenJobStore
from .sources.base import BaseSource


@dataclass
class AggregateReport:
    jobs: list[Job] = field(default_factory=list)  # new jobs, output order
    found_by_source: dict[str, int] = field(default_factory=dict)
    new_by_source: dict[str, int] = field(default_factory=dict)
    tried: list[str] = field(default_factory=list)  # adapters invoked, priority order
    errors: list[str] = field(default_factory=list)
    durations_us: dict[str, int] = field(default_factory=dict)


class Aggregator:
    def __init__(
        self,
        sources: Sequence[BaseSource],
        store: SeenJobStore,
        strategy: MergeStrategy = MergeStrategy.FALLBACK_CHAIN,
        max_threads: int = 4,
    ) -> None:
        self.sources = list(sources)
        self.store = store
        self.strategy = MergeStrategy.parse(strategy)
        self.max_threads = max(1, int(max_threads))

    def collect(self, filters: FilterConfig | FilterSnapshot) -> AggregateReport:
        start_ns = time.perf_counter_ns()
        report = AggregateReport()

        if self.strategy is MergeStrategy.FANOUT_ALL:
            results = self._run_fanout(filters, report)
        else:
            results = self._run_chain(filters, report)

        # ---- merge in priority order ----
        candidates: list[tuple[str, Job]] = []
        ids: set[str] = set()
        keys: set[str] = set()
        for res in results:
            report.found_by_source[res.source] = len(res.items)
            report.errors.extend(res.errors)
            for job in res.items:
                if job.id in ids:
                    continue
                if self.strategy is MergeStrategy.FANOUT_ALL:
                    key = merge_key(job)
                    if key in keys:
                        continue
                    keys.add(key)
                ids.add(job.id)
                candidates.append((res.source, job))

        # ---- gate on the seen store ----
        for label, job in candidates:
            if self.store.contains(job.id):
                continue
            report.jobs.append(job)
            report.new_by_source[label] = report.new_by_source.get(label, 0) + 1

        total_us = int((time.perf_counter_ns() - start_ns) // 1000)
        logging_bridge.activity({
            "component": "job_alert.aggregator",
            "op": "summary",
            "strategy": self.strategy.value,
            "tried": report.tried,
            "found_by_source": report.found_by_source,
            "new_by_source": report.new_by_source,
            "errors": len(report.errors),
            "durations_us": report.durations_us,
            "total_us": total_us,
        })
        return report

    # ---- strategies ----
    def _run_chain(self, filters: FilterConfig | FilterSnapshot, report: AggregateReport) -> list[SourceResult]:
        tried: list[SourceResult] = []
        for src in self.sources:
            report.tried.append(src.label)
            res = self._fetch_one(src, filters, report)
            tried.append(res)
            if res.items:
                break
            logging_bridge.activity({
                "component": "job_alert.aggregator",
                "op": "fallthrough",
                "source": src.label,
                "errors": res.errors,
            })
        return tried

    def _run_fanout(self, filters: FilterConfig | FilterSnapshot, report: AggregateReport) -> list[SourceResult]:
        if not self.sources:
            return []
        report.tried.extend(src.label for src in self.sources)
        by_index: dict[int, SourceResult] = {}
        with ThreadPoolExecutor(max_workers=min(len(self.sources), self.max_threads)) as pool:
            futures = {pool.submit(self._fetch_one, src, filters, report): i for i, src in enumerate(self.sources)}
            for fut in as_completed(futures):
                by_index[futures[fut]] = fut.result()
        # completion order is arbitrary; priority order is the list order
        return [by_index[i] for i in sorted(by_index)]

    def _fetch_one(
        self,
        src: BaseSource,
        filters: FilterConfig | FilterSnapshot,
        report: AggregateReport,
    ) -> SourceResult:
        t0 = time.perf_counter_ns()
        try:
            res = src.fetch(filters)
        except Exception as e:
            # fetch() contains its own failures; this only catches broken adapters
            logging_bridge.error({
                "component": "job_alert.aggregator",
                "op": "source_fetch",
                "source": src.label,
                "error": repr(e),
            })
            res = SourceResult(source=src.label, items=[], errors=[f"{src.label}: {e!r}"])
        report.durations_us[src.label] = int((time.perf_counter_ns() - t0) // 1000)
        return res
