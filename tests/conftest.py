# tests/conftest.py
import os
import tempfile
import types

import pytest
from freezegun import freeze_time

from modules.job_alert.lib.config import FilterConfig, FilterSnapshot
from modules.job_alert.lib.models import Job, SourceResult
from modules.job_alert.lib.seen_store import SeenJobStore
from modules.job_alert.lib.sources.base import BaseSource

_CONFIG_ENV = (
    "CONFIG_PATH",
    "CHANNEL_ID",
    "DISCORD_BOT_TOKEN",
    "DISCORD_WEBHOOK_URL",
    "CHECK_INTERVAL",
    "SEARCH_KEYWORD",
    "SEARCH_LOCATION",
    "EXPERIENCE_LEVEL",
    "JOB_TYPE",
    "DATE_RANGE",
    "REMOTE_PREFERENCE",
    "MAX_JOBS_PER_CHECK",
    "JOBS_DATA_FILE",
    "MERGE_STRATEGY",
    "MESSAGE_DELAY_MS",
    "INITIAL_CHECK_DELAY_MS",
    "DRY_RUN",
    "COMMAND_POLL_SECONDS",
)


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (network calls or external services).",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "live: marks tests that perform live network calls or hit external services (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch):
    # Write logs to a throwaway dir so real logs stay clean (per test)
    tmp_logs = tempfile.mkdtemp(prefix="ja-pytest-logs-")
    monkeypatch.setenv("LOG_DIR", tmp_logs)
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")

    # A developer's .env or shell must not leak into tests
    for name in _CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


# ---------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------
@pytest.fixture
def filters():
    return FilterConfig(FilterSnapshot(keyword="engineer", location="Remote", limit=10))


@pytest.fixture
def store(tmp_path):
    return SeenJobStore(str(tmp_path / "jobs.json"))


@pytest.fixture
def make_job():
    def _make(n, source="stub", title=None, company=None, **fields):
        return Job(
            id=f"{source}:{n}",
            title=title or f"Engineer {n}",
            company=company or f"Company {n}",
            source=source,
            **fields,
        )

    return _make


class StubSource(BaseSource):
    """Zero-network adapter: returns fixed jobs or raises; counts calls."""

    kind = "stub"

    def __init__(self, label="stub", jobs=(), error=None):
        super().__init__({"label": label})
        self.jobs = list(jobs)
        self.error = error
        self.calls = 0
        self.seen_filters = []

    def _fetch(self, filters):
        self.calls += 1
        self.seen_filters.append(filters)
        if self.error is not None:
            raise self.error
        return SourceResult(source=self.label, items=list(self.jobs))


@pytest.fixture
def stub_source():
    """Factory: stub_source("a", jobs=[...]) or stub_source("b", error=RuntimeError())."""
    return StubSource


@pytest.fixture
def fake_channel():
    """
    Records every payload; `fail_on` holds 1-based send attempts that raise.
    """
    ch = types.SimpleNamespace(sent=[], attempts=0, fail_on=set(), replies=[], resolvable=True)

    def send(payload):
        ch.attempts += 1
        if ch.attempts in ch.fail_on:
            raise RuntimeError(f"send #{ch.attempts} rejected")
        ch.sent.append(payload)

    def reply(text, message_id=None):
        ch.replies.append((message_id, text))

    ch.send = send
    ch.reply = reply
    ch.resolve = lambda: ch.resolvable
    return ch
