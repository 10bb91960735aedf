# tests/test_notifier.py
import json
from unittest import mock

from modules.job_alert.lib import render
from modules.job_alert.lib.models import DEFAULT_LINK, Job
from modules.job_alert.lib.notifier import Notifier


# ----------------------------------------------------------------------
# 1. One failed send does not stop the batch; only successes are recorded
# ----------------------------------------------------------------------
def test_partial_failure_isolated(store, make_job, fake_channel):
    fake_channel.fail_on = {2}
    jobs = [make_job(i) for i in (1, 2, 3)]
    notifier = Notifier(store, delay_seconds=0)

    with mock.patch.object(store, "persist", wraps=store.persist) as persist:
        report = notifier.deliver(jobs, fake_channel.send)

    assert report.attempted == 3
    assert report.delivered == ["stub:1", "stub:3"]
    assert report.failed == ["stub:2"]
    assert report.persisted is True
    assert persist.call_count == 1
    assert store.contains("stub:1") and store.contains("stub:3")
    assert not store.contains("stub:2")

    with open(store.path, encoding="utf-8") as f:
        assert set(json.load(f)) == {"stub:1", "stub:3"}


def test_failed_job_is_retried_next_time(store, make_job, fake_channel):
    fake_channel.fail_on = {1}
    notifier = Notifier(store, delay_seconds=0)
    notifier.deliver([make_job(1)], fake_channel.send)

    again = notifier.deliver([make_job(1)], fake_channel.send)
    assert again.delivered == ["stub:1"]


# ----------------------------------------------------------------------
# 2. Cap and pacing
# ----------------------------------------------------------------------
def test_cap_limits_sends(store, make_job, fake_channel):
    jobs = [make_job(i) for i in range(12)]
    report = Notifier(store, max_per_check=5, delay_seconds=0).deliver(jobs, fake_channel.send)

    assert report.attempted == 5
    assert report.skipped == 7
    assert len(fake_channel.sent) == 5
    assert len(store) == 5
    # order is preserved
    assert report.delivered == [f"stub:{i}" for i in range(5)]


def test_sleeps_between_sends_not_after_last(store, make_job, fake_channel):
    sleeps = []
    notifier = Notifier(store, delay_seconds=1.5, sleep=sleeps.append)
    notifier.deliver([make_job(i) for i in range(3)], fake_channel.send)
    assert sleeps == [1.5, 1.5]


def test_no_sleep_after_failed_send(store, make_job, fake_channel):
    fake_channel.fail_on = {1}
    sleeps = []
    Notifier(store, delay_seconds=1, sleep=sleeps.append).deliver([make_job(1), make_job(2)], fake_channel.send)
    assert sleeps == []


def test_empty_batch_sends_and_writes_nothing(store, fake_channel):
    with mock.patch.object(store, "persist") as persist:
        report = Notifier(store).deliver([], fake_channel.send)

    assert report.attempted == 0
    assert report.persisted is None
    persist.assert_not_called()
    assert fake_channel.sent == []


def test_persist_failure_is_reported(store, make_job, fake_channel):
    with mock.patch.object(store, "persist", return_value=False):
        report = Notifier(store, delay_seconds=0).deliver([make_job(1)], fake_channel.send)

    assert report.delivered == ["stub:1"]
    assert report.persisted is False


# ----------------------------------------------------------------------
# 3. Message rendering
# ----------------------------------------------------------------------
def test_message_fields(frozen_utc):
    job = Job(
        id="remotive:1",
        title="Backend Engineer",
        company="Acme",
        location="Remote",
        link="https://example.com/jobs/1",
        posted_time="2025-01-01",
        source="remotive",
        description="x" * 300,
    )
    embed = render.build_message(job, description_chars=200)["embeds"][0]

    assert embed["title"] == "Backend Engineer"
    assert embed["url"] == "https://example.com/jobs/1"
    assert embed["color"] == render.EMBED_COLOR
    assert embed["footer"]["text"] == "Job Alert • Remotive"
    assert embed["timestamp"] == "2025-01-01T00:00:00Z"
    lines = embed["description"].split("\n")
    assert lines[:3] == ["**Company:** Acme", "**Location:** Remote", "**Posted:** 2025-01-01"]
    assert lines[-1] == "x" * 200 + "..."


def test_message_defaults_for_missing_link_and_date():
    job = Job(id="synthetic:abc", title="Staff Engineer", company="TechCorp", source="synthetic")
    embed = render.build_message(job)["embeds"][0]

    assert embed["url"] == DEFAULT_LINK
    assert "**Posted:** Recently" in embed["description"]
    assert embed["footer"]["text"] == "Job Alert • Sample"


def test_short_description_is_not_marked():
    job = Job(id="a:1", title="T", company="C", description="Short and sweet.")
    assert render.build_message(job)["embeds"][0]["description"].endswith("Short and sweet.")


def test_source_labels():
    assert render.source_label("rss:weworkremotely") == "RSS (weworkremotely)"
    assert render.source_label("linkedin") == "LinkedIn"
    assert render.source_label("static") == "Job boards"


def test_payload_text_is_plain_and_names_the_source():
    job = Job(id="a:1", title="T", company="C", source="rss:weworkremotely")
    text = render.payload_text(render.build_message(job))

    lines = text.splitlines()
    assert "**" not in text
    assert lines[0] == "T"
    assert "Company: C" in lines
    assert lines[-2:] == ["Source: RSS (weworkremotely)", f"Link: {DEFAULT_LINK}"]


def test_payload_text_passes_replies_through():
    assert render.payload_text({"content": "Filter updated."}) == "Filter updated."
