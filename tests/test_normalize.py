# tests/test_normalize.py
import pytest

from modules.job_alert.lib import normalize
from modules.job_alert.lib.models import DEFAULT_LOCATION, Job


# ----------------------------------------------------------------------
# 1. Each source shape maps onto the canonical fields
# ----------------------------------------------------------------------
def test_remotive_shape():
    raw = {
        "id": 1234567,
        "title": "Senior Backend Engineer",
        "company_name": "Acme",
        "candidate_required_location": "Worldwide",
        "url": "https://remotive.com/remote-jobs/software-dev/senior-backend-engineer-1234567",
        "publication_date": "2025-01-02T10:11:12",
        "description": "<p>Build <b>APIs</b>.</p>",
    }
    job = normalize.normalize_record(raw, "remotive")

    assert job.id == "remotive:1234567"
    assert job.title == "Senior Backend Engineer"
    assert job.company == "Acme"
    assert job.location == "Worldwide"
    assert job.link.endswith("-1234567")
    assert job.posted_time == "2025-01-02"
    assert job.description == "Build APIs ."
    assert job.source == "remotive"


def test_rss_shape_keeps_feed_label_in_source():
    raw = {
        "guid": "https://weworkremotely.com/remote-jobs/acme-engineer",
        "title": "Engineer",
        "author": "Acme",
        "link": "https://weworkremotely.com/remote-jobs/acme-engineer",
        "published": "Wed, 01 Jan 2025 08:00:00 +0000",
    }
    job = normalize.normalize_record(raw, "rss:weworkremotely")

    assert job.id == "rss:https://weworkremotely.com/remote-jobs/acme-engineer"
    assert job.company == "Acme"
    assert job.posted_time == "2025-01-01"
    assert job.source == "rss:weworkremotely"


def test_linkedin_shape():
    raw = {"id": "3901234567", "title": "Data Engineer", "company": "Initech", "posted_time": "2 days ago"}
    job = normalize.normalize_record(raw, "linkedin")

    assert job.id == "linkedin:3901234567"
    # not a timestamp -> kept as-is for display
    assert job.posted_time == "2 days ago"
    assert job.link is None


# ----------------------------------------------------------------------
# 2. Defaults for missing optional fields
# ----------------------------------------------------------------------
def test_missing_fields_get_defaults():
    job = normalize.normalize_record({}, "static")

    assert isinstance(job, Job)
    assert job.title == "(no title)"
    assert job.company == "Unknown company"
    assert job.location == DEFAULT_LOCATION
    assert job.link is None
    assert job.posted_time == ""
    assert job.description == ""


def test_location_and_description_are_stripped_of_markup():
    raw = {
        "title": "Engineer",
        "company": "Acme",
        "location": "<span>Berlin</span>",
        "description": "&lt;b&gt;Great&lt;/b&gt; team &amp; culture",
    }
    job = normalize.normalize_record(raw, "static")

    assert job.location == "Berlin"
    assert job.description == "Great team & culture"


# ----------------------------------------------------------------------
# 3. Ids: native first, composite otherwise, stable across fetches
# ----------------------------------------------------------------------
def test_native_id_wins_over_composite():
    a = normalize.normalize_record({"id": "42", "title": "A", "company_name": "X"}, "remotive")
    b = normalize.normalize_record({"id": "42", "title": "A (edited)", "company_name": "X"}, "remotive")
    assert a.id == b.id == "remotive:42"


def test_composite_id_is_stable_and_case_insensitive():
    raw = {"title": "Backend  Engineer", "company": "ACME", "disambiguator": "d1"}
    first = normalize.normalize_record(raw, "static")
    again = normalize.normalize_record({"title": "backend engineer", "company": "acme", "disambiguator": "d1"}, "static")

    assert first.id == again.id
    assert first.id.startswith("static:")
    assert len(first.id) == len("static:") + 16


def test_composite_id_changes_with_disambiguator():
    a = normalize.derive_job_id("synthetic", title="Engineer", company="Acme", disambiguator="2025-01-01-0")
    b = normalize.derive_job_id("synthetic", title="Engineer", company="Acme", disambiguator="2025-01-01-1")
    assert a != b


def test_composite_id_differs_between_feeds():
    a = normalize.derive_job_id("rss:one", title="Engineer", company="Acme")
    b = normalize.derive_job_id("rss:two", title="Engineer", company="Acme")
    assert a != b
    assert a.startswith("rss:") and b.startswith("rss:")


# ----------------------------------------------------------------------
# 4. Helpers
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "source,kind",
    [("rss:weworkremotely", "rss"), ("LinkedIn", "linkedin"), ("", "")],
)
def test_source_kind(source, kind):
    assert normalize.source_kind(source) == kind


def test_merge_key_ignores_case_and_spacing():
    a = Job(id="a:1", title="Senior  Engineer", company="Acme")
    b = Job(id="b:9", title="senior engineer", company="ACME ")
    assert normalize.merge_key(a) == normalize.merge_key(b)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2025-03-04T05:06:07Z", "2025-03-04"),
        ("Tue, 04 Mar 2025 05:06:07 GMT", "2025-03-04"),
        ("Recently", "Recently"),
        (None, ""),
    ],
)
def test_display_date(value, expected):
    assert normalize.display_date(value) == expected
