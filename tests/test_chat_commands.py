# tests/test_chat_commands.py
import types

import pytest

from modules.job_alert.lib.config import FilterConfig, MergeStrategy
from service import command_listener
from service.chat import ChatSendError
from service.chat_commands import handle_command, parse_command_line
from service.chat_commands import templates


@pytest.fixture
def controller():
    """Just enough of SchedulerController for the command handlers."""
    fc = FilterConfig()
    ctl = types.SimpleNamespace(checks=0, cleared=0, filters=fc, strategy=MergeStrategy.FALLBACK_CHAIN)

    def check_now(wait=False):
        ctl.checks += 1

    def clear_history():
        ctl.cleared += 1
        return 7

    ctl.describe_filters = fc.describe
    ctl.set_filter = fc.set
    ctl.check_now = check_now
    ctl.clear_history = clear_history
    ctl.list_sources = lambda: ["remotive", "rss", "static"]
    return ctl


# ----------------------------------------------------------------------
# 1. Parser
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "line,expected",
    [
        ("!jobcheck", {"command": "CHECK"}),
        ("  !JobCheck  ", {"command": "CHECK"}),
        ("!jobsources", {"command": "SOURCES"}),
        ("!jobclear", {"command": "CLEAR"}),
        ("!jobhelp", {"command": "HELP"}),
        ("!jobfilter", {"command": "FILTER", "dimension": None, "value": None}),
        ("!jobfilter remote", {"command": "FILTER", "dimension": "remote", "value": None}),
        (
            "!jobfilter Location New York, NY",
            {"command": "FILTER", "dimension": "location", "value": "New York, NY"},
        ),
        ("!jobsearch python", {"command": "UNKNOWN", "name": "!jobsearch"}),
        ("hello there", {"command": None}),
        ("", {"command": None}),
        (None, {"command": None}),
    ],
)
def test_parse_command_line(line, expected):
    assert parse_command_line(line) == expected


# ----------------------------------------------------------------------
# 2. Handlers
# ----------------------------------------------------------------------
def test_non_command_gets_no_reply(controller):
    assert handle_command("just chatting", controller) is None


def test_filter_set_applies_and_confirms(controller):
    reply = handle_command("!jobfilter experience mid-senior", controller)

    assert reply == "experience filter set to: MID_SENIOR"
    assert controller.filters.snapshot().experience == "MID_SENIOR"


def test_filter_clear_value_reads_no_filter(controller):
    controller.filters.set("remote", "REMOTE")
    assert handle_command("!jobfilter remote none", controller) == "remote filter set to: No filter"
    assert controller.filters.snapshot().remote == ""


def test_filter_alias_and_interval(controller):
    assert handle_command("!jobfilter interval 30", controller) == "interval filter set to: 30"
    assert handle_command("!jobfilter loc Berlin, Germany", controller) == "location filter set to: Berlin, Germany"


def test_invalid_filter_value_lists_allowed_and_keeps_state(controller):
    before = controller.filters.snapshot()
    reply = handle_command("!jobfilter job_type gig", controller)

    assert "Invalid value 'gig' for job_type" in reply
    assert "FULL_TIME" in reply and "VOLUNTEER" in reply
    assert controller.filters.snapshot() == before


def test_unknown_dimension(controller):
    reply = handle_command("!jobfilter salary 100k", controller)
    assert reply.startswith("Unknown filter 'salary'")


def test_missing_value(controller):
    reply = handle_command("!jobfilter date", controller)
    assert reply.startswith("Please specify a value for date_range")
    assert "PAST_24H" in reply


def test_filter_without_args_shows_current(controller):
    reply = handle_command("!jobfilter", controller)
    assert reply.startswith("**Current filters**")
    assert "- keyword: software engineer" in reply
    assert "- interval_minutes: 5" in reply


def test_check_triggers_cycle(controller):
    assert handle_command("!jobcheck", controller) == templates.CHECKING
    assert controller.checks == 1


def test_sources_lists_priority_order(controller):
    reply = handle_command("!jobsources", controller)
    lines = reply.splitlines()
    assert "first source with results wins" in lines[0]
    assert lines[1] == "1. Remotive (`remotive`)"
    assert lines[3] == "3. Job boards (`static`)"


def test_clear(controller):
    assert handle_command("!jobclear", controller) == "Job history cleared (7 entries removed)."
    assert controller.cleared == 1


def test_help_mentions_every_command(controller):
    reply = handle_command("!jobhelp", controller)
    for word in ("!jobfilter", "!jobcheck", "!jobsources", "!jobclear", "!jobhelp"):
        assert word in reply


def test_unknown_command(controller):
    assert "!jobhelp" in handle_command("!jobfoo", controller)


# ----------------------------------------------------------------------
# 3. Listener: one polling pass
# ----------------------------------------------------------------------
def test_process_messages_replies_and_advances_cursor(controller):
    replies = []
    channel = types.SimpleNamespace(
        fetch_messages=lambda after=None, limit=50: [
            {"id": "101", "content": "!jobcheck", "author": {"username": "sam"}},
            {"id": "102", "content": "!jobcheck", "author": {"username": "bot", "bot": True}},
            {"id": "103", "content": "nice", "author": {"username": "sam"}},
        ],
        reply=lambda text, message_id=None: replies.append((message_id, text)),
    )

    last = command_listener.process_messages(channel, controller, "100")

    assert last == "103"
    assert replies == [("101", templates.CHECKING)]
    assert controller.checks == 1


def test_process_messages_survives_reply_failure(controller):
    def reply(text, message_id=None):
        raise ChatSendError("forbidden")

    channel = types.SimpleNamespace(
        fetch_messages=lambda after=None, limit=50: [
            {"id": "5", "content": "!jobhelp", "author": {}},
            {"id": "6", "content": "!jobclear", "author": {}},
        ],
        reply=reply,
    )

    assert command_listener.process_messages(channel, controller, None) == "6"
    assert controller.cleared == 1


def test_listener_disabled_for_send_only_channel(controller):
    controller.channel = types.SimpleNamespace(send=lambda payload: None)
    assert command_listener.start(controller) is None
