# tests/test_chat.py
import pytest
import requests

from modules.job_alert.lib import render
from modules.job_alert.lib.config import Settings
from service import chat


class FakeClient:
    """Stands in for HttpClient; records calls, optionally raises."""

    def __init__(self, get_result=None, post_error=None, get_error=None):
        self.get_result = get_result
        self.post_error = post_error
        self.get_error = get_error
        self.posts = []
        self.gets = []
        self.closed = False

    def get_json(self, url, params=None, headers=None, **kw):
        self.gets.append((url, params, headers))
        if self.get_error:
            raise self.get_error
        return self.get_result

    def post_json(self, url, payload, headers=None, timeout=None):
        self.posts.append((url, payload, headers))
        if self.post_error:
            raise self.post_error
        return {"id": "1"}

    def close(self):
        self.closed = True


# ----------------------------------------------------------------------
# 1. Bot channel
# ----------------------------------------------------------------------
def test_bot_send_posts_to_channel_with_auth():
    client = FakeClient()
    ch = chat.DiscordBotChannel("42", "secret-token", client=client)

    ch.send({"content": "hi"})

    url, payload, headers = client.posts[0]
    assert url == f"{chat.DISCORD_API}/channels/42/messages"
    assert payload == {"content": "hi"}
    assert headers == {"Authorization": "Bot secret-token"}


def test_bot_send_failure_becomes_chat_send_error():
    ch = chat.DiscordBotChannel("42", "t", client=FakeClient(post_error=requests.HTTPError("403 Forbidden")))
    with pytest.raises(chat.ChatSendError, match="403"):
        ch.send({"content": "hi"})


def test_bot_resolve():
    assert chat.DiscordBotChannel("42", "t", client=FakeClient(get_result={"id": "42"})).resolve() is True
    missing = chat.DiscordBotChannel("42", "t", client=FakeClient(get_error=requests.HTTPError("404")))
    assert missing.resolve() is False


def test_bot_reply_references_message():
    client = FakeClient()
    chat.DiscordBotChannel("42", "t", client=client).reply("done", "99")
    assert client.posts[0][1] == {"content": "done", "message_reference": {"message_id": "99"}}


def test_bot_fetch_messages_oldest_first():
    client = FakeClient(get_result=[{"id": "12"}, {"id": "3"}, "junk", {"id": "7"}])
    msgs = chat.DiscordBotChannel("42", "t", client=client).fetch_messages(after="2")

    assert [m["id"] for m in msgs] == ["3", "7", "12"]
    assert client.gets[0][1] == {"limit": 50, "after": "2"}


def test_bot_fetch_messages_rejects_non_list():
    ch = chat.DiscordBotChannel("42", "t", client=FakeClient(get_result={"message": "Missing Access"}))
    with pytest.raises(ValueError):
        ch.fetch_messages()


# ----------------------------------------------------------------------
# 2. Webhook and dry-run channels
# ----------------------------------------------------------------------
def test_webhook_send_and_failure():
    client = FakeClient()
    chat.DiscordWebhookChannel("https://discord.example/webhook", client=client).send({"content": "x"})
    assert client.posts[0][0] == "https://discord.example/webhook"

    bad = chat.DiscordWebhookChannel("https://discord.example/webhook", client=FakeClient(post_error=requests.ConnectionError()))
    with pytest.raises(chat.ChatSendError):
        bad.send({"content": "x"})


def test_log_channel_records_payloads():
    ch = chat.LogChannel()
    ch.send({"embeds": [{"title": "T", "description": "**Company:** C", "url": "https://x"}]})
    assert len(ch.sent) == 1
    assert render.payload_text(ch.sent[0]) == "T\nCompany: C\nLink: https://x"


# ----------------------------------------------------------------------
# 3. Building the destination from settings
# ----------------------------------------------------------------------
def test_build_channel_precedence():
    assert isinstance(chat.build_channel(Settings(dry_run=True, webhook_url="https://w")), chat.LogChannel)
    assert isinstance(chat.build_channel(Settings(webhook_url="https://w", channel_id="1", bot_token="t")), chat.DiscordWebhookChannel)
    assert isinstance(chat.build_channel(Settings(channel_id="1", bot_token="t")), chat.DiscordBotChannel)
    assert chat.build_channel(Settings(channel_id="1")) is None


def test_resolve_channel_unreachable_is_none(monkeypatch):
    monkeypatch.setattr(chat.DiscordBotChannel, "resolve", lambda self: False)
    assert chat.resolve_channel(Settings(channel_id="1", bot_token="t")) is None
