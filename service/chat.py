# service/chat.py
from __future__ import annotations

import logging
from typing import Any

import requests

from modules.job_alert.lib.config import Settings
from modules.job_alert.lib.http_client import HttpClient
from modules.job_alert.lib.render import payload_text

LOG = logging.getLogger(__name__)

DISCORD_API = "https://discord.com/api/v10"


# ---- Errors -----------------------------------------------------------------


class ChatSendError(RuntimeError):
    """Raised when a chat message cannot be delivered."""


# ---- Channels ---------------------------------------------------------------


class DiscordBotChannel:
    """
    A guild text channel reached through the bot REST API.

    resolve() confirms the bot can see the channel; the command listener uses
    fetch_messages() to read prefix commands from the same channel.
    """

    def __init__(self, channel_id: str, token: str, client: HttpClient | None = None) -> None:
        self.channel_id = str(channel_id)
        self._client = client or HttpClient()
        self._headers = {"Authorization": f"Bot {token}"}

    @property
    def label(self) -> str:
        return f"discord:{self.channel_id}"

    def resolve(self) -> bool:
        try:
            self._client.get_json(f"{DISCORD_API}/channels/{self.channel_id}", headers=self._headers)
        except (requests.RequestException, ValueError) as e:
            LOG.error("Channel %s could not be resolved: %r", self.channel_id, e)
            return False
        return True

    def send(self, payload: dict[str, Any]) -> Any:
        try:
            return self._client.post_json(
                f"{DISCORD_API}/channels/{self.channel_id}/messages", payload, headers=self._headers
            )
        except (requests.RequestException, ValueError) as e:
            raise ChatSendError(f"send to channel {self.channel_id} failed: {e!r}") from e

    def reply(self, text: str, message_id: str | None = None) -> Any:
        payload: dict[str, Any] = {"content": text}
        if message_id:
            payload["message_reference"] = {"message_id": message_id}
        return self.send(payload)

    def fetch_messages(self, after: str | None = None, limit: int = 50) -> list[dict[str, Any]]:
        """Messages newer than `after`, oldest first."""
        params: dict[str, Any] = {"limit": limit}
        if after:
            params["after"] = after
        data = self._client.get_json(
            f"{DISCORD_API}/channels/{self.channel_id}/messages", params=params, headers=self._headers
        )
        if not isinstance(data, list):
            raise ValueError(f"unexpected messages payload: {type(data).__name__}")
        return sorted((m for m in data if isinstance(m, dict)), key=lambda m: int(m.get("id") or 0))

    def close(self) -> None:
        self._client.close()


class DiscordWebhookChannel:
    """Send-only channel backed by an incoming webhook URL."""

    def __init__(self, url: str, client: HttpClient | None = None) -> None:
        self.url = url
        self._client = client or HttpClient()

    @property
    def label(self) -> str:
        return "discord:webhook"

    def resolve(self) -> bool:
        return bool(self.url)

    def send(self, payload: dict[str, Any]) -> Any:
        try:
            return self._client.post_json(self.url, payload)
        except (requests.RequestException, ValueError) as e:
            raise ChatSendError(f"webhook send failed: {e!r}") from e

    def reply(self, text: str, message_id: str | None = None) -> Any:
        return self.send({"content": text})

    def close(self) -> None:
        self._client.close()


class LogChannel:
    """Dry-run channel: messages go to the log instead of a chat service."""

    label = "log"

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    def resolve(self) -> bool:
        return True

    def send(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)
        LOG.info("[dry-run] %s", payload_text(payload))

    def reply(self, text: str, message_id: str | None = None) -> None:
        self.send({"content": text})

    def close(self) -> None:
        pass


# ---- Helpers ----------------------------------------------------------------


def build_channel(settings: Settings) -> Any | None:
    """
    Pick the destination from settings without touching the network.
    Precedence: dry run > webhook URL > bot channel id + token.
    """
    if settings.dry_run:
        return LogChannel()
    if settings.webhook_url:
        return DiscordWebhookChannel(settings.webhook_url)
    if settings.channel_id and settings.bot_token:
        return DiscordBotChannel(settings.channel_id, settings.bot_token)
    LOG.error("No destination configured: set DISCORD_WEBHOOK_URL, or CHANNEL_ID and DISCORD_BOT_TOKEN, or DRY_RUN=1")
    return None


def resolve_channel(settings: Settings) -> Any | None:
    """A ready channel, or None when it is not configured or not reachable."""
    channel = build_channel(settings)
    if channel is None:
        return None
    if not channel.resolve():
        channel.close()
        return None
    return channel
