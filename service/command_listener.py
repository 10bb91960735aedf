# service/command_listener.py
from __future__ import annotations

import logging
import threading
from typing import Any

from service.chat import ChatSendError
from service.chat_commands import handle_command

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

# --------------------------------------------------------------------------- #
# Public control surface
# --------------------------------------------------------------------------- #
_thread: threading.Thread | None = None
_stop_event = threading.Event()


class ListenerController:
    def __init__(self, thread: threading.Thread, stop_event: threading.Event):
        self._thread = thread
        self._stop = stop_event

    def stop(self) -> None:
        """Signal the listener loop to exit promptly."""
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the listener thread to exit."""
        if self._thread.is_alive():
            self._thread.join(timeout=timeout)

    @property
    def thread(self) -> threading.Thread:
        return self._thread


def start(controller: Any, poll_seconds: int | None = None) -> ListenerController | None:
    """
    Start polling the alert channel for `!job...` commands in a daemon thread.
    Returns None when the channel cannot be read (webhook, dry run).
    """
    global _thread
    channel = getattr(controller, "channel", None)
    if channel is None or not hasattr(channel, "fetch_messages"):
        logger.info("[commands] Channel does not support reading messages; command listener disabled.")
        return None

    if _thread and _thread.is_alive():
        logger.info("[commands] listener already running")
        return ListenerController(_thread, _stop_event)

    poll = poll_seconds or controller.settings.command_poll_seconds
    _stop_event.clear()
    t = threading.Thread(
        target=_command_listener_loop,
        name="chat-command-listener",
        args=(controller, channel, max(1, int(poll)), _stop_event),
        daemon=True,
    )
    t.start()
    _thread = t
    return ListenerController(t, _stop_event)


def stop() -> None:
    """Module-level convenience to stop the listener loop."""
    _stop_event.set()


# --------------------------------------------------------------------------- #
# Polling loop
# --------------------------------------------------------------------------- #
def process_messages(channel: Any, controller: Any, last_id: str | None) -> str | None:
    """
    Handle every message newer than `last_id`, replying to commands.
    Returns the id of the newest message seen (the next `after` cursor).
    """
    for msg in channel.fetch_messages(after=last_id):
        last_id = str(msg.get("id") or last_id)
        author = msg.get("author") or {}
        if author.get("bot"):
            continue

        try:
            reply = handle_command(str(msg.get("content") or ""), controller, author.get("username"))
        except Exception:
            logger.exception("[commands] Failed to handle message %s", msg.get("id"))
            continue

        if reply:
            try:
                channel.reply(reply, msg.get("id"))
            except ChatSendError:
                logger.error("[commands] Failed to reply to message %s", msg.get("id"), exc_info=True)
    return last_id


def _command_listener_loop(controller: Any, channel: Any, poll: int, stop_event: threading.Event) -> None:
    """
    - Starts after the newest existing message, so old commands are not replayed
    - Polls every `poll` seconds
    - Uses exponential backoff on errors (30s doubling, max 300s)
    """
    backoff = 30
    last_id: str | None = None
    primed = False

    while not stop_event.is_set():
        try:
            if not primed:
                existing = channel.fetch_messages(limit=1)
                last_id = str(existing[-1]["id"]) if existing else None
                primed = True
                logger.info("[commands] Listening on %s", getattr(channel, "label", "channel"))
            else:
                last_id = process_messages(channel, controller, last_id)
            backoff = 30
            stop_event.wait(poll)
        except Exception as e:
            if stop_event.is_set():
                break
            logger.error("[commands] Poll error: %r - retrying in %ds", e, backoff)
            stop_event.wait(backoff)
            backoff = min(backoff * 2, 300)

    logger.info("[commands] Listener stopped")
