# service/chat_commands/handlers.py
from __future__ import annotations

import logging
from typing import Any

from modules.job_alert.lib.config import ConfigError, allowed_values, canonical_dimension

from . import templates
from .parser import parse_command_line

logger = logging.getLogger(__name__)


def handle_command(text: str, controller: Any, author: str | None = None) -> str | None:
    """
    Execute one chat command against the scheduler controller and return the
    reply text, or None when the message is not a command.
    NEVER sends anything itself; the caller posts the reply.
    """
    cmd = parse_command_line(text)
    command = cmd["command"]
    if command is None:
        return None

    logger.info("Command from %s: %s", author or "?", text.strip())

    # ===================================================================
    # !jobfilter [<dimension> <value>]
    # ===================================================================
    if command == "FILTER":
        if not cmd["dimension"]:
            return templates.filters_text(controller.describe_filters())
        try:
            dimension = canonical_dimension(cmd["dimension"])
            if cmd["value"] is None:
                raise ConfigError(f"Please specify a value for {dimension}. Allowed: {allowed_values(dimension)}")
            controller.set_filter(dimension, cmd["value"])
        except ConfigError as e:
            return str(e)
        return templates.filter_set_text(dimension, controller.describe_filters())

    # ===================================================================
    # !jobcheck
    # ===================================================================
    if command == "CHECK":
        controller.check_now()
        return templates.CHECKING

    if command == "SOURCES":
        return templates.sources_text(controller.list_sources(), controller.strategy.value)

    if command == "CLEAR":
        return templates.cleared_text(controller.clear_history())

    if command == "HELP":
        return templates.help_text()

    return templates.unknown_text(cmd.get("name") or "")
