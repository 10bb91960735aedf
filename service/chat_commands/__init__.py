# service/chat_commands/__init__.py
"""
Prefix commands read from the alert channel.

Public API:
    handle_command(text, controller, author=None) -> reply text | None
"""

from __future__ import annotations

from .handlers import handle_command
from .parser import parse_command_line

__all__ = ["handle_command", "parse_command_line"]
