# service/chat_commands/parser.py
from __future__ import annotations

from typing import Any

PREFIX = "!job"

_SIMPLE = {
    "!jobcheck": "CHECK",
    "!jobsources": "SOURCES",
    "!jobclear": "CLEAR",
    "!jobhelp": "HELP",
}


def parse_command_line(line: str | None) -> dict[str, Any]:
    """
    Parse one chat message into a structured dict.

    SUPPORTED COMMANDS (command word is case-insensitive):

      !jobfilter                      -> {"command": "FILTER", "dimension": None, "value": None}
      !jobfilter <dimension> <value>  -> {"command": "FILTER", "dimension": "...", "value": "..."}
          (value keeps its inner spaces: "!jobfilter location New York, NY")
      !jobcheck                       -> {"command": "CHECK"}
      !jobsources                     -> {"command": "SOURCES"}
      !jobclear                       -> {"command": "CLEAR"}
      !jobhelp                        -> {"command": "HELP"}
      !job<anything else>             -> {"command": "UNKNOWN", "name": "<word>"}
      anything else                   -> {"command": None}
    """
    text = (line or "").strip()
    if not text.lower().startswith(PREFIX):
        return {"command": None}

    word, _, rest = text.partition(" ")
    word = word.lower()
    rest = rest.strip()

    if word in _SIMPLE:
        return {"command": _SIMPLE[word]}

    if word == "!jobfilter":
        dimension, _, value = rest.partition(" ")
        return {
            "command": "FILTER",
            "dimension": dimension.strip().lower() or None,
            "value": value.strip() or None,
        }

    return {"command": "UNKNOWN", "name": word}
