"""
Settings model for the example language server.

Settings arrive from three places:
- the client, per document, through ``workspace/configuration``
- the client, globally, through ``workspace/didChangeConfiguration``
- a TOML file given on the command line (fallback defaults)

All of them are decoded defensively into ``ExampleSettings``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Configuration section requested from the client
SETTINGS_SECTION = "languageServerExample"


@dataclass(frozen=True)
class ExampleSettings:
    """Resolved settings for one document (or the whole session)."""

    max_number_of_problems: int = 1000

    @classmethod
    def from_payload(cls, payload: Any, default: ExampleSettings | None = None) -> ExampleSettings:
        """
        Decode a client settings payload.

        Args:
            payload: The ``languageServerExample`` section as sent by the client
            default: Settings to fall back to (DEFAULT_SETTINGS if None)

        Returns:
            Decoded settings; invalid or missing fields keep the default value
        """
        base = default or DEFAULT_SETTINGS
        if payload is None:
            return base
        if not isinstance(payload, dict):
            logger.warning(f"Ignoring malformed settings payload: {payload!r}")
            return base

        value = payload.get("maxNumberOfProblems", base.max_number_of_problems)
        # bool is an int subclass; true/false is never a valid count
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            logger.warning(f"Invalid maxNumberOfProblems {value!r}, using {base.max_number_of_problems}")
            value = base.max_number_of_problems

        return cls(max_number_of_problems=value)

    def to_payload(self) -> dict[str, Any]:
        """Serialize in the client's wire shape."""
        return {"maxNumberOfProblems": self.max_number_of_problems}


# Used when the client cannot answer `workspace/configuration`
DEFAULT_SETTINGS = ExampleSettings()


def load_settings_file(path: Path) -> ExampleSettings:
    """
    Load fallback settings from TOML.

    Accepts either a ``[languageServerExample]`` table or a top-level
    ``maxNumberOfProblems`` key.
    """
    import tomllib

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"{path}: {e}") from e

    section = data.get(SETTINGS_SECTION, data)
    if not isinstance(section, dict):
        raise ValueError(f"{path}: [{SETTINGS_SECTION}] must be a table")

    value = section.get("maxNumberOfProblems", DEFAULT_SETTINGS.max_number_of_problems)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{path}: maxNumberOfProblems must be a non-negative integer")

    return ExampleSettings(max_number_of_problems=value)
