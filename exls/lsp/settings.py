"""
Per-document settings resolution.

When the client supports ``workspace/configuration`` settings are fetched per
document URI and cached. The cache holds the fetch task itself, so callers
that arrive while a fetch is in flight share it: at most one outstanding
request per URI.

Cache entries are dropped only when their document closes, and the whole
cache is dropped when the client reports a configuration change. A fetch the
client never answers never completes; no timeout is applied.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..config import DEFAULT_SETTINGS, SETTINGS_SECTION, ExampleSettings

logger = logging.getLogger(__name__)

# Fetches the raw `languageServerExample` section for one document URI
FetchSettings = Callable[[str], Awaitable[Any]]


class SettingsResolutionError(RuntimeError):
    """The client failed to provide settings for a document."""

    def __init__(self, uri: str, reason: str = ""):
        message = f"Could not resolve settings for {uri}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.uri = uri


class SettingsResolver:
    """Resolves ExampleSettings per document URI, with a global fallback."""

    def __init__(
        self,
        fetch: FetchSettings,
        *,
        scoped: bool = False,
        global_settings: ExampleSettings = DEFAULT_SETTINGS,
    ):
        self._fetch = fetch
        self.scoped = scoped
        self.global_settings = global_settings
        # Fallback restored when a configuration change omits our section
        self.default_settings = global_settings
        self._cache: dict[str, asyncio.Future[ExampleSettings]] = {}

    def __contains__(self, uri: object) -> bool:
        return uri in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    async def resolve(self, uri: str) -> ExampleSettings:
        if not self.scoped:
            return self.global_settings

        pending = self._cache.get(uri)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_settings(uri))
            self._cache[uri] = pending
        # Shield so a cancelled caller does not cancel the shared fetch
        return await asyncio.shield(pending)

    async def _fetch_settings(self, uri: str) -> ExampleSettings:
        logger.debug(f"Fetching [{SETTINGS_SECTION}] settings for {uri}")
        try:
            payload = await self._fetch(uri)
        except Exception as e:
            raise SettingsResolutionError(uri, str(e) or type(e).__name__) from e
        return ExampleSettings.from_payload(payload, self.default_settings)

    def invalidate(self, uri: str) -> None:
        """Forget the settings cached for a closed document."""
        self._cache.pop(uri, None)

    def clear(self) -> None:
        self._cache.clear()

    def configuration_changed(self, payload: Any) -> None:
        """
        React to ``workspace/didChangeConfiguration``.

        Scoped: drop every cached entry so the next resolve re-fetches.
        Global: replace the global settings with the payload's section.
        """
        if self.scoped:
            logger.debug(f"Configuration changed, dropping {len(self._cache)} cached settings")
            self.clear()
            return

        section = payload.get(SETTINGS_SECTION) if isinstance(payload, dict) else None
        self.global_settings = ExampleSettings.from_payload(section, self.default_settings)
        logger.debug(f"Global settings now {self.global_settings}")
