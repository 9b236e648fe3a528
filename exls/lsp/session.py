"""
Session state for one editor connection.

The Session is created once per server, before ``initialize``, and passed to
every handler. It owns the negotiated capability flags, the document store and
the settings resolver; nothing outside the handlers mutates them.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future
from enum import Enum
from typing import Any

from lsprotocol import types as lsp

from ..config import DEFAULT_SETTINGS, SETTINGS_SECTION, ExampleSettings
from .capabilities import ClientCapabilityFlags
from .diagnostics import validate
from .documents import DocumentStore
from .settings import SettingsResolutionError, SettingsResolver

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    PENDING_ACK = "pending-ack"  # initialize answered, waiting for `initialized`
    RUNNING = "running"


class Session:
    """Server-side state for one client connection.

    Args:
        server: The protocol connection (a pygls LanguageServer)
        global_settings: Settings used when the client has no scoped configuration
        push_diagnostics: Publish diagnostics on open/change in addition to pulls
    """

    def __init__(
        self,
        server: Any,
        *,
        global_settings: ExampleSettings = DEFAULT_SETTINGS,
        push_diagnostics: bool = False,
    ):
        self.server = server
        self.push_diagnostics = push_diagnostics
        self.state = SessionState.UNINITIALIZED
        self.capabilities = ClientCapabilityFlags()
        self.documents = DocumentStore()
        self.settings = SettingsResolver(self.fetch_configuration, global_settings=global_settings)
        self.folder_events = False
        self._tasks: set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def negotiate(self, client_capabilities: Any) -> ClientCapabilityFlags:
        """Decode client capabilities; only the first call has any effect."""
        if self.state is not SessionState.UNINITIALIZED:
            logger.warning("Repeated initialize ignored, capabilities already negotiated")
            return self.capabilities

        self.capabilities = ClientCapabilityFlags.from_client(client_capabilities)
        self.settings.scoped = self.capabilities.configuration
        self.state = SessionState.PENDING_ACK
        logger.info(f"Negotiated client capabilities: {self.capabilities}")
        return self.capabilities

    def acknowledge(self) -> None:
        if self.state is not SessionState.PENDING_ACK:
            logger.warning(f"initialized received in state {self.state.value}")
        self.folder_events = self.capabilities.workspace_folders
        self.state = SessionState.RUNNING

    # -------------------------------------------------------------------------
    # Client requests
    # -------------------------------------------------------------------------

    async def fetch_configuration(self, uri: str) -> Any:
        """Ask the client for the settings section scoped to `uri`."""
        params = lsp.ConfigurationParams(
            items=[lsp.ConfigurationItem(scope_uri=uri, section=SETTINGS_SECTION)]
        )
        result = await self.server.workspace_configuration_async(params)
        return result[0] if result else None

    def refresh_diagnostics(self) -> None:
        """Ask the client to re-pull diagnostics; re-publish when pushing."""
        future = self.server.workspace_diagnostic_refresh(None)
        future.add_done_callback(_log_refresh_failure)
        if self.push_diagnostics:
            for document in self.documents:
                self.schedule_validation(document.uri)

    def log(self, message: str) -> None:
        """Log locally and in the client's output console."""
        logger.info(message)
        self.server.window_log_message(lsp.LogMessageParams(type=lsp.MessageType.Log, message=message))

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    async def _diagnose(self, uri: str) -> list[lsp.Diagnostic] | None:
        """Run diagnostics for an open document; None if it cannot be validated."""
        if uri not in self.documents:
            return None
        try:
            settings = await self.settings.resolve(uri)
        except SettingsResolutionError as e:
            logger.error(f"{e}; reporting nothing for this document")
            return None

        # The document may have changed or closed while settings resolved
        text = self.documents.text(uri)
        if text is None:
            return None
        return validate(
            text,
            settings,
            uri=uri,
            related_information=self.capabilities.related_information,
        )

    async def validate(self, uri: str) -> list[lsp.Diagnostic]:
        """Diagnostics for a pull request; empty for unknown documents."""
        diagnostics = await self._diagnose(uri)
        return diagnostics or []

    def schedule_validation(self, uri: str) -> None:
        """Publish fresh diagnostics for `uri` in the background (push mode only)."""
        if not self.push_diagnostics:
            return
        document = self.documents.get(uri)
        if document is None:
            return
        task = asyncio.ensure_future(self._publish(uri, document.version))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _publish(self, uri: str, version: int | None) -> None:
        try:
            diagnostics = await self._diagnose(uri)
            if diagnostics is None:
                return
            document = self.documents.get(uri)
            if document is None or document.version != version:
                # A newer change scheduled its own validation
                logger.debug(f"Dropping stale diagnostics for {uri} (version {version})")
                return
            self.server.text_document_publish_diagnostics(
                lsp.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics, version=version)
            )
        except Exception:
            logger.exception(f"Failed to publish diagnostics for {uri}")

    def clear_diagnostics(self, uri: str) -> None:
        if self.push_diagnostics:
            self.server.text_document_publish_diagnostics(
                lsp.PublishDiagnosticsParams(uri=uri, diagnostics=[])
            )


def _log_refresh_failure(future: Future | asyncio.Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.warning(f"Diagnostics refresh request failed: {error}")
