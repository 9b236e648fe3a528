"""
Protocol handlers.

Each handler is a plain function of ``(session, params)``. ``HANDLERS`` maps
protocol method names to handlers; the server registers them with pygls.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any

from lsprotocol import types as lsp

from . import completion
from .capabilities import completion_options, diagnostic_options
from .session import Session

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Lifecycle
# -----------------------------------------------------------------------------


def initialize(session: Session, params: lsp.InitializeParams) -> None:
    """Negotiate client capabilities.

    The advertisement is shaped afterwards by ExampleProtocol, once pygls has
    built its own ServerCapabilities.
    """
    session.negotiate(params.capabilities)


async def initialized(session: Session, params: lsp.InitializedParams) -> None:
    session.acknowledge()
    if session.capabilities.configuration:
        await session.server.client_register_capability_async(
            lsp.RegistrationParams(
                registrations=[
                    lsp.Registration(
                        id=str(uuid.uuid4()),
                        method=lsp.WORKSPACE_DID_CHANGE_CONFIGURATION,
                    )
                ]
            )
        )
        logger.debug("Registered for configuration change notifications")


# -----------------------------------------------------------------------------
# Workspace
# -----------------------------------------------------------------------------


def did_change_configuration(session: Session, params: lsp.DidChangeConfigurationParams) -> None:
    session.settings.configuration_changed(params.settings)
    # max_number_of_problems may have changed
    session.refresh_diagnostics()


def did_change_watched_files(session: Session, params: lsp.DidChangeWatchedFilesParams) -> None:
    session.log("We received a file change event")


def did_change_workspace_folders(
    session: Session, params: lsp.DidChangeWorkspaceFoldersParams
) -> None:
    if session.folder_events:
        session.log("Workspace folder change event received.")


# -----------------------------------------------------------------------------
# Text synchronization
# -----------------------------------------------------------------------------


def did_open(session: Session, params: lsp.DidOpenTextDocumentParams) -> None:
    item = params.text_document
    session.documents.open(item.uri, item.text, item.version, item.language_id)
    session.schedule_validation(item.uri)


def did_change(session: Session, params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    session.documents.apply_changes(uri, params.content_changes, params.text_document.version)
    session.schedule_validation(uri)


def did_close(session: Session, params: lsp.DidCloseTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Only keep settings for open documents
    session.settings.invalidate(uri)
    session.documents.close(uri)
    session.clear_diagnostics(uri)


# -----------------------------------------------------------------------------
# Language features
# -----------------------------------------------------------------------------


async def document_diagnostic(
    session: Session, params: lsp.DocumentDiagnosticParams
) -> lsp.FullDocumentDiagnosticReport:
    items = await session.validate(params.text_document.uri)
    return lsp.FullDocumentDiagnosticReport(items=items)


def on_completion(session: Session, params: lsp.CompletionParams) -> list[lsp.CompletionItem]:
    return completion.propose(params)


def on_completion_resolve(session: Session, item: lsp.CompletionItem) -> lsp.CompletionItem:
    return completion.resolve(item)


Handler = Callable[[Session, Any], Any]

HANDLERS: dict[str, Handler] = {
    lsp.INITIALIZE: initialize,
    lsp.INITIALIZED: initialized,
    lsp.WORKSPACE_DID_CHANGE_CONFIGURATION: did_change_configuration,
    lsp.WORKSPACE_DID_CHANGE_WATCHED_FILES: did_change_watched_files,
    lsp.WORKSPACE_DID_CHANGE_WORKSPACE_FOLDERS: did_change_workspace_folders,
    lsp.TEXT_DOCUMENT_DID_OPEN: did_open,
    lsp.TEXT_DOCUMENT_DID_CHANGE: did_change,
    lsp.TEXT_DOCUMENT_DID_CLOSE: did_close,
    lsp.TEXT_DOCUMENT_DIAGNOSTIC: document_diagnostic,
    lsp.TEXT_DOCUMENT_COMPLETION: on_completion,
    lsp.COMPLETION_ITEM_RESOLVE: on_completion_resolve,
}

# Registration options passed to pygls alongside the handler
FEATURE_OPTIONS: dict[str, Any] = {
    lsp.TEXT_DOCUMENT_DIAGNOSTIC: diagnostic_options(),
    lsp.TEXT_DOCUMENT_COMPLETION: completion_options(),
}

# Notifications get no response, so their failures are only logged
NOTIFICATIONS = frozenset(
    {
        lsp.INITIALIZED,
        lsp.WORKSPACE_DID_CHANGE_CONFIGURATION,
        lsp.WORKSPACE_DID_CHANGE_WATCHED_FILES,
        lsp.WORKSPACE_DID_CHANGE_WORKSPACE_FOLDERS,
        lsp.TEXT_DOCUMENT_DID_OPEN,
        lsp.TEXT_DOCUMENT_DID_CHANGE,
        lsp.TEXT_DOCUMENT_DID_CLOSE,
    }
)
