"""
LSP server for the example language.

Provides:
- Incremental text synchronization
- Pull diagnostics for all-uppercase words (optionally pushed on change)
- Completion with lazy resolve
- Per-document settings through workspace/configuration
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Generator
from typing import Any

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer
from pygls.protocol import LanguageServerProtocol, lsp_method

from .. import __version__
from ..config import DEFAULT_SETTINGS, ExampleSettings
from .capabilities import apply_advertisement
from .documents import DocumentNotOpenError
from .handlers import FEATURE_OPTIONS, HANDLERS, NOTIFICATIONS, Handler
from .session import Session, SessionState

logger = logging.getLogger(__name__)


class ExampleProtocol(LanguageServerProtocol):
    """Answers ``initialize`` with only what the client negotiated.

    pygls builds ServerCapabilities from the registered features inside its
    initialize handler, advertising workspace folders unconditionally. The
    built result is reconciled with the session's flags before it is sent.
    """

    @lsp_method(lsp.INITIALIZE)
    def lsp_initialize(self, params: lsp.InitializeParams) -> Generator[Any, Any, lsp.InitializeResult]:
        result = super().lsp_initialize(params)
        if inspect.isgenerator(result):
            result = yield from result

        session: Session = self._server.session
        if session.state is SessionState.UNINITIALIZED:
            # pygls did not run the initialize feature
            session.negotiate(params.capabilities)

        self.server_capabilities = apply_advertisement(result.capabilities, session.capabilities)
        return result


class ExampleLanguageServer(LanguageServer):
    """Language server owning exactly one Session."""

    def __init__(
        self,
        global_settings: ExampleSettings = DEFAULT_SETTINGS,
        push_diagnostics: bool = False,
    ):
        super().__init__(
            name="exls",
            version=__version__,
            text_document_sync_kind=lsp.TextDocumentSyncKind.Incremental,
            protocol_cls=ExampleProtocol,
        )
        self.session = Session(
            self,
            global_settings=global_settings,
            push_diagnostics=push_diagnostics,
        )


def _report(method: str, error: Exception) -> None:
    if isinstance(error, DocumentNotOpenError):
        logger.error(f"{method}: {error}")
    else:
        logger.exception(f"{method} handler failed")


def _bind(session: Session, method: str, handler: Handler) -> Any:
    """Adapt a (session, params) handler to the params-only form pygls calls.

    Notification handlers are isolated: a failure is logged and the session
    carries on. Request failures propagate so pygls answers with an error.
    """
    isolate = method in NOTIFICATIONS

    if inspect.iscoroutinefunction(handler):

        async def feature(params: Any) -> Any:
            try:
                return await handler(session, params)
            except Exception as e:
                if not isolate:
                    raise
                _report(method, e)
                return None

    else:

        def feature(params: Any) -> Any:
            try:
                return handler(session, params)
            except Exception as e:
                if not isolate:
                    raise
                _report(method, e)
                return None

    feature.__name__ = handler.__name__
    feature.__doc__ = handler.__doc__
    return feature


def create_server(
    global_settings: ExampleSettings = DEFAULT_SETTINGS,
    push_diagnostics: bool = False,
) -> ExampleLanguageServer:
    """Create and configure the LSP server."""
    server = ExampleLanguageServer(global_settings, push_diagnostics)

    for method, handler in HANDLERS.items():
        feature = _bind(server.session, method, handler)
        server.feature(method, FEATURE_OPTIONS.get(method))(feature)

    return server


def start_server(
    transport: str = "stdio",
    host: str = "localhost",
    port: int = 2087,
    global_settings: ExampleSettings = DEFAULT_SETTINGS,
    push_diagnostics: bool = False,
) -> None:
    """Start the LSP server.

    Args:
        transport: Transport method ("stdio" or "tcp")
        host: Bind address for tcp
        port: Port for tcp
        global_settings: Fallback settings for clients without workspace/configuration
        push_diagnostics: Also publish diagnostics on open/change
    """
    server = create_server(global_settings, push_diagnostics)

    if transport == "stdio":
        server.start_io()
    else:
        # TCP transport for debugging
        server.start_tcp(host, port)
