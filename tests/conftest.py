"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from concurrent.futures import Future
from typing import Any

import pytest
from lsprotocol import types as lsp

from exls.lsp.session import Session

DOC_URI = "file:///workspace/example.txt"


class FakeServer:
    """Stands in for the pygls connection and records what the session sends."""

    def __init__(self, configuration: Any = None):
        # Returned for every workspace/configuration item; an Exception is raised instead
        self.configuration = configuration
        self.configuration_requests: list[lsp.ConfigurationParams] = []
        self.gate: asyncio.Event | None = None
        self.registrations: list[lsp.RegistrationParams] = []
        self.refresh_requests = 0
        self.published: list[lsp.PublishDiagnosticsParams] = []
        self.log_messages: list[str] = []

    async def workspace_configuration_async(self, params: lsp.ConfigurationParams) -> list[Any]:
        self.configuration_requests.append(params)
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(self.configuration, Exception):
            raise self.configuration
        return [self.configuration for _ in params.items]

    async def client_register_capability_async(self, params: lsp.RegistrationParams) -> None:
        self.registrations.append(params)

    def workspace_diagnostic_refresh(self, params: None) -> Future:
        self.refresh_requests += 1
        future: Future = Future()
        future.set_result(None)
        return future

    def text_document_publish_diagnostics(self, params: lsp.PublishDiagnosticsParams) -> None:
        self.published.append(params)

    def window_log_message(self, params: lsp.LogMessageParams) -> None:
        self.log_messages.append(params.message)


def client_capabilities(
    configuration: bool = False,
    workspace_folders: bool = False,
    related_information: bool = False,
) -> lsp.ClientCapabilities:
    return lsp.ClientCapabilities(
        workspace=lsp.WorkspaceClientCapabilities(
            configuration=configuration,
            workspace_folders=workspace_folders,
        ),
        text_document=lsp.TextDocumentClientCapabilities(
            publish_diagnostics=lsp.PublishDiagnosticsClientCapabilities(
                related_information=related_information,
            ),
        ),
    )


def initialize_params(**flags: bool) -> lsp.InitializeParams:
    return lsp.InitializeParams(
        process_id=None,
        root_uri=None,
        capabilities=client_capabilities(**flags),
    )


def open_params(text: str, uri: str = DOC_URI, version: int = 1) -> lsp.DidOpenTextDocumentParams:
    return lsp.DidOpenTextDocumentParams(
        text_document=lsp.TextDocumentItem(uri=uri, language_id="plaintext", version=version, text=text)
    )


async def settle(session: Session) -> None:
    """Wait for background validations to finish."""
    while session._tasks:
        await asyncio.gather(*list(session._tasks))


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def session(fake_server: FakeServer) -> Session:
    return Session(fake_server)


@pytest.fixture
def make_capabilities():
    return client_capabilities


@pytest.fixture
def make_initialize_params():
    return initialize_params


@pytest.fixture
def make_open_params():
    return open_params


@pytest.fixture
def settle_tasks():
    return settle
