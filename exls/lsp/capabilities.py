"""
Capability negotiation.

The client's capability tree is decoded once, at ``initialize``, into three
flags. Every other component reads those flags; nothing re-reads the tree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from lsprotocol import types as lsp


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _has_path(tree: Any, *path: str) -> bool:
    """True iff every node along `path` exists and the leaf is truthy.

    Works on structured lsprotocol objects (snake_case attributes) and raw
    JSON dicts (camelCase keys). Anything else along the way counts as absent.
    """
    node = tree
    for name in path:
        if node is None:
            return False
        if isinstance(node, dict):
            node = node.get(_camel(name))
        elif isinstance(node, (str, int, float, list, tuple)):
            return False
        else:
            node = getattr(node, name, None)
    return bool(node)


@dataclass(frozen=True)
class ClientCapabilityFlags:
    """Client features the server may rely on for the rest of the session."""

    configuration: bool = False
    workspace_folders: bool = False
    related_information: bool = False

    @classmethod
    def from_client(cls, capabilities: Any) -> ClientCapabilityFlags:
        """Decode flags from ``InitializeParams.capabilities``."""
        return cls(
            configuration=_has_path(capabilities, "workspace", "configuration"),
            workspace_folders=_has_path(capabilities, "workspace", "workspace_folders"),
            related_information=_has_path(
                capabilities, "text_document", "publish_diagnostics", "related_information"
            ),
        )


def completion_options() -> lsp.CompletionOptions:
    return lsp.CompletionOptions(resolve_provider=True)


def diagnostic_options() -> lsp.DiagnosticOptions:
    return lsp.DiagnosticOptions(inter_file_dependencies=False, workspace_diagnostics=False)


def advertise(flags: ClientCapabilityFlags) -> lsp.ServerCapabilities:
    """Build the capabilities answered to ``initialize``."""
    capabilities = lsp.ServerCapabilities(
        text_document_sync=lsp.TextDocumentSyncKind.Incremental,
        completion_provider=completion_options(),
        diagnostic_provider=diagnostic_options(),
    )
    if flags.workspace_folders:
        capabilities.workspace = lsp.WorkspaceOptions(
            workspace_folders=lsp.WorkspaceFoldersServerCapabilities(supported=True),
        )
    return capabilities


def apply_advertisement(
    capabilities: lsp.ServerCapabilities, flags: ClientCapabilityFlags
) -> lsp.ServerCapabilities:
    """
    Reconcile the capabilities pygls computed from registered features.

    pygls advertises workspace folders whenever a folder handler is registered;
    the workspace sub-object is only kept when the client negotiated it. Text
    sync options are left as pygls built them (incremental, open/close).
    """
    advertised = advertise(flags)
    capabilities.completion_provider = advertised.completion_provider
    capabilities.diagnostic_provider = advertised.diagnostic_provider
    capabilities.workspace = advertised.workspace
    return capabilities
