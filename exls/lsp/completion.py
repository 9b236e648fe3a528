"""Completion: a fixed proposal list, resolved lazily by data tag."""

from __future__ import annotations

import copy
from typing import Any

from lsprotocol import types as lsp

# data tag -> (detail, documentation)
_RESOLVED: dict[int, tuple[str, str]] = {
    1: ("TypeScript details", "TypeScript documentation"),
    2: ("JavaScript details", "JavaScript documentation"),
}


def propose(params: Any = None) -> list[lsp.CompletionItem]:
    """Return the proposal list; the requested position is not used."""
    return [
        lsp.CompletionItem(label="TypeScript", kind=lsp.CompletionItemKind.Text, data=1),
        lsp.CompletionItem(label="JavaScript", kind=lsp.CompletionItemKind.Text, data=2),
    ]


def resolve(item: lsp.CompletionItem) -> lsp.CompletionItem:
    """Fill in detail and documentation for a proposed item."""
    tag = item.data
    if not isinstance(tag, int) or isinstance(tag, bool) or tag not in _RESOLVED:
        return item

    detail, documentation = _RESOLVED[tag]
    resolved = copy.copy(item)
    resolved.detail = detail
    resolved.documentation = documentation
    return resolved
