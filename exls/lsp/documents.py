"""
Open document store.

One live ``TextDocument`` buffer per open URI. Incremental edits are spliced
through ``LineIndex``: only ``\\n``, ``\\r\\n`` and ``\\r`` end a line and
characters count in UTF-16 code units, so a sequence of range edits always
produces the same text as the equivalent full replacement.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterable, Iterator

from lsprotocol import types as lsp
from pygls.workspace import TextDocument

logger = logging.getLogger(__name__)


class DocumentNotOpenError(KeyError):
    """A change or close referenced a URI the client never opened."""

    def __init__(self, uri: str):
        super().__init__(uri)
        self.uri = uri

    def __str__(self) -> str:
        return f"Document not open: {self.uri} (client out of sync)"


def _utf16_len(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


class LineIndex:
    """Maps code-point offsets in a text to LSP positions.

    Line breaks are ``\\n``, ``\\r\\n`` and ``\\r``; characters are counted in
    UTF-16 code units.
    """

    def __init__(self, text: str):
        self.text = text
        starts = [0]
        i = 0
        n = len(text)
        while i < n:
            ch = text[i]
            if ch == "\r":
                if i + 1 < n and text[i + 1] == "\n":
                    i += 1
                starts.append(i + 1)
            elif ch == "\n":
                starts.append(i + 1)
            i += 1
        self.line_starts = starts

    def position_at(self, offset: int) -> lsp.Position:
        offset = max(0, min(offset, len(self.text)))
        line = bisect.bisect_right(self.line_starts, offset) - 1
        start = self.line_starts[line]
        return lsp.Position(line=line, character=_utf16_len(self.text[start:offset]))

    def range_of(self, start: int, end: int) -> lsp.Range:
        return lsp.Range(start=self.position_at(start), end=self.position_at(end))

    def offset_at(self, position: lsp.Position) -> int:
        """Inverse of position_at; out-of-range positions clamp to the line or text end."""
        if position.line >= len(self.line_starts):
            return len(self.text)
        offset = self.line_starts[max(position.line, 0)]
        units = 0
        n = len(self.text)
        while offset < n and units < position.character:
            ch = self.text[offset]
            if ch in "\r\n":
                break
            units += 2 if ord(ch) > 0xFFFF else 1
            offset += 1
        return offset


def position_at(text: str, offset: int) -> lsp.Position:
    """Convert a single offset; build a LineIndex when converting many."""
    return LineIndex(text).position_at(offset)


def _apply(text: str, change: lsp.TextDocumentContentChangeEvent) -> str:
    # Ranged edits are spliced here: pygls splits lines with str.splitlines,
    # which also breaks on \x0c, \x85, U+2028 and friends
    if not isinstance(change, lsp.TextDocumentContentChangePartial):
        return change.text
    index = LineIndex(text)
    start = index.offset_at(change.range.start)
    end = max(start, index.offset_at(change.range.end))
    return text[:start] + change.text + text[end:]


class DocumentStore:
    """In-memory table of open documents, keyed by URI."""

    def __init__(self) -> None:
        self._documents: dict[str, TextDocument] = {}

    def __contains__(self, uri: object) -> bool:
        return uri in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[TextDocument]:
        return iter(list(self._documents.values()))

    def open(
        self,
        uri: str,
        text: str,
        version: int | None = None,
        language_id: str | None = None,
    ) -> TextDocument:
        """Create the buffer for `uri`, replacing any existing one."""
        if uri in self._documents:
            logger.warning(f"Document opened twice, replacing buffer: {uri}")
        document = TextDocument(
            uri,
            source=text,
            version=version,
            language_id=language_id,
            sync_kind=lsp.TextDocumentSyncKind.Incremental,
        )
        self._documents[uri] = document
        return document

    def apply_change(
        self,
        uri: str,
        change: lsp.TextDocumentContentChangeEvent,
        version: int | None = None,
    ) -> TextDocument:
        """Apply one full or incremental change."""
        return self.apply_changes(uri, [change], version)

    def apply_changes(
        self,
        uri: str,
        changes: Iterable[lsp.TextDocumentContentChangeEvent],
        version: int | None = None,
    ) -> TextDocument:
        """Apply changes in order, then record the new version."""
        document = self._documents.get(uri)
        if document is None:
            raise DocumentNotOpenError(uri)
        text = document.source
        for change in changes:
            text = _apply(text, change)
        document = TextDocument(
            uri,
            source=text,
            version=document.version if version is None else version,
            language_id=document.language_id,
            sync_kind=lsp.TextDocumentSyncKind.Incremental,
        )
        self._documents[uri] = document
        return document

    def close(self, uri: str) -> None:
        if self._documents.pop(uri, None) is None:
            raise DocumentNotOpenError(uri)

    def get(self, uri: str) -> TextDocument | None:
        return self._documents.get(uri)

    def text(self, uri: str) -> str | None:
        document = self._documents.get(uri)
        return document.source if document is not None else None

    def uris(self) -> list[str]:
        return list(self._documents)
