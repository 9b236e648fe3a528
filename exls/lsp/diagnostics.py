"""
Diagnostics for open documents.

Flags every word written entirely in uppercase ASCII (two letters or more).
``validate`` is a pure function of its arguments; the eager (push) and
on-demand (pull) paths both call it.
"""

from __future__ import annotations

import re

from lsprotocol import types as lsp

from ..config import ExampleSettings
from .documents import LineIndex

SOURCE = "ex"

# ASCII word boundaries: digits and underscores are word characters too
UPPERCASE_PATTERN = re.compile(r"\b[A-Z]{2,}\b", re.ASCII)

RELATED_NOTES = ("Spelling matters", "Particularly for names")


def validate(
    text: str,
    settings: ExampleSettings,
    *,
    uri: str,
    related_information: bool = False,
) -> list[lsp.Diagnostic]:
    """
    Scan `text` for all-uppercase words.

    Args:
        text: Full document text
        settings: Resolved settings; caps the number of findings
        uri: Document URI, used for related-information locations
        related_information: Whether the client renders related information

    Returns:
        At most ``settings.max_number_of_problems`` diagnostics, in text order
    """
    limit = settings.max_number_of_problems
    diagnostics: list[lsp.Diagnostic] = []
    if limit <= 0:
        return diagnostics

    index = LineIndex(text)
    for match in UPPERCASE_PATTERN.finditer(text):
        word_range = index.range_of(match.start(), match.end())
        diagnostic = lsp.Diagnostic(
            range=word_range,
            message=f"{match.group(0)} is all uppercase.",
            severity=lsp.DiagnosticSeverity.Warning,
            source=SOURCE,
        )
        if related_information:
            diagnostic.related_information = [
                lsp.DiagnosticRelatedInformation(
                    location=lsp.Location(uri=uri, range=word_range),
                    message=note,
                )
                for note in RELATED_NOTES
            ]
        diagnostics.append(diagnostic)
        if len(diagnostics) >= limit:
            break

    return diagnostics
