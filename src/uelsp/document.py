"""
Open-document text cache.

Each open document is held as a pygls :class:`~pygls.workspace.TextDocument`
built from the full text the client sent.  The server only accepts
whole-document synchronisation, so every change replaces the stored document
instead of patching it.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterator

from pygls.workspace import TextDocument

if TYPE_CHECKING:
    from lsprotocol import types as lsp

# Identifier characters left of the cursor; nothing right of it.
_WORD_START_RE = re.compile(r'[A-Za-z_0-9]*$')
_NO_WORD_END_RE = re.compile(r'^')


class DocumentStore:
    """uri → current :class:`TextDocument`."""

    def __init__(self):
        self._docs: dict[str, TextDocument] = {}

    def open(self, uri: str, text: str) -> TextDocument:
        doc = TextDocument(uri, source=text)
        self._docs[uri] = doc
        return doc

    # Full sync: a change is just a reopen with the new text.
    replace = open

    def close(self, uri: str) -> None:
        self._docs.pop(uri, None)

    def get(self, uri: str) -> TextDocument | None:
        return self._docs.get(uri)

    def __contains__(self, uri: str) -> bool:
        return uri in self._docs

    def __iter__(self) -> Iterator[str]:
        return iter(self._docs)

    def __len__(self) -> int:
        return len(self._docs)


def current_word(doc: TextDocument, position: lsp.Position) -> str:
    """Return the identifier fragment immediately left of *position*."""
    return doc.word_at_position(
        position, re_start_word=_WORD_START_RE, re_end_word=_NO_WORD_END_RE,
    )


def line_before_cursor(doc: TextDocument, position: lsp.Position) -> str:
    """Return the text of *position*'s line up to the cursor."""
    lines = doc.lines
    if position.line >= len(lines):
        return ''
    server_pos = doc.position_codec.position_from_client_units(lines, position)
    return lines[server_pos.line][:server_pos.character]


def completion_context(doc: TextDocument, position: lsp.Position) -> tuple[str, str]:
    """Return ``(prefix, context)`` for a completion at *position*.

    *prefix* is the word being typed; *context* is the line text before it
    (e.g. ``'    AActor::'`` for ``AActor::Get|``).
    """
    prefix = current_word(doc, position)
    before = line_before_cursor(doc, position)
    return prefix, before[:len(before) - len(prefix)]
