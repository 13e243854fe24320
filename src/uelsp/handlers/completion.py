"""
Completion handler.

Provides two kinds of completion items:

1. **Reflection macros** (``UCLASS``, ``USTRUCT``, ...): always offered when
   their name starts with the typed prefix.  The inserted text is the macro
   template of the resolved engine version, so a 4.27 project gets
   ``GENERATED_UCLASS_BODY()`` and a 5.x project gets ``GENERATED_BODY()``.
2. **Class members**: offered after ``ClassName::``.  Methods come from the
   static capability model and from whatever the background header scan has
   found so far; both sources are merged without duplicates.

Macros always sort ahead of members.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING

from lsprotocol import types as lsp

if TYPE_CHECKING:
    from uelsp.capabilities import VersionedCapabilityModel
    from uelsp.scanner import HeaderIntrospectionScanner
    from uelsp.version import EngineVersion

SCOPE_MARKER = '::'

MACRO_SORT_PREFIX = '0_'
MEMBER_SORT_PREFIX = '1_'

# Identifier (plus trailing whitespace) at the end of the text before '::'.
_TRAILING_IDENT_RE = re.compile(r'([A-Za-z_]\w*)\s*$')


def scope_class(context: str) -> str | None:
    """Return the class name before the last ``::`` in *context*, or None."""
    pos = context.rfind(SCOPE_MARKER)
    if pos < 0:
        return None
    m = _TRAILING_IDENT_RE.search(context[:pos])
    return m.group(1) if m else None


class CompletionSynthesizer:
    """Merges the capability model and the header scan into completion items."""

    def __init__(
        self,
        model: VersionedCapabilityModel,
        scanner: HeaderIntrospectionScanner | None,
        version: EngineVersion,
    ):
        self._model = model
        self._scanner = scanner
        self._version = version

    @property
    def version(self) -> EngineVersion:
        return self._version

    @property
    def is_incomplete(self) -> bool:
        """True while the header scan may still add members."""
        return self._scanner is not None and not self._scanner.is_ready

    def _macro_items(self, prefix: str) -> list[lsp.CompletionItem]:
        return [
            lsp.CompletionItem(
                label=name,
                kind=lsp.CompletionItemKind.Snippet,
                detail=f'Unreal Engine {self._version} Macro',
                insert_text=self._model.macro_template(name, self._version),
                sort_text=f'{MACRO_SORT_PREFIX}{name}',
            )
            for name in self._model.macro_names(self._version)
            if name.startswith(prefix)
        ]

    def class_members(self, class_name: str) -> set[str]:
        """Union of the static and scanned methods of *class_name*."""
        methods = set(self._model.class_methods(class_name, self._version))
        if self._scanner is not None:
            methods |= self._scanner.class_methods(class_name)
        return methods

    def _member_items(self, class_name: str, prefix: str) -> list[lsp.CompletionItem]:
        return [
            lsp.CompletionItem(
                label=method,
                kind=lsp.CompletionItemKind.Method,
                detail=f'{class_name}::{method} (UE {self._version})',
                insert_text=method,
                sort_text=f'{MEMBER_SORT_PREFIX}{method}',
            )
            for method in self.class_members(class_name)
            if method.startswith(prefix)
        ]

    def synthesize(self, prefix: str, context: str) -> list[lsp.CompletionItem]:
        """Return the ranked completion items for *prefix* typed after *context*."""
        items = self._macro_items(prefix)
        class_name = scope_class(context)
        if class_name is not None:
            items.extend(self._member_items(class_name, prefix))
        items.sort(key=lambda item: item.sort_text)
        return items
