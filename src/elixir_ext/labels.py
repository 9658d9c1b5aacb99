"""Code labels for completion and symbol entries.

Each recognised item is rendered as a minimal Elixir fragment so the editor's
Elixir grammar can highlight it. ``spans`` index into ``code``; ``filter_range``
indexes into ``filter_text``, the bare item name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from lsprotocol.types import CompletionItem, CompletionItemKind, SymbolKind

_DEFMODULE = "defmodule "
_DEF = "def "
_OPERATOR_PREFIX = "def a "
_OPERATOR_SUFFIX = " b"

_MODULE_COMPLETION_KINDS = frozenset(
    {
        CompletionItemKind.Module,
        CompletionItemKind.Class,
        CompletionItemKind.Interface,
        CompletionItemKind.Struct,
    }
)
_FUNCTION_COMPLETION_KINDS = frozenset(
    {CompletionItemKind.Function, CompletionItemKind.Constant}
)
_MODULE_SYMBOL_KINDS = frozenset(
    {SymbolKind.Module, SymbolKind.Class, SymbolKind.Interface, SymbolKind.Struct}
)
_FUNCTION_SYMBOL_KINDS = frozenset({SymbolKind.Function, SymbolKind.Constant})


@dataclass(frozen=True)
class CodeLabelSpan:
    start: int
    end: int


@dataclass(frozen=True)
class CodeLabel:
    code: str
    spans: tuple[CodeLabelSpan, ...]
    filter_range: tuple[int, int]
    filter_text: str

    def to_utf8(self) -> CodeLabel:
        """The same label with every offset counted in UTF-8 bytes.

        ``spans`` index the encoded ``code`` and ``filter_range`` indexes the
        encoded ``filter_text``.
        """
        start, end = self.filter_range
        return CodeLabel(
            code=self.code,
            spans=tuple(
                CodeLabelSpan(_utf8_offset(self.code, span.start), _utf8_offset(self.code, span.end))
                for span in self.spans
            ),
            filter_range=(
                _utf8_offset(self.filter_text, start),
                _utf8_offset(self.filter_text, end),
            ),
            filter_text=self.filter_text,
        )


def _utf8_offset(text: str, index: int) -> int:
    return len(text[:index].encode("utf-8"))


class SymbolLike(Protocol):
    name: str
    kind: SymbolKind


def _embedded(prefix: str, name: str, suffix: str = "") -> CodeLabel:
    start = len(prefix)
    return CodeLabel(
        code=f"{prefix}{name}{suffix}",
        spans=(CodeLabelSpan(start, start + len(name)),),
        filter_range=(0, len(name)),
        filter_text=name,
    )


class LabelFormatter:
    """Stateless; safe to share between threads."""

    def label_for_completion(self, completion: CompletionItem) -> CodeLabel | None:
        kind = completion.kind
        if kind is None:
            return None
        name = completion.label
        if kind in _MODULE_COMPLETION_KINDS:
            return _embedded(_DEFMODULE, name)
        if kind in _FUNCTION_COMPLETION_KINDS:
            return _embedded(_DEF, name)
        if kind == CompletionItemKind.Operator:
            return _embedded(_OPERATOR_PREFIX, name, _OPERATOR_SUFFIX)
        return None

    def label_for_symbol(self, symbol: SymbolLike) -> CodeLabel | None:
        kind = symbol.kind
        name = symbol.name
        if kind in _MODULE_SYMBOL_KINDS:
            return _embedded(_DEFMODULE, name)
        if kind in _FUNCTION_SYMBOL_KINDS:
            return _embedded(_DEF, name)
        return None
