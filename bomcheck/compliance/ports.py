"""Interfaces the compliance engine depends on.

Each external collaborator (document download, PDF text extraction, LLM
line-item extraction, reconciliation, parsed-quote cache) sits behind a small
Protocol so the engine can be driven by real services or by test doubles.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from bomcheck.models import ComplianceSettings, ParsedQuoteData, ReconciliationResult


@dataclass
class ExtractedText:
    """Machine-readable text pulled from a document."""

    text: str
    num_pages: int

    @property
    def word_count(self) -> int:
        return len(self.text.split())


class DocumentFetcher(Protocol):
    async def fetch(self, url: str) -> bytes: ...


class TextExtractor(Protocol):
    def extract(self, data: bytes) -> ExtractedText: ...


class LineItemExtractor(Protocol):
    async def extract_from_text(self, text: str) -> ParsedQuoteData: ...

    async def extract_from_document(
        self, data: bytes, filename: str = "quote.pdf"
    ) -> ParsedQuoteData: ...


class Reconciler(Protocol):
    async def match(
        self,
        bom_items: list[dict[str, Any]],
        quotes: list[dict[str, Any]],
        settings: ComplianceSettings | None = None,
    ) -> ReconciliationResult: ...


class QuoteCache(Protocol):
    async def get(self, document_id: str) -> ParsedQuoteData | None: ...

    async def put(self, document_id: str, data: ParsedQuoteData) -> None: ...


class InMemoryQuoteCache:
    """Process-local parsed-quote cache."""

    def __init__(self, initial: dict[str, ParsedQuoteData] | None = None):
        self._data: dict[str, ParsedQuoteData] = dict(initial or {})

    async def get(self, document_id: str) -> ParsedQuoteData | None:
        return self._data.get(document_id)

    async def put(self, document_id: str, data: ParsedQuoteData) -> None:
        self._data[document_id] = data

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._data

    def __len__(self) -> int:
        return len(self._data)
