"""Compliance check orchestration.

One run = validation pass (always) + quote matching pass (best-effort) +
report assembly. The engine never writes storage directly: newly parsed quote
data is returned as cache-write intents and pushed through the cache port.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from bomcheck.compliance.linking import linked_items_by_quote
from bomcheck.compliance.ports import (
    DocumentFetcher,
    ExtractedText,
    InMemoryQuoteCache,
    LineItemExtractor,
    QuoteCache,
    Reconciler,
    TextExtractor,
)
from bomcheck.compliance.reconciliation import (
    MatchingOutcome,
    issues_from_reconciliation,
)
from bomcheck.compliance.report import assemble_report
from bomcheck.compliance.validation import run_validation
from bomcheck.config import AppConfig, get_config
from bomcheck.exceptions import ConfigurationError, InputError
from bomcheck.models import (
    ComplianceCheckRequest,
    ComplianceCheckResult,
    ParsedQuoteData,
    QuoteAnalysis,
    VendorQuote,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolvedQuote:
    """A vendor quote with whatever content could be obtained for it."""

    quote: VendorQuote
    parsed: ParsedQuoteData | None = None
    raw_text: str | None = None
    newly_parsed: bool = False
    linked_items: list[str] | None = None

    @property
    def has_content(self) -> bool:
        return bool(self.parsed and self.parsed.line_items) or bool(
            self.raw_text and self.raw_text.strip()
        )

    def summary(self) -> dict[str, Any]:
        """Quote payload sent to the reconciliation step."""
        data: dict[str, Any] = {
            "documentId": self.quote.document_id,
            "documentName": self.quote.display_name,
            "linkedBOMItems": list(
                self.quote.linked_bom_items
                if self.linked_items is None
                else self.linked_items
            ),
        }
        if self.parsed and self.parsed.line_items:
            vendor = self.parsed.document_info.get("vendorName")
            if vendor:
                data["vendorName"] = vendor
            data["lineItems"] = [line.to_wire() for line in self.parsed.line_items]
        else:
            data["rawText"] = self.raw_text
        return data


class ComplianceEngine:
    """Runs BOM compliance checks against vendor quotes.

    Collaborators are injected so the engine can run against real services
    (see ``from_config``) or test doubles.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        fetcher: DocumentFetcher | None = None,
        text_extractor: TextExtractor | None = None,
        line_item_extractor: LineItemExtractor | None = None,
        reconciler: Reconciler | None = None,
        cache: QuoteCache | None = None,
    ):
        self.config = config or get_config()
        self.fetcher = fetcher
        self.text_extractor = text_extractor
        self.line_item_extractor = line_item_extractor
        self.reconciler = reconciler
        self.cache = cache if cache is not None else InMemoryQuoteCache()

    @classmethod
    def from_config(
        cls,
        config: AppConfig | None = None,
        cache: QuoteCache | None = None,
    ) -> ComplianceEngine:
        """Wire the engine to the production collaborators.

        AI-backed collaborators are left unset when OPENAI_API_KEY is missing;
        ``run`` raises ConfigurationError only if a request actually needs them.
        """
        from bomcheck.extraction.fetch import HttpDocumentFetcher
        from bomcheck.extraction.pdf_text import PdfTextExtractor
        from bomcheck.extraction.quote_parser import QuoteLineItemExtractor
        from bomcheck.matching.fuzzy_reconciler import FuzzyReconciler
        from bomcheck.matching.llm_reconciler import LLMReconciler

        cfg = config or get_config()

        line_item_extractor = None
        if cfg.llm.configured:
            line_item_extractor = QuoteLineItemExtractor(cfg.llm)

        if cfg.compliance.reconciler == "fuzzy":
            reconciler: Reconciler | None = FuzzyReconciler(cfg.compliance.fuzzy_min_score)
        elif cfg.llm.configured:
            reconciler = LLMReconciler(cfg.llm)
        else:
            reconciler = None

        return cls(
            cfg,
            fetcher=HttpDocumentFetcher(cfg.http),
            text_extractor=PdfTextExtractor(),
            line_item_extractor=line_item_extractor,
            reconciler=reconciler,
            cache=cache,
        )

    async def run(self, request: ComplianceCheckRequest) -> ComplianceCheckResult:
        """Run a full compliance check.

        Args:
            request: Validated check request

        Returns:
            ComplianceCheckResult with the report, per-quote analysis and the
            quote data parsed during this run (keyed by document id)

        Raises:
            ConfigurationError: If quotes must be matched or parsed but the
                required AI service is not configured
        """
        start = time.perf_counter()
        cfg = self.config.compliance
        items = request.bom_items
        quotes = request.vendor_quotes

        self._check_configuration(request)

        logger.info(
            f"Compliance check for project {request.project_id}: "
            f"{len(items)} items, {len(quotes)} quotes"
        )

        issues = run_validation(items, quotes, cfg, request.settings)

        matching = MatchingOutcome()
        quote_analysis: list[QuoteAnalysis] = []
        parsed_quote_data: dict[str, ParsedQuoteData] = {}
        quotes_analyzed = 0

        if quotes:
            resolved = await self._resolve_all(quotes, request.parse_documents)
            parsed_quote_data = {
                r.quote.document_id: r.parsed
                for r in resolved
                if r.newly_parsed and r.parsed is not None
            }
            await self._write_back(parsed_quote_data)

            links = linked_items_by_quote(quotes, items)
            for r in resolved:
                r.linked_items = links.get(r.quote.document_id)

            summaries = [r.summary() for r in resolved if r.has_content]
            quotes_analyzed = len(summaries)
            if summaries:
                try:
                    result = await self.reconciler.match(
                        [item.summary() for item in items],
                        summaries,
                        request.settings,
                    )
                    matching = issues_from_reconciliation(
                        result,
                        {item.id: item for item in items},
                        threshold=cfg.match_score_threshold,
                        fix_confidence=cfg.suggested_fix_confidence,
                    )
                    quote_analysis = result.quote_analysis
                except Exception as e:
                    logger.warning(
                        f"Quote reconciliation failed, returning validation-only results: {e}"
                    )

        issues.extend(matching.issues)
        report = assemble_report(
            request.project_id,
            len(items),
            issues,
            quotes_analyzed=quotes_analyzed,
            documents_parsed=len(parsed_quote_data),
            quotes_matched=matching.quotes_matched,
            processing_time_ms=int((time.perf_counter() - start) * 1000),
        )

        logger.info(
            f"Compliance check complete for {request.project_id}: "
            f"{report.total_issues} issues, score {report.compliance_score}, "
            f"{report.processing_time_ms}ms"
        )
        return ComplianceCheckResult(
            report=report,
            quote_analysis=quote_analysis,
            parsed_quote_data=parsed_quote_data,
        )

    def _check_configuration(self, request: ComplianceCheckRequest) -> None:
        if not request.vendor_quotes:
            return
        if self.reconciler is None:
            raise ConfigurationError(
                "AI service not configured - missing OPENAI_API_KEY"
            )
        if request.parse_documents and self.line_item_extractor is None:
            needs_parsing = any(
                quote.file_url
                and not (quote.parsed_quote_data and quote.parsed_quote_data.line_items)
                for quote in request.vendor_quotes
            )
            if needs_parsing:
                raise ConfigurationError(
                    "AI service not configured - missing OPENAI_API_KEY"
                )

    async def _resolve_all(
        self, quotes: list[VendorQuote], parse_documents: bool
    ) -> list[ResolvedQuote]:
        concurrency = self.config.compliance.quote_concurrency
        if concurrency <= 1:
            return [await self.resolve_quote(q, parse_documents) for q in quotes]

        semaphore = asyncio.Semaphore(concurrency)

        async def bounded(quote: VendorQuote) -> ResolvedQuote:
            async with semaphore:
                return await self.resolve_quote(quote, parse_documents)

        return list(await asyncio.gather(*(bounded(q) for q in quotes)))

    async def resolve_quote(
        self, quote: VendorQuote, parse_documents: bool = True
    ) -> ResolvedQuote:
        """Obtain line items for one quote: inline data, cache, then extraction.

        Text the caller already extracted (extractedText) stands in for the
        document when it cannot be parsed here. Any extraction failure leaves
        the quote without line items; it is skipped for matching unless such
        text exists, and never fails the run.
        """
        if quote.parsed_quote_data and quote.parsed_quote_data.line_items:
            return ResolvedQuote(quote, parsed=quote.parsed_quote_data)

        cached = await self._cache_get(quote.document_id)
        if cached is not None and cached.line_items:
            logger.debug(f"Cache hit for quote {quote.document_id}")
            return ResolvedQuote(quote, parsed=cached)

        if not parse_documents or not quote.file_url:
            return ResolvedQuote(quote, raw_text=quote.extracted_text)

        try:
            data = await self.fetcher.fetch(quote.file_url)
        except Exception as e:
            logger.warning(f"Skipping quote {quote.display_name}: download failed: {e}")
            return ResolvedQuote(quote, raw_text=quote.extracted_text)

        return await self._extract(quote, data)

    async def _extract(self, quote: VendorQuote, data: bytes) -> ResolvedQuote:
        cfg = self.config.compliance
        filename = quote.document_name or f"{quote.document_id}.pdf"

        try:
            extracted = self.text_extractor.extract(data)
        except Exception as e:
            logger.info(f"No text layer for {quote.display_name} ({e}); using vision")
            extracted = None

        scanned = extracted is None or extracted.word_count < (
            cfg.scanned_words_per_page * max(extracted.num_pages, 1)
        )

        try:
            if scanned:
                parsed = await self.line_item_extractor.extract_from_document(
                    data, filename
                )
            else:
                parsed = await self.line_item_extractor.extract_from_text(extracted.text)
        except Exception as e:
            logger.warning(f"Line-item extraction failed for {quote.display_name}: {e}")
            return ResolvedQuote(quote, raw_text=_fallback_text(quote, extracted))

        if not parsed.line_items:
            logger.info(f"No line items found in {quote.display_name}")
            return ResolvedQuote(
                quote, parsed=parsed, raw_text=_fallback_text(quote, extracted)
            )

        logger.info(
            f"Parsed {len(parsed.line_items)} line items from {quote.display_name} "
            f"({'vision' if scanned else 'text'})"
        )
        return ResolvedQuote(quote, parsed=parsed, newly_parsed=True)

    async def _cache_get(self, document_id: str) -> ParsedQuoteData | None:
        try:
            return await self.cache.get(document_id)
        except Exception as e:
            logger.warning(f"Quote cache lookup failed for {document_id}: {e}")
            return None

    async def _write_back(self, parsed: dict[str, ParsedQuoteData]) -> None:
        for document_id, data in parsed.items():
            try:
                await self.cache.put(document_id, data)
            except Exception as e:
                logger.warning(f"Failed to cache parsed quote {document_id}: {e}")


def _fallback_text(quote: VendorQuote, extracted: ExtractedText | None) -> str | None:
    if extracted is not None and extracted.text.strip():
        return extracted.text
    return quote.extracted_text


def parse_check_request(payload: Any) -> ComplianceCheckRequest:
    """Validate a raw JSON payload into a ComplianceCheckRequest.

    Raises:
        InputError: If projectId or bomItems is missing or malformed
    """
    if not isinstance(payload, dict):
        raise InputError("Request body must be a JSON object")

    project_id = payload.get("projectId", payload.get("project_id"))
    if not isinstance(project_id, str) or not project_id.strip():
        raise InputError("Project ID and BOM items are required", "projectId is missing")

    bom_items = payload.get("bomItems", payload.get("bom_items"))
    if not isinstance(bom_items, list):
        raise InputError("Project ID and BOM items are required", "bomItems must be an array")

    try:
        return ComplianceCheckRequest.model_validate(payload)
    except ValidationError as e:
        raise InputError("Invalid compliance check request", str(e)) from e
