"""Deterministic quote reconciliation using RapidFuzz.

Offline alternative to the LLM reconciler: produces the same
ReconciliationResult contract from string similarity alone.

Matching logic per quote line:
1. Exact part number / SKU match against a BOM item -> score 100
2. Otherwise RapidFuzz token_set_ratio over make + name + description
3. Keep the best unclaimed BOM item if its score >= min_score

Suggested makes are snapped to the project's existing makes when one is close.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

from rapidfuzz import fuzz, process, utils

from bomcheck.config import get_config
from bomcheck.models import (
    ComplianceSettings,
    LineMatch,
    QuoteAnalysis,
    QuoteLineItem,
    ReconciliationResult,
    SuggestedCorrection,
)

logger = logging.getLogger(__name__)

PRICE_TOLERANCE = 0.05  # Relative difference tolerated before flagging a price
MAKE_SIMILARITY = 80

_CODE_NOISE = re.compile(r"[\s\-_./]")


class FuzzyReconciler:
    """RapidFuzz string similarity reconciler."""

    def __init__(self, min_score: int | None = None):
        self.min_score = (
            min_score if min_score is not None else get_config().compliance.fuzzy_min_score
        )

    async def match(
        self,
        bom_items: list[dict[str, Any]],
        quotes: list[dict[str, Any]],
        settings: ComplianceSettings | None = None,
    ) -> ReconciliationResult:
        result = ReconciliationResult()
        makes = settings.existing_makes if settings else []
        fixes: dict[tuple[str, str], SuggestedCorrection] = {}

        for quote in quotes:
            if quote.get("lineItems"):
                analysis = self._match_lines(quote, bom_items, fixes, makes)
            else:
                analysis = self._match_text(quote, bom_items)
            result.quote_analysis.append(analysis)

        result.suggested_fixes = list(fixes.values())
        logger.debug(
            f"Fuzzy reconciliation: {len(quotes)} quotes, "
            f"{sum(len(a.line_matches) for a in result.quote_analysis)} line matches"
        )
        return result

    def _match_lines(
        self,
        quote: dict[str, Any],
        bom_items: list[dict[str, Any]],
        fixes: dict[tuple[str, str], SuggestedCorrection],
        makes: Sequence[str] = (),
    ) -> QuoteAnalysis:
        lines = [QuoteLineItem.model_validate(line) for line in quote["lineItems"]]
        claimed: set[str] = set()
        matches: list[LineMatch] = []
        unmatched_lines = 0

        for line in lines:
            item, score, reasons = self._best_item(line, bom_items, claimed)
            if item is None:
                unmatched_lines += 1
                matches.append(LineMatch(quote_line_item=line, match_score=score))
                continue

            claimed.add(item["id"])
            matches.append(
                LineMatch(
                    quote_line_item=line,
                    bom_item_id=item["id"],
                    bom_item_name=item.get("name"),
                    match_score=score,
                    match_reasons=reasons,
                    mismatches=line_mismatches(line, item),
                )
            )
            for correction in _corrections(line, item, makes):
                fixes.setdefault((correction.bom_item_id, correction.field), correction)

        return QuoteAnalysis(
            document_id=quote.get("documentId", ""),
            document_name=quote.get("documentName", ""),
            vendor_name=_vendor_name(quote),
            total_line_items=len(lines),
            line_matches=matches,
            unmatched_quote_lines=unmatched_lines,
            unmatched_bom_items=[
                item_id for item_id in quote.get("linkedBOMItems", []) if item_id not in claimed
            ],
        )

    def _match_text(
        self, quote: dict[str, Any], bom_items: list[dict[str, Any]]
    ) -> QuoteAnalysis:
        """Quotes without structured lines: look for each item's SKU in the raw text."""
        text = _normalize_code(quote.get("rawText") or "")
        matches: list[LineMatch] = []
        found: set[str] = set()

        for item in bom_items:
            sku = _normalize_code(item.get("sku"))
            if len(sku) < 3 or sku not in text:
                continue
            found.add(item["id"])
            matches.append(
                LineMatch(
                    quote_line_item=QuoteLineItem(
                        part_name=item.get("name") or "", part_number=item.get("sku")
                    ),
                    bom_item_id=item["id"],
                    bom_item_name=item.get("name"),
                    match_score=100,
                    match_reasons=["Part number found in quote text"],
                )
            )

        return QuoteAnalysis(
            document_id=quote.get("documentId", ""),
            document_name=quote.get("documentName", ""),
            vendor_name=_vendor_name(quote),
            line_matches=matches,
            unmatched_bom_items=[
                item_id for item_id in quote.get("linkedBOMItems", []) if item_id not in found
            ],
        )

    def _best_item(
        self,
        line: QuoteLineItem,
        bom_items: list[dict[str, Any]],
        claimed: set[str],
    ) -> tuple[dict[str, Any] | None, float, list[str]]:
        candidates = [item for item in bom_items if item.get("id") not in claimed]

        code = _normalize_code(line.code)
        if code:
            for item in candidates:
                if _normalize_code(item.get("sku")) == code:
                    return item, 100.0, ["Exact part number match"]

        line_text = _join(line.make, line.part_name, line.description)
        if not line_text:
            return None, 0.0, []

        best: dict[str, Any] | None = None
        best_score = 0.0
        for item in candidates:
            item_text = _join(item.get("make"), item.get("name"), item.get("description"))
            if not item_text:
                continue
            score = fuzz.token_set_ratio(
                line_text, item_text, processor=utils.default_process
            )
            if score > best_score:
                best, best_score = item, score

        best_score = round(best_score, 1)
        if best is None or best_score < self.min_score:
            return None, best_score, []
        return best, best_score, [f"Name similarity {best_score:g}%"]


def line_mismatches(line: QuoteLineItem, item: dict[str, Any]) -> list[str]:
    """Describe price / quantity / make disagreements between a quote line and a BOM item."""
    mismatches = []

    bom_price = item.get("price")
    if line.unit_price and bom_price and bom_price > 0:
        if abs(line.unit_price - bom_price) / bom_price > PRICE_TOLERANCE:
            mismatches.append(
                f"Price differs: quote {line.unit_price:g} vs BOM {bom_price:g}"
            )

    bom_quantity = item.get("quantity")
    if line.quantity and bom_quantity and line.quantity != bom_quantity:
        mismatches.append(
            f"Quantity differs: quote {line.quantity:g} vs BOM {bom_quantity:g}"
        )

    bom_make = (item.get("make") or "").strip()
    quote_make = (line.make or "").strip()
    if bom_make and quote_make:
        if fuzz.ratio(bom_make.lower(), quote_make.lower()) < MAKE_SIMILARITY:
            mismatches.append(f"Make differs: quote {quote_make} vs BOM {bom_make}")

    return mismatches


def _corrections(
    line: QuoteLineItem, item: dict[str, Any], makes: Sequence[str] = ()
) -> list[SuggestedCorrection]:
    corrections = []
    if not (item.get("sku") or "").strip() and line.code:
        corrections.append(
            SuggestedCorrection(
                bom_item_id=item["id"],
                field="sku",
                current_value=item.get("sku"),
                suggested_value=line.code,
                reason="Part number taken from the matched quote line",
            )
        )
    if not (item.get("make") or "").strip() and line.make:
        corrections.append(
            SuggestedCorrection(
                bom_item_id=item["id"],
                field="make",
                current_value=item.get("make"),
                suggested_value=canonical_make(line.make, makes),
                reason="Make taken from the matched quote line",
            )
        )
    return corrections


def canonical_make(make: str, makes: Sequence[str]) -> str:
    """The closest existing project make, or ``make`` itself if none is close."""
    best = process.extractOne(
        make,
        makes,
        scorer=fuzz.ratio,
        processor=utils.default_process,
        score_cutoff=MAKE_SIMILARITY,
    )
    return best[0] if best else make


def _vendor_name(quote: dict[str, Any]) -> str | None:
    return quote.get("vendorName") or None


def _normalize_code(value: str | None) -> str:
    return _CODE_NOISE.sub("", value or "").lower()


def _join(*parts: str | None) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())
