"""LLM-backed reconciliation of vendor quotes against the BOM."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from openai import AsyncOpenAI

from bomcheck.config import LLMConfig, get_config
from bomcheck.core.llm import create_client, parse_json_response
from bomcheck.exceptions import ReconciliationError
from bomcheck.models import ComplianceSettings, ReconciliationResult

logger = logging.getLogger(__name__)

RECONCILIATION_PROMPT = """You are a procurement compliance auditor. Match each vendor quote's line items to the project's BOM items and report discrepancies.

For every quote:
- Match each quote line to at most one BOM item. Prefer exact part number / SKU matches, then make + name + description similarity.
- matchScore is 0-100. Use null bomItemId when nothing matches.
- List concrete mismatches as short sentences, e.g. "Price differs: quote 1200 vs BOM 1000", "Quantity differs: quote 2 vs BOM 4", "Make differs: quote ABB vs BOM Siemens".
- A quote may carry rawText instead of lineItems; read the line items from the text yourself.
- unmatchedBOMItems lists ids from the quote's linkedBOMItems that no line matched.
- projectSettings, when present, lists the makes and categories already used in this project. Suggest make or category values with exactly those spellings when one fits.

Suggest field corrections only when a quote clearly shows the correct SKU, make, name or description for a BOM item.

Return ONLY a JSON object:
{
  "quoteAnalysis": [
    {
      "documentId": "...",
      "documentName": "...",
      "vendorName": "...",
      "totalLineItems": 0,
      "lineMatches": [
        {
          "quoteLineItem": {"partName": "...", "partNumber": "...", "quantity": 0, "unitPrice": 0},
          "bomItemId": "... or null",
          "bomItemName": "...",
          "matchScore": 0,
          "matchReasons": ["..."],
          "mismatches": ["..."]
        }
      ],
      "unmatchedQuoteLines": 0,
      "unmatchedBOMItems": ["..."]
    }
  ],
  "suggestedFixes": [
    {"bomItemId": "...", "field": "sku", "currentValue": "...", "suggestedValue": "...", "reason": "..."}
  ]
}
"""


class LLMReconciler:
    """Single-call reconciliation using OpenAI chat completions (JSON mode)."""

    def __init__(
        self,
        config: LLMConfig | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.config = config or get_config().llm
        self.client = client or create_client(self.config)

    async def match(
        self,
        bom_items: list[dict[str, Any]],
        quotes: list[dict[str, Any]],
        settings: ComplianceSettings | None = None,
    ) -> ReconciliationResult:
        """Reconcile all quotes against the BOM in one model call.

        The project's existing makes and categories, when set, go along as
        projectSettings so suggestions reuse the project's vocabulary.

        Raises:
            ReconciliationError: If the call fails or returns an unusable payload
        """
        body: dict[str, Any] = {"bomItems": bom_items, "quotes": quotes}
        project_settings = _project_settings(settings)
        if project_settings:
            body["projectSettings"] = project_settings
        payload = json.dumps(body, ensure_ascii=False, default=str)
        start = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.config.llm_model,
                messages=[
                    {"role": "system", "content": RECONCILIATION_PROMPT},
                    {"role": "user", "content": payload},
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_format={"type": "json_object"},
            )
            data = parse_json_response(response.choices[0].message.content)
            result = ReconciliationResult.model_validate(data)
        except Exception as e:
            raise ReconciliationError(f"Quote reconciliation failed: {e}") from e

        logger.info(
            f"Reconciled {len(quotes)} quotes against {len(bom_items)} BOM items "
            f"in {int((time.perf_counter() - start) * 1000)}ms"
        )
        return result


def _project_settings(settings: ComplianceSettings | None) -> dict[str, list[str]]:
    if settings is None:
        return {}
    context = {}
    if settings.existing_makes:
        context["existingMakes"] = settings.existing_makes
    if settings.existing_categories:
        context["existingCategories"] = settings.existing_categories
    return context
