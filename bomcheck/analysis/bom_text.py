"""Turn pasted BOM text into structured items.

The LLM path is tried first; when the AI service is not configured or fails,
a keyword analyser produces a best-effort result so imports never dead-end.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any

from openai import AsyncOpenAI

from bomcheck.config import LLMConfig, get_config
from bomcheck.core.llm import create_client, parse_json_response
from bomcheck.exceptions import InputError
from bomcheck.models import BOMAnalysisResult, ExtractedBOMItem

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Vision Systems": ["camera", "lens", "vision", "optical", "image", "sensor", "detector"],
    "Motors & Drives": ["motor", "drive", "actuator", "servo", "stepper", "brushless", "gearbox"],
    "Sensors": ["sensor", "proximity", "limit", "pressure", "temperature", "flow", "level"],
    "Control Systems": ["controller", "board", "plc", "hmi", "touchscreen", "display", "interface"],
    "Mechanical": ["bolt", "screw", "nut", "washer", "bracket", "mount", "housing", "frame"],
    "Electrical": ["wire", "cable", "connector", "switch", "relay", "fuse", "breaker"],
    "Pneumatic": ["valve", "cylinder", "compressor", "air", "pneumatic", "vacuum"],
    "Hydraulic": ["pump", "valve", "cylinder", "hydraulic", "fluid", "pressure"],
    "Tools": ["tool", "drill", "saw", "grinder", "welder", "cutter"],
    "Safety": ["guard", "safety", "emergency", "stop", "light", "alarm"],
}

HEADER_WORDS = ("item", "part", "description", "quantity")

_FIRST_INT = re.compile(r"(\d+)")
_DIGITS = re.compile(r"\d+")
_TRAILING_SEPARATORS = re.compile(r"[-\s]+$")
_SKU_TOKEN = re.compile(r"([A-Z0-9-]{3,})")
_WHITESPACE_RUN = re.compile(r"\s+")


def build_prompt(existing_makes: list[str], existing_categories: list[str]) -> str:
    makes = ", ".join(existing_makes) or "any recognizable brands"
    categories = ", ".join(existing_categories) or (
        "Vision Systems, Motors & Drives, Sensors, Control Systems, Mechanical, "
        "Electrical, Uncategorized"
    )
    return f"""You are a BOM (Bill of Materials) extraction expert. Extract items from the provided text.

INSTRUCTIONS:
1. Extract item names, quantities, and descriptions
2. Look for manufacturer/brand names (makes) - match to existing: {makes}
3. Assign logical categories: {categories}
4. Extract part numbers/SKUs when visible
5. Default unit is "pcs" unless specified
6. Provide a confidence score (0.0 to 1.0) for each item

Return JSON with this exact structure:
{{
  "items": [
    {{
      "name": "Item Name",
      "make": "Brand Name or null",
      "description": "Item description",
      "sku": "Part number or null",
      "quantity": 1,
      "category": "Category Name",
      "unit": "pcs",
      "confidence": 0.9
    }}
  ],
  "suggestedCategories": ["Category"],
  "totalItems": 1,
  "overallConfidence": 0.9
}}"""


class BOMAnalyzer:
    """LLM BOM text analyser with keyword fallback."""

    def __init__(
        self,
        config: LLMConfig | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.config = config or get_config().llm
        self._client = client

    async def analyze(
        self,
        text: str,
        existing_categories: list[str] | None = None,
        existing_makes: list[str] | None = None,
    ) -> BOMAnalysisResult:
        """Extract BOM items from free text.

        Raises:
            InputError: If text is empty
        """
        if not isinstance(text, str) or not text.strip():
            raise InputError("Text content is required")

        categories = existing_categories or []
        makes = existing_makes or []
        start = time.perf_counter()

        try:
            result = await self._analyze_with_ai(text, categories, makes)
        except Exception as e:
            logger.warning(f"AI analysis failed, falling back to keywords: {e}")
            result = analyze_with_keywords(text, makes)

        result.processing_time_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"BOM analysis ({result.method}) extracted {result.total_items} items "
            f"in {result.processing_time_ms}ms"
        )
        return result

    async def _analyze_with_ai(
        self, text: str, categories: list[str], makes: list[str]
    ) -> BOMAnalysisResult:
        if self._client is None:
            self._client = create_client(self.config)

        response = await self._client.chat.completions.create(
            model=self.config.llm_model,
            messages=[
                {"role": "system", "content": build_prompt(makes, categories)},
                {
                    "role": "user",
                    "content": f"{text[: self.config.max_input_chars]}\n\n"
                    "Please provide the analysis in the exact JSON format specified above.",
                },
            ],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            response_format={"type": "json_object"},
        )
        payload = parse_json_response(response.choices[0].message.content)
        return normalize_ai_response(payload)


def normalize_ai_response(payload: dict[str, Any]) -> BOMAnalysisResult:
    """Fill gaps and clamp values in a model's BOM analysis payload."""
    raw_items = payload.get("items")
    if not isinstance(raw_items, list):
        raise ValueError("Invalid response format from AI service")

    items = []
    for index, raw in enumerate(raw_items, start=1):
        raw = raw if isinstance(raw, dict) else {}
        items.append(
            ExtractedBOMItem(
                name=_text(raw.get("name")) or f"Item {index}",
                make=_text(raw.get("make")) or None,
                description=_text(raw.get("description")) or "No description provided",
                sku=_text(raw.get("sku")) or None,
                quantity=_to_int(raw.get("quantity")) or 1,
                category=_text(raw.get("category") or raw.get("suggestedCategory"))
                or UNCATEGORIZED,
                unit=_text(raw.get("unit")) or "pcs",
                confidence=_clamp(raw.get("confidence")),
            )
        )

    suggested = payload.get("suggestedCategories")
    if not isinstance(suggested, list) or not suggested:
        suggested = list(dict.fromkeys(item.category for item in items))

    overall = payload.get("overallConfidence")
    confidence = _clamp(overall) if overall is not None else _mean_confidence(items)

    return BOMAnalysisResult(
        items=items,
        suggested_categories=[str(c) for c in suggested],
        total_items=len(items),
        confidence=confidence,
        method="ai",
    )


def analyze_with_keywords(
    text: str, existing_makes: list[str] | None = None
) -> BOMAnalysisResult:
    """Keyword-based BOM extraction used when the AI service is unavailable."""
    makes = existing_makes or []
    items: list[ExtractedBOMItem] = []

    for line in text.splitlines():
        trimmed = line.strip()
        if not trimmed or any(word in trimmed.lower() for word in HEADER_WORDS):
            continue

        quantity_match = _FIRST_INT.search(trimmed)
        quantity = int(quantity_match.group(1)) if quantity_match else 1

        name = _TRAILING_SEPARATORS.sub("", _DIGITS.sub("", trimmed)).strip()
        name = _WHITESPACE_RUN.sub(" ", name)
        if not name:
            continue

        category, hits = suggest_category(name)
        sku_match = _SKU_TOKEN.search(trimmed)
        items.append(
            ExtractedBOMItem(
                name=name,
                make=match_make(name, makes),
                description=name,
                sku=sku_match.group(1) if sku_match else None,
                quantity=quantity,
                category=category,
                unit="pcs",
                confidence=min(0.95, 0.6 + hits * 0.1) if hits else 0.5,
            )
        )

    return BOMAnalysisResult(
        items=items,
        suggested_categories=list(dict.fromkeys(item.category for item in items)),
        total_items=len(items),
        confidence=_mean_confidence(items),
        method="keywords",
    )


def suggest_category(name: str) -> tuple[str, int]:
    """Category with the most keyword hits in name (first wins on ties)."""
    lowered = name.lower()
    best, best_hits = UNCATEGORIZED, 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        hits = sum(1 for keyword in keywords if keyword in lowered)
        if hits > best_hits:
            best, best_hits = category, hits
    return best, best_hits


def match_make(name: str, existing_makes: list[str]) -> str | None:
    """Known make mentioned in name: whole make first, then any word longer than 3 chars."""
    lowered = name.lower()
    for make in existing_makes:
        if make and make.lower() in lowered:
            return make
    for make in existing_makes:
        if any(len(word) > 3 and word in lowered for word in make.lower().split()):
            return make
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    return "" if text.lower() == "null" else text


def _to_int(value: Any) -> int | None:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _clamp(value: Any, default: float = 0.5) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return min(1.0, max(0.0, number))


def _mean_confidence(items: list[ExtractedBOMItem]) -> float:
    if not items:
        return 0.0
    return sum(item.confidence for item in items) / len(items)
