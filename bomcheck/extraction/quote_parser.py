"""LLM-backed vendor quote line-item extraction.

Two modes:
- text: the PDF's text layer is sent to the model
- vision: the raw document (scanned PDF or image) is sent as a file/image part
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any

from openai import AsyncOpenAI

from bomcheck.config import LLMConfig, get_config
from bomcheck.core.llm import create_client, parse_json_response
from bomcheck.exceptions import ExtractionError
from bomcheck.extraction.pdf_text import is_pdf
from bomcheck.models import ParsedQuoteData

logger = logging.getLogger(__name__)

QUOTE_EXTRACTION_PROMPT = """You are a procurement expert extracting structured data from vendor quotations for industrial automation projects (India).

Return ONLY a JSON object with this exact structure:
{
  "documentInfo": {
    "vendorName": "Vendor / supplier name",
    "quoteNumber": "Quotation reference number",
    "quoteDate": "YYYY-MM-DD",
    "currency": "INR",
    "gstin": "Vendor GSTIN or null",
    "validity": "Quote validity or null"
  },
  "lineItems": [
    {
      "partName": "Item name as written on the quote",
      "partNumber": "Manufacturer part number / SKU or null",
      "make": "Manufacturer / brand or null",
      "description": "Full description or null",
      "quantity": 1,
      "unit": "pcs",
      "unitPrice": 0.0,
      "totalPrice": 0.0,
      "hsnCode": "HSN/SAC code or null"
    }
  ]
}

Rules:
- Extract EVERY priced line item; ignore subtotal, tax, freight and total rows.
- Prices are numbers without currency symbols or thousands separators.
- If unitPrice is missing but totalPrice and quantity are present, compute it.
- Use null for anything that is not on the document.
"""


class QuoteLineItemExtractor:
    """Extracts quote line items with OpenAI chat completions (JSON mode)."""

    def __init__(
        self,
        config: LLMConfig | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.config = config or get_config().llm
        self.client = client or create_client(self.config)

    async def extract_from_text(self, text: str) -> ParsedQuoteData:
        """Extract line items from a quote's text layer."""
        context = text[: self.config.max_input_chars]
        messages = [
            {"role": "system", "content": QUOTE_EXTRACTION_PROMPT},
            {
                "role": "user",
                "content": f"Extract the line items from this vendor quote:\n\n{context}",
            },
        ]
        return await self._complete(messages, self.config.llm_model, "text")

    async def extract_from_document(
        self, data: bytes, filename: str = "quote.pdf"
    ) -> ParsedQuoteData:
        """Extract line items from a scanned PDF or image using a vision model."""
        encoded = base64.b64encode(data).decode("ascii")
        if is_pdf(data):
            document_part: dict[str, Any] = {
                "type": "file",
                "file": {
                    "filename": filename,
                    "file_data": f"data:application/pdf;base64,{encoded}",
                },
            }
        else:
            document_part = {
                "type": "image_url",
                "image_url": {"url": f"data:{_image_mime(data)};base64,{encoded}"},
            }

        messages = [
            {"role": "system", "content": QUOTE_EXTRACTION_PROMPT},
            {
                "role": "user",
                "content": [
                    {
                        "type": "text",
                        "text": "This quote is a scanned document. Extract the line items.",
                    },
                    document_part,
                ],
            },
        ]
        return await self._complete(messages, self.config.vision_model, "vision")

    async def _complete(
        self, messages: list[dict[str, Any]], model: str, mode: str
    ) -> ParsedQuoteData:
        start = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_format={"type": "json_object"},
            )
            payload = parse_json_response(response.choices[0].message.content)
            parsed = ParsedQuoteData.model_validate(payload)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Quote extraction ({mode}) failed: {e}") from e

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"Quote extraction ({mode}) returned {len(parsed.line_items)} line items "
            f"in {elapsed_ms}ms"
        )
        return parsed


def _image_mime(data: bytes) -> str:
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
