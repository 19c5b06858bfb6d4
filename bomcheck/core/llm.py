"""Shared OpenAI client helpers."""

from __future__ import annotations

import json
import re
from typing import Any

from openai import AsyncOpenAI

from bomcheck.config import LLMConfig
from bomcheck.exceptions import ConfigurationError

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def create_client(llm: LLMConfig) -> AsyncOpenAI:
    """Build an AsyncOpenAI client, failing fast when no key is configured."""
    if not llm.api_key:
        raise ConfigurationError(
            "AI service not configured - missing OPENAI_API_KEY"
        )
    return AsyncOpenAI(api_key=llm.api_key)


def parse_json_response(content: str | None) -> dict[str, Any]:
    """Parse a model response as a JSON object.

    Tolerates markdown code fences around the payload.

    Raises:
        ValueError: If the content is empty or not a JSON object
    """
    if not content or not content.strip():
        raise ValueError("Empty response from AI service")
    text = _CODE_FENCE.sub("", content.strip())
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("AI response is not a JSON object")
    return data
