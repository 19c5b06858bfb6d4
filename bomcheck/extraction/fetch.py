"""Download stored quote documents over HTTP."""

from __future__ import annotations

import logging

import httpx

from bomcheck.config import HTTPConfig, get_config

logger = logging.getLogger(__name__)


class HttpDocumentFetcher:
    """Fetches a document's bytes from its storage URL.

    A single attempt is made; the engine skips the quote on failure.
    """

    def __init__(self, config: HTTPConfig | None = None):
        self.config = config or get_config().http

    async def fetch(self, url: str) -> bytes:
        """Download a document.

        Raises:
            httpx.HTTPError: On network failure or non-2xx status
        """
        async with httpx.AsyncClient(
            timeout=self.config.download_timeout_seconds,
            headers={"User-Agent": self.config.user_agent},
        ) as client:
            response = await client.get(url, follow_redirects=True)
            response.raise_for_status()
            logger.debug(f"Downloaded {len(response.content)} bytes from {url}")
            return response.content
