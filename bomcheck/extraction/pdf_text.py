"""PDF text extraction using pypdf."""

from __future__ import annotations

import logging
from io import BytesIO

from pypdf import PdfReader

from bomcheck.compliance.ports import ExtractedText
from bomcheck.exceptions import ExtractionError

logger = logging.getLogger(__name__)


class PdfTextExtractor:
    """Extracts the text layer of a PDF.

    Scanned PDFs come back with little or no text; the caller decides whether
    to fall back to vision extraction based on the words-per-page ratio.
    """

    def extract(self, data: bytes) -> ExtractedText:
        try:
            reader = PdfReader(BytesIO(data))
            pages = [page.extract_text() or "" for page in reader.pages]
        except Exception as e:
            raise ExtractionError(f"PDF text extraction failed: {e}") from e

        text = "\n".join(pages)
        logger.debug(f"Extracted {len(text.split())} words from {len(pages)} pages")
        return ExtractedText(text=text, num_pages=len(pages))


def is_pdf(data: bytes) -> bool:
    return data[:5] == b"%PDF-"
