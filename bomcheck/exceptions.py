"""Exception types raised by bomcheck.

The web layer maps these onto HTTP status codes: InputError -> 400,
ConfigurationError -> 500.
"""


class BOMCheckError(Exception):
    """Base class for bomcheck errors."""


class InputError(BOMCheckError):
    """Request payload is missing required fields or has the wrong shape."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.details = details


class ConfigurationError(BOMCheckError):
    """A required service is not configured (e.g. missing AI credentials)."""


class ExtractionError(BOMCheckError):
    """Text or line-item extraction failed for a document."""


class ReconciliationError(BOMCheckError):
    """The quote-to-BOM reconciliation call failed or returned unusable output."""
