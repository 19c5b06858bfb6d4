"""Pytest configuration and fixtures for bomcheck tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from bomcheck.config import ComplianceConfig, reset_config
from bomcheck.models import BOMItem, VendorOption, VendorQuote


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("RECONCILER", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def test_project_id() -> str:
    """Test project ID."""
    return "test-project"


@pytest.fixture
def compliance_config() -> ComplianceConfig:
    return ComplianceConfig()


@pytest.fixture
def make_item() -> Callable[..., BOMItem]:
    """Factory for a component that passes every validation rule.

    Override any field to break exactly the rule under test.
    """

    def _make(**overrides: Any) -> BOMItem:
        fields: dict[str, Any] = {
            "id": "item-1",
            "item_type": "component",
            "name": "Servo Motor 400W",
            "description": "AC servo motor, 400W, 3000 rpm",
            "category": "Motors & Drives",
            "make": "Siemens",
            "sku": "1FK7022-5AK71",
            "unit": "pcs",
            "quantity": 4,
            "price": 18500,
            "finalized_vendor": VendorOption(name="Acme Automation", price=18500),
            "linked_quote_document_id": "quote-1",
        }
        fields.update(overrides)
        return BOMItem(**fields)

    return _make


@pytest.fixture
def clean_item(make_item) -> BOMItem:
    return make_item()


@pytest.fixture
def sample_quote() -> VendorQuote:
    """Quote document linked to item-1 with a file to download."""
    return VendorQuote(
        document_id="quote-1",
        document_name="Acme quote Q-1042.pdf",
        file_url="https://files.example.com/quotes/q-1042.pdf",
        linked_bom_items=["item-1"],
    )


@pytest.fixture
def servo_line() -> dict[str, Any]:
    """Quote line (wire form) for the clean servo item."""
    return {
        "partName": "Servo Motor 400W",
        "partNumber": "1FK7022-5AK71",
        "make": "Siemens",
        "quantity": 4,
        "unit": "pcs",
        "unitPrice": 18500,
        "totalPrice": 74000,
    }
