"""bomcheck Pydantic models for type-safe data validation.

Python attributes are snake_case; the JSON wire format is camelCase to stay
compatible with the BOM tracker frontend (``bomItems``, ``linkedBOMItems``...).
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_NUMBER_TOKEN = re.compile(r"-?\d[\d,]*(?:\.\d+)?")


def _coerce_number(value: Any) -> Any:
    """Turn "Rs. 1,250", "₹1,250.00" or "INR 500/-" into a float; no digits gives None."""
    if value is None or isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        match = _NUMBER_TOKEN.search(value)
        if match is None:
            return None
        return float(match.group().replace(",", ""))
    return value


class WireModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ItemType(str, Enum):
    """BOM line classification."""

    COMPONENT = "component"
    SERVICE = "service"


class BOMStatus(str, Enum):
    """Procurement status of a BOM item."""

    NOT_ORDERED = "not-ordered"
    ORDERED = "ordered"
    RECEIVED = "received"
    APPROVED = "approved"


class IssueType(str, Enum):
    """Kinds of compliance issue the engine can report."""

    MISSING_FIELD = "missing-field"
    INVALID_SKU = "invalid-sku"
    DUPLICATE_ITEM = "duplicate-item"
    QUANTITY_MISMATCH = "quantity-mismatch"
    PRICE_MISMATCH = "price-mismatch"
    QUOTE_MISMATCH = "quote-mismatch"
    MISSING_QUOTE = "missing-quote"
    NAME_FORMAT = "name-format"
    DESCRIPTION_MISMATCH = "description-mismatch"


class Severity(str, Enum):
    """Issue severity levels."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class FixType(str, Enum):
    UPDATE_FIELD = "update-field"
    LINK_DOCUMENT = "link-document"
    MERGE_ITEMS = "merge-items"


QUOTE_MISMATCH_TYPES = frozenset(
    {IssueType.QUOTE_MISMATCH, IssueType.PRICE_MISMATCH, IssueType.QUANTITY_MISMATCH}
)


# ---------------------------------------------------------------------------
# BOM and quote documents
# ---------------------------------------------------------------------------


class VendorOption(WireModel):
    """A vendor offer recorded against a BOM item."""

    name: str = ""
    price: float | None = None
    lead_time: str | None = None
    availability: str | None = None

    coerce_price = field_validator("price", mode="before")(_coerce_number)


class BOMItem(WireModel):
    """A single part or service in a project's bill of materials."""

    id: str
    item_type: ItemType | None = None  # absent means component
    name: str | None = None
    description: str | None = None
    category: str | None = None
    make: str | None = None
    sku: str | None = None
    unit: str | None = None
    quantity: float | None = None
    price: float | None = None
    status: BOMStatus = BOMStatus.NOT_ORDERED
    vendors: list[VendorOption] = Field(default_factory=list)
    finalized_vendor: VendorOption | None = None
    linked_quote_document_id: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "item-001",
                "itemType": "component",
                "name": "Servo Motor 400W",
                "description": "AC servo motor, 400W, 3000 rpm",
                "category": "Motors & Drives",
                "make": "Siemens",
                "sku": "1FK7022-5AK71",
                "unit": "pcs",
                "quantity": 4,
                "price": 18500,
                "status": "not-ordered",
            }
        }
    )

    coerce_numbers = field_validator("quantity", "price", mode="before")(_coerce_number)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v: Any) -> Any:
        return v or BOMStatus.NOT_ORDERED

    @property
    def is_component(self) -> bool:
        return self.item_type in (None, ItemType.COMPONENT)

    def summary(self) -> dict[str, Any]:
        """Fields sent to the reconciliation step."""
        return {
            "id": self.id,
            "name": self.name,
            "make": self.make,
            "sku": self.sku,
            "description": self.description,
            "quantity": self.quantity,
            "price": self.price,
            "category": self.category,
        }


class QuoteLineItem(WireModel):
    """One priced line of a vendor quote."""

    part_name: str = ""
    part_number: str | None = None
    sku: str | None = None
    make: str | None = None
    description: str | None = None
    quantity: float | None = None
    unit: str | None = None
    unit_price: float | None = None
    total_price: float | None = None
    hsn_code: str | None = None

    coerce_numbers = field_validator(
        "quantity", "unit_price", "total_price", mode="before"
    )(_coerce_number)

    @field_validator("part_name", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return v if v is not None else ""

    @field_validator("part_number", "sku", "hsn_code", mode="before")
    @classmethod
    def code_to_str(cls, v: Any) -> Any:
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @property
    def code(self) -> str | None:
        return self.part_number or self.sku


class ParsedQuoteData(WireModel):
    """Structured result of extracting a vendor quote."""

    document_info: dict[str, Any] = Field(default_factory=dict)
    line_items: list[QuoteLineItem] = Field(default_factory=list)


class VendorQuote(WireModel):
    """Reference to a stored vendor-quote document."""

    document_id: str = Field(
        validation_alias=AliasChoices("documentId", "document_id", "id"),
        serialization_alias="documentId",
    )
    document_name: str = Field(
        default="",
        validation_alias=AliasChoices("documentName", "document_name", "name"),
        serialization_alias="documentName",
    )
    file_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("fileUrl", "file_url", "url"),
        serialization_alias="fileUrl",
    )
    linked_bom_items: list[str] = Field(default_factory=list, alias="linkedBOMItems")
    parsed_quote_data: ParsedQuoteData | None = None
    extracted_text: str | None = None  # Text already pulled from the document by the caller

    @field_validator("linked_bom_items", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []

    @property
    def display_name(self) -> str:
        return self.document_name or self.document_id


# ---------------------------------------------------------------------------
# Issues and reports
# ---------------------------------------------------------------------------


class SuggestedFix(WireModel):
    """A proposed change to a BOM item field, applied by the caller."""

    type: FixType = FixType.UPDATE_FIELD
    field: str | None = None
    suggested_value: str | int | float | None = None
    description: str


class Issue(WireModel):
    """A single data-quality or cross-document problem."""

    id: str = ""
    bom_item_id: str
    bom_item_name: str
    category: str
    issue_type: IssueType
    severity: Severity
    message: str
    details: str
    current_value: str | None = None
    suggested_fix: SuggestedFix | None = None
    document_id: str | None = None
    document_name: str | None = None
    confidence: int | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "issue-1",
                "bomItemId": "item-001",
                "bomItemName": "Servo Motor 400W",
                "category": "Motors & Drives",
                "issueType": "invalid-sku",
                "severity": "warning",
                "message": "SKU format looks invalid",
                "details": "SKU has leading or trailing whitespace",
                "currentValue": " 1FK7022 ",
            }
        }
    )


class ComplianceReport(WireModel):
    """Point-in-time summary of one compliance run."""

    id: str
    project_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    total_items_checked: int = 0
    items_with_issues: int = 0
    total_issues: int = 0
    issues_by_type: dict[str, int] = Field(default_factory=dict)
    issues_by_severity: dict[str, int] = Field(
        default_factory=lambda: {s.value: 0 for s in Severity}
    )
    quotes_analyzed: int = 0
    documents_parsed: int = 0
    quotes_matched: int = 0
    quote_mismatches: int = 0
    issues: list[Issue] = Field(default_factory=list)
    processing_time_ms: int = 0
    compliance_score: int = 100


# ---------------------------------------------------------------------------
# Reconciliation contract
# ---------------------------------------------------------------------------


class LineMatch(WireModel):
    """One quote line matched (or not) to a BOM item."""

    quote_line_item: QuoteLineItem = Field(default_factory=QuoteLineItem)
    bom_item_id: str | None = None
    bom_item_name: str | None = None
    match_score: float = 0
    match_reasons: list[str] = Field(default_factory=list)
    mismatches: list[str] = Field(default_factory=list)

    @field_validator("match_score", mode="before")
    @classmethod
    def score_or_zero(cls, v: Any) -> Any:
        v = _coerce_number(v)
        return 0 if v is None else v

    @field_validator("match_reasons", "mismatches", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []


class QuoteAnalysis(WireModel):
    """Reconciliation result for one vendor quote."""

    document_id: str
    document_name: str = ""
    vendor_name: str | None = None
    total_line_items: int = 0
    line_matches: list[LineMatch] = Field(default_factory=list)
    unmatched_quote_lines: int = 0
    unmatched_bom_items: list[str] = Field(default_factory=list, alias="unmatchedBOMItems")

    @field_validator("line_matches", "unmatched_bom_items", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []

    @field_validator("unmatched_quote_lines", mode="before")
    @classmethod
    def count_or_zero(cls, v: Any) -> Any:
        if isinstance(v, list):
            return len(v)
        return v or 0


class SuggestedCorrection(WireModel):
    """A field correction proposed by the reconciliation step."""

    bom_item_id: str
    field: str
    current_value: Any = None
    suggested_value: Any = None
    reason: str = ""


class ReconciliationResult(WireModel):
    quote_analysis: list[QuoteAnalysis] = Field(default_factory=list)
    suggested_fixes: list[SuggestedCorrection] = Field(default_factory=list)

    @field_validator("quote_analysis", "suggested_fixes", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []


# ---------------------------------------------------------------------------
# Request / response
# ---------------------------------------------------------------------------


class ComplianceSettings(WireModel):
    """Per-project inputs that tune validation and reconciliation."""

    existing_makes: list[str] = Field(default_factory=list)
    existing_categories: list[str] = Field(default_factory=list)
    valid_sku_patterns: list[str] = Field(
        default_factory=list, alias="validSKUPatterns"
    )  # Component SKUs must fully match one of these regexes when given
    required_fields: list[str] = Field(default_factory=list)

    @field_validator(
        "existing_makes",
        "existing_categories",
        "valid_sku_patterns",
        "required_fields",
        mode="before",
    )
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []

    @field_validator("valid_sku_patterns")
    @classmethod
    def patterns_compile(cls, v: list[str]) -> list[str]:
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid SKU pattern {pattern!r}: {e}") from e
        return v

    @field_validator("required_fields")
    @classmethod
    def known_fields(cls, v: list[str]) -> list[str]:
        """Accept wire (camelCase) or Python names; store Python names."""
        by_alias = {to_camel(name): name for name in BOMItem.model_fields}
        fields, unknown = [], []
        for name in v:
            if name in BOMItem.model_fields:
                fields.append(name)
            elif name in by_alias:
                fields.append(by_alias[name])
            else:
                unknown.append(name)
        if unknown:
            raise ValueError(f"Unknown BOM item fields: {', '.join(unknown)}")
        return fields


class ComplianceCheckRequest(WireModel):
    """Input to a compliance run."""

    project_id: str
    bom_items: list[BOMItem]
    vendor_quotes: list[VendorQuote] = Field(default_factory=list)
    settings: ComplianceSettings = Field(default_factory=ComplianceSettings)
    parse_documents: bool = True
    persist: bool = False

    @field_validator("vendor_quotes", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []

    @field_validator("settings", mode="before")
    @classmethod
    def none_to_settings(cls, v: Any) -> Any:
        return v or {}


class ComplianceCheckResult(WireModel):
    """Engine output: the report plus reconciliation detail and cache-write intents."""

    success: bool = True
    report: ComplianceReport
    quote_analysis: list[QuoteAnalysis] = Field(default_factory=list)
    parsed_quote_data: dict[str, ParsedQuoteData] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# BOM text analysis
# ---------------------------------------------------------------------------


class ExtractedBOMItem(WireModel):
    """A BOM line recovered from free text."""

    name: str
    make: str | None = None
    description: str
    sku: str | None = None
    quantity: int = 1
    category: str = "Uncategorized"
    unit: str = "pcs"
    confidence: float = 0.5


class BOMAnalysisRequest(WireModel):
    text: str
    existing_categories: list[str] = Field(default_factory=list)
    existing_makes: list[str] = Field(default_factory=list)

    @field_validator("existing_categories", "existing_makes", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []


class BOMAnalysisResult(WireModel):
    """Structured items extracted from pasted BOM text."""

    items: list[ExtractedBOMItem] = Field(default_factory=list)
    suggested_categories: list[str] = Field(default_factory=list)
    total_items: int = 0
    confidence: float = 0.0
    processing_time_ms: int = 0
    method: str = "ai"  # ai or keywords
