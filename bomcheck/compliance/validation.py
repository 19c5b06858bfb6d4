"""BOM data-quality rules.

Evaluates every BOM item independently of any quote document and emits
Issue models with severity + message. Cross-item duplicate detection runs once
over the whole item set.

Per-item rules:
  1.  Missing name                         -> error   missing-field
  2.  Component missing make               -> error   missing-field
  3.  Component missing SKU                -> error   missing-field
  4.  Component with no linked quote       -> error   missing-quote
  5.  Missing description                  -> warning missing-field
  6.  Malformed component SKU              -> warning invalid-sku
  7.  Ordered/received without price       -> warning missing-field
  8.  Quantity missing or <= 0             -> warning missing-field
  9.  Quantity above soft ceiling          -> warning quantity-mismatch
  10. Category empty or "Uncategorized"    -> warning missing-field
  11. Priced component, no vendor selected -> warning missing-field
  12. Very short name                      -> info    name-format
  13. Service without a positive rate      -> warning missing-field

Cross-item rules:
  14. Same normalized name                 -> warning duplicate-item (every member)
  15. Same normalized component SKU        -> error   duplicate-item (every member)

Project settings add accepted SKU patterns to rule 6 and extra required
fields (-> error missing-field).
"""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Iterable, Sequence

from bomcheck.compliance.linking import linked_item_ids
from bomcheck.config import ComplianceConfig, get_config
from bomcheck.models import (
    BOMItem,
    BOMStatus,
    ComplianceSettings,
    FixType,
    Issue,
    IssueType,
    Severity,
    SuggestedFix,
    VendorQuote,
)

UNCATEGORIZED = "Uncategorized"
MIN_NAME_LENGTH = 5
INVALID_SKU_CHARS = frozenset("<>{}[]\\|")

_WHITESPACE_RUN = re.compile(r"\s+")

# Fields already enforced by a built-in rule; listing them in required_fields
# must not add a second issue.
_BUILT_IN_REQUIRED = frozenset({"name", "description", "category", "quantity"})
_COMPONENT_REQUIRED = frozenset({"make", "sku", "linked_quote_document_id"})


def validate_item(
    item: BOMItem,
    quote_linked_ids: set[str],
    config: ComplianceConfig | None = None,
    settings: ComplianceSettings | None = None,
) -> list[Issue]:
    """Evaluate the per-item rules for a single BOM item.

    Args:
        item: BOM item to check
        quote_linked_ids: Item ids that appear in some quote's linkedBOMItems
        config: Thresholds (defaults to the application config)
        settings: Project settings (accepted SKU patterns, extra required fields)

    Returns:
        List of Issue models (empty if the item is clean). Issue ids are left
        blank; they are assigned when the report is assembled.
    """
    cfg = config or get_config().compliance
    settings = settings or ComplianceSettings()
    issues: list[Issue] = []

    def issue(
        issue_type: IssueType,
        severity: Severity,
        message: str,
        details: str,
        current_value: str | None = None,
        suggested_fix: SuggestedFix | None = None,
    ) -> None:
        issues.append(
            Issue(
                bom_item_id=item.id,
                bom_item_name=_display_name(item),
                category=_display_category(item),
                issue_type=issue_type,
                severity=severity,
                message=message,
                details=details,
                current_value=current_value,
                suggested_fix=suggested_fix,
            )
        )

    name = _clean(item.name)
    make = _clean(item.make)
    sku = _clean(item.sku)
    description = _clean(item.description)
    category = _clean(item.category)
    has_price = item.price is not None and item.price > 0

    if not name:
        issue(
            IssueType.MISSING_FIELD,
            Severity.ERROR,
            "Item name is required",
            "Every BOM item needs a name so it can be identified on quotes and POs.",
        )

    if item.is_component:
        if not make:
            issue(
                IssueType.MISSING_FIELD,
                Severity.ERROR,
                "Make is required for components",
                "Components must specify the manufacturer (make) to be sourced correctly.",
            )

        if not sku:
            issue(
                IssueType.MISSING_FIELD,
                Severity.ERROR,
                "SKU is required for components",
                "Components must carry a manufacturer part number (SKU).",
            )

        if not item.linked_quote_document_id and item.id not in quote_linked_ids:
            issue(
                IssueType.MISSING_QUOTE,
                Severity.ERROR,
                "No vendor quote linked",
                "Link a vendor quote document to this component before ordering.",
                suggested_fix=SuggestedFix(
                    type=FixType.LINK_DOCUMENT,
                    field="linkedQuoteDocumentId",
                    description="Link the vendor quote that covers this component",
                ),
            )

    if not description:
        issue(
            IssueType.MISSING_FIELD,
            Severity.WARNING,
            "Description is missing",
            "Add a description so vendors can quote the right part.",
            suggested_fix=(
                SuggestedFix(
                    field="description",
                    suggested_value=name,
                    description="Use the item name as its description",
                )
                if name
                else None
            ),
        )

    if item.is_component and sku:
        problems = sku_problems(
            item.sku or "", cfg.min_sku_length, settings.valid_sku_patterns
        )
        if problems:
            fixed = normalize_sku(item.sku or "")
            issue(
                IssueType.INVALID_SKU,
                Severity.WARNING,
                "SKU format looks invalid",
                ". ".join(problems),
                current_value=item.sku,
                suggested_fix=(
                    SuggestedFix(
                        field="sku",
                        suggested_value=fixed,
                        description=f"Normalize SKU to '{fixed}'",
                    )
                    if fixed and fixed != item.sku
                    else None
                ),
            )

    if item.status in (BOMStatus.ORDERED, BOMStatus.RECEIVED) and not has_price:
        issue(
            IssueType.MISSING_FIELD,
            Severity.WARNING,
            "Price missing for ordered item",
            f"Item is marked '{item.status.value}' but has no price recorded.",
        )

    if item.quantity is None or item.quantity <= 0:
        issue(
            IssueType.MISSING_FIELD,
            Severity.WARNING,
            "Quantity must be greater than zero",
            "Quantity is missing, zero, or negative.",
            current_value=_format_number(item.quantity),
            suggested_fix=SuggestedFix(
                field="quantity",
                suggested_value=1,
                description="Set quantity to 1",
            ),
        )
    elif item.quantity > cfg.max_quantity:
        issue(
            IssueType.QUANTITY_MISMATCH,
            Severity.WARNING,
            "Quantity is unusually high",
            f"Quantity {_format_number(item.quantity)} exceeds {cfg.max_quantity}; "
            "check for a unit or data-entry error.",
            current_value=_format_number(item.quantity),
        )

    if not category or category == UNCATEGORIZED:
        issue(
            IssueType.MISSING_FIELD,
            Severity.WARNING,
            "Category not assigned",
            "Assign the item to a category so it is grouped correctly.",
            current_value=item.category,
        )

    if item.is_component and has_price and not _vendor_selected(item):
        issue(
            IssueType.MISSING_FIELD,
            Severity.WARNING,
            "No vendor selected",
            "Component has a price but no finalized vendor.",
        )

    if name and len(name) < MIN_NAME_LENGTH:
        issue(
            IssueType.NAME_FORMAT,
            Severity.INFO,
            "Name is very short",
            f"'{name}' may be an abbreviation; consider a more descriptive name.",
            current_value=item.name,
        )

    if not item.is_component and not has_price:
        issue(
            IssueType.MISSING_FIELD,
            Severity.WARNING,
            "Service rate is missing",
            "Services need a positive rate per day.",
        )

    for field in settings.required_fields:
        if field in _BUILT_IN_REQUIRED or (item.is_component and field in _COMPONENT_REQUIRED):
            continue
        if _is_blank(getattr(item, field)):
            label = field.replace("_", " ").capitalize()
            issue(
                IssueType.MISSING_FIELD,
                Severity.ERROR,
                f"{label} is required",
                f"Project settings require {label.lower()} on every BOM item.",
            )

    return issues


def find_duplicates(items: Iterable[BOMItem]) -> list[Issue]:
    """Cross-item duplicate name / SKU detection.

    Every member of a duplicate group receives its own issue. Names are
    compared across all item types; SKUs only across components.
    """
    items = list(items)
    issues: list[Issue] = []

    by_name: dict[str, list[BOMItem]] = defaultdict(list)
    by_sku: dict[str, list[BOMItem]] = defaultdict(list)
    for item in items:
        name_key = _normalize_key(item.name)
        if name_key:
            by_name[name_key].append(item)
        sku_key = _normalize_key(item.sku)
        if sku_key and item.is_component:
            by_sku[sku_key].append(item)

    for group in by_name.values():
        if len(group) < 2:
            continue
        for item in group:
            issues.append(
                Issue(
                    bom_item_id=item.id,
                    bom_item_name=_display_name(item),
                    category=_display_category(item),
                    issue_type=IssueType.DUPLICATE_ITEM,
                    severity=Severity.WARNING,
                    message="Possible duplicate item",
                    details=f"{len(group)} items share the name '{_clean(item.name)}'.",
                    current_value=item.name,
                    suggested_fix=SuggestedFix(
                        type="merge-items",
                        description="Merge duplicate entries or make the names distinct",
                    ),
                )
            )

    for group in by_sku.values():
        if len(group) < 2:
            continue
        for item in group:
            issues.append(
                Issue(
                    bom_item_id=item.id,
                    bom_item_name=_display_name(item),
                    category=_display_category(item),
                    issue_type=IssueType.DUPLICATE_ITEM,
                    severity=Severity.ERROR,
                    message="Duplicate SKU",
                    details=f"{len(group)} components share the SKU '{_clean(item.sku)}'.",
                    current_value=item.sku,
                )
            )

    return issues


def run_validation(
    items: Iterable[BOMItem],
    quotes: Iterable[VendorQuote] = (),
    config: ComplianceConfig | None = None,
    settings: ComplianceSettings | None = None,
) -> list[Issue]:
    """Validation pass over a full BOM: per-item rules then cross-item rules."""
    cfg = config or get_config().compliance
    items = list(items)
    linked = linked_item_ids(quotes)

    issues: list[Issue] = []
    for item in items:
        issues.extend(validate_item(item, linked, cfg, settings))
    issues.extend(find_duplicates(items))
    return issues


def sku_problems(
    sku: str, min_length: int = 3, patterns: Sequence[str] = ()
) -> list[str]:
    """Describe every way a SKU is malformed (empty list if it looks fine).

    With ``patterns``, the trimmed SKU must also fully match one of them.
    """
    problems = []
    if len(sku) < min_length:
        problems.append(f"SKU is shorter than {min_length} characters")
    if "  " in sku:
        problems.append("SKU contains consecutive spaces")
    bad_chars = sorted({ch for ch in sku if ch in INVALID_SKU_CHARS})
    if bad_chars:
        problems.append(f"SKU contains invalid characters: {' '.join(bad_chars)}")
    if sku != sku.strip():
        problems.append("SKU has leading or trailing whitespace")
    if patterns and not any(re.fullmatch(p, sku.strip()) for p in patterns):
        problems.append("SKU does not match any accepted SKU pattern")
    return problems


def normalize_sku(sku: str) -> str:
    """Trim and replace internal whitespace runs with hyphens."""
    return _WHITESPACE_RUN.sub("-", sku.strip())


def _vendor_selected(item: BOMItem) -> bool:
    return item.finalized_vendor is not None and bool(_clean(item.finalized_vendor.name))


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list):
        return not value
    return False


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


def _normalize_key(value: str | None) -> str:
    return _clean(value).lower()


def _display_name(item: BOMItem) -> str:
    return _clean(item.name) or "Unnamed item"


def _display_category(item: BOMItem) -> str:
    return _clean(item.category) or UNCATEGORIZED


def _format_number(value: float | None) -> str | None:
    if value is None:
        return None
    return f"{value:g}"
