"""BOM item <-> vendor quote links.

An item can be linked to a quote in two directions: directly through
``linkedQuoteDocumentId`` on the item, or by appearing in a quote's
``linkedBOMItems``. Either is sufficient.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from bomcheck.models import BOMItem, VendorQuote


def linked_item_ids(quotes: Iterable[VendorQuote]) -> set[str]:
    """All BOM item ids referenced from any quote's linkedBOMItems."""
    linked: set[str] = set()
    for quote in quotes:
        linked.update(quote.linked_bom_items)
    return linked


def linked_items_by_quote(
    quotes: Sequence[VendorQuote], items: Sequence[BOMItem]
) -> dict[str, list[str]]:
    """Item ids each quote covers, merging both link directions.

    The quote's own linkedBOMItems come first, then items pointing at the
    quote through linkedQuoteDocumentId, without repeats.
    """
    links: dict[str, list[str]] = {}
    for quote in quotes:
        ids = links.setdefault(quote.document_id, [])
        for item_id in quote.linked_bom_items:
            if item_id not in ids:
                ids.append(item_id)

    for item in items:
        ids = links.get(item.linked_quote_document_id or "")
        if ids is not None and item.id not in ids:
            ids.append(item.id)
    return links
