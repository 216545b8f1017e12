from __future__ import annotations

"""Catalog loading and filtering for the product list.

The catalog document is a JSON object with a ``products`` array. It is read once
per session from a local file or an HTTP(S) URL.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .errors import TransportError
from .models import Product

logger = logging.getLogger("routine_advisor.catalog")

TEXT_FIELDS = ["name", "brand", "description", "category", "image"]


class CatalogLoader:
    def __init__(self, source: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        """Purpose: Configure the loader with a catalog file path or URL.
        Inputs/Outputs: Inputs are the source string and an optional httpx transport.
        Side Effects / State: Stores the source for later load calls.
        Dependencies: None beyond httpx for remote sources.
        Failure Modes: None at init; load() reports read/parse errors.
        If Removed: The client cannot populate its product list.
        Testing Notes: Instantiate with a temp path or a MockTransport URL and call load().
        """
        # Store the catalog location for subsequent loads.
        self._source = source
        self._transport = transport

    @property
    def is_remote(self) -> bool:
        return self._source.startswith(("http://", "https://"))

    async def load(self) -> List[Product]:
        """Purpose: Fetch and normalize the product document.
        Inputs/Outputs: No inputs; returns the list of Products in document order.
        Side Effects / State: Reads a file or performs one HTTP GET.
        Dependencies: Uses httpx, json and _parse_products.
        Failure Modes: TransportError on network or HTTP failure; OSError for unreadable
            files; ValueError when the document is not JSON.
        If Removed: The product list is always empty.
        Testing Notes: Use a small products.json and check skipped malformed entries.
        """
        # Read the raw document from the configured source.
        if self.is_remote:
            try:
                async with httpx.AsyncClient(transport=self._transport) as client:
                    response = await client.get(self._source)
                    response.raise_for_status()
            except httpx.HTTPError as exc:
                raise TransportError(f"cannot fetch catalog {self._source}: {exc}") from exc
            raw_text = response.text
        else:
            raw_text = Path(self._source).read_text(encoding="utf-8-sig")

        data = json.loads(raw_text)
        products = _parse_products(data)
        logger.info("loaded %s products from %s", len(products), self._source)
        return products


def filter_products(products: Sequence[Product], query: str, category: str) -> List[Product]:
    """Purpose: Compute the visible product list for the current filter.
    Inputs/Outputs: Inputs are products, free-text query and category; output is the
        matching products in catalog order.
    Side Effects / State: None; pure function.
    Dependencies: None.
    Failure Modes: None.
    If Removed: Search and category filtering stop working.
    Testing Notes: Check case-insensitive matching on name/brand/description and that
        category and query combine with AND.
    """
    # Category must match exactly (ignoring case); query is a substring match.
    q = (query or "").strip().lower()
    cat = (category or "").strip().lower()
    visible: List[Product] = []
    for product in products:
        if cat and product.category.lower() != cat:
            continue
        if q and not (
            q in product.name.lower()
            or q in product.brand.lower()
            or q in product.description.lower()
        ):
            continue
        visible.append(product)
    return visible


def _parse_products(data: Any) -> List[Product]:
    """Purpose: Convert the decoded document into Product models.
    Inputs/Outputs: Input is the decoded JSON value; output is a list of Products.
    Side Effects / State: None.
    Dependencies: Uses _normalize_item.
    Failure Modes: Entries that are not objects or lack a usable id are skipped.
    If Removed: load() cannot build Products.
    Testing Notes: Mix valid and invalid entries and verify only valid ones survive.
    """
    # Accept only the documented {"products": [...]} shape.
    items = data.get("products", []) if isinstance(data, dict) else []
    if not isinstance(items, list):
        return []
    products: List[Product] = []
    for item in items:
        normalized = _normalize_item(item)
        if normalized is None:
            logger.debug("skipping catalog entry without id: %r", item)
            continue
        products.append(Product(**normalized))
    return products


def _normalize_item(item: Any) -> Optional[Dict[str, Any]]:
    # Ids may be integers or strings; booleans are JSON true/false, never ids.
    if not isinstance(item, dict):
        return None
    product_id = item.get("id")
    if isinstance(product_id, bool) or not isinstance(product_id, (int, str)):
        return None
    normalized: Dict[str, Any] = {"id": product_id}
    for field in TEXT_FIELDS:
        value = item.get(field)
        normalized[field] = "" if value is None else str(value).strip()
    return normalized
