from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Union

from .models import Message, Product

ProductId = Union[int, str]
NOTICE_LIMIT = 5


@dataclass
class FilterState:
    """Current search text and category; never persisted."""
    query: str = ""
    category: str = ""


@dataclass
class AppState:
    """Everything the views render. Owned and mutated only by AppController.

    ``selected_ids`` is a dict used as an insertion-ordered set. ``notices`` keeps only
    the most recent NOTICE_LIMIT messages.
    """
    products: List[Product] = field(default_factory=list)
    visible: List[Product] = field(default_factory=list)
    filter: FilterState = field(default_factory=FilterState)
    selected_ids: Dict[ProductId, None] = field(default_factory=dict)
    messages: List[Message] = field(default_factory=list)
    notices: Deque[str] = field(default_factory=lambda: deque(maxlen=NOTICE_LIMIT))
    typing: bool = False

    def is_selected(self, product_id: ProductId) -> bool:
        return product_id in self.selected_ids

    def find_product(self, product_id: ProductId) -> Optional[Product]:
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    def selected_products(self) -> List[Product]:
        # Catalog order, matching the selection chips.
        return [p for p in self.products if p.id in self.selected_ids]
