"""
Product Catalog Protocol — Interface for product existence checks.

Ledgerman defines this protocol, the host catalog app implements it.
The ledger never stores product state; it only needs to know that a
product exists, and optionally a default unit cost for form pre-fill.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol, runtime_checkable


@runtime_checkable
class ProductCatalog(Protocol):
    """
    Protocol for product lookups.

    Implementations should provide methods to:
    - Tell which of a set of product ids exist
    - Get the catalog's default unit cost for a product
    """

    def existing(self, product_ids: Iterable[int]) -> set[int]:
        """
        Filter product ids down to the ones that exist.

        Args:
            product_ids: Product ids to check

        Returns:
            Subset of product_ids that exist in the catalog
        """
        ...

    def default_cost(self, product_id: int) -> Decimal | None:
        """
        Default unit cost (e.g. last purchase price).

        Used only to pre-fill forms. Never authoritative for the ledger.

        Args:
            product_id: Product id

        Returns:
            Decimal or None if unknown
        """
        ...
