"""
Noop Product Catalog — Stub adapter for development and testing.

This adapter implements the ProductCatalog protocol with trivial defaults:
- Every product id exists
- No default cost is known

Usage in settings.py:
    LEDGERMAN = {
        "PRODUCT_CATALOG": "ledgerman.adapters.noop.NoopProductCatalog",
    }

WARNING: Do NOT use in production. This adapter performs no real validation
and will let stock be booked against nonexistent products.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable


class NoopProductCatalog:
    """No-operation product catalog for development and testing."""

    def existing(self, product_ids: Iterable[int]) -> set[int]:
        """All ids exist."""
        return set(product_ids)

    def default_cost(self, product_id: int) -> Decimal | None:
        return None
