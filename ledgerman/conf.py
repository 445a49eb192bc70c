"""
Ledgerman configuration.

Usage in settings.py:
    LEDGERMAN = {
        "PRODUCT_CATALOG": "ledgerman.adapters.catalog.ModelProductCatalog",
        "PRODUCT_MODEL": "catalog.Product",
        "DEFAULT_COST_FIELD": "purchase_price",
        "LOCK_TIMEOUT_MS": 5000,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class LedgermanSettings:
    """Ledgerman configuration settings."""

    # Product existence backend (dotted path)
    PRODUCT_CATALOG: str = "ledgerman.adapters.catalog.ModelProductCatalog"

    # "app_label.ModelName" used by ModelProductCatalog
    PRODUCT_MODEL: str = ""

    # Product attribute holding the form pre-fill unit cost
    DEFAULT_COST_FIELD: str = "purchase_price"

    # Check product existence before stock operations
    VALIDATE_PRODUCTS: bool = True

    # Max wait for a balance row lock (0 = database default)
    LOCK_TIMEOUT_MS: int = 5000

    # Defaults for stock.retrying()
    RETRY_ATTEMPTS: int = 3
    RETRY_BACKOFF_SECONDS: float = 0.05


def get_ledgerman_settings() -> LedgermanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LEDGERMAN", {})
    return LedgermanSettings(**{
        k: v for k, v in user_settings.items()
        if k in LedgermanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_ledgerman_settings(), name)


ledgerman_settings = _LazySettings()
