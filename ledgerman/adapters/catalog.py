"""
Ledgerman Catalog Adapter — product existence via a Django model.

This module also loads the configured ProductCatalog from settings.

Usage:
    from ledgerman.adapters import get_product_catalog

    catalog = get_product_catalog()
    missing = set(ids) - catalog.existing(ids)

Settings:
    LEDGERMAN = {
        "PRODUCT_CATALOG": "ledgerman.adapters.catalog.ModelProductCatalog",
        "PRODUCT_MODEL": "catalog.Product",
        "DEFAULT_COST_FIELD": "purchase_price",
    }
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal
from typing import Iterable

from django.apps import apps
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from ledgerman.conf import ledgerman_settings
from ledgerman.protocols.catalog import ProductCatalog

logger = logging.getLogger(__name__)


class ModelProductCatalog:
    """
    ProductCatalog backed by a Django model (LEDGERMAN['PRODUCT_MODEL']).
    """

    def __init__(self, model_label: str | None = None, cost_field: str | None = None):
        label = model_label or ledgerman_settings.PRODUCT_MODEL
        if not label:
            raise ImproperlyConfigured(
                "LEDGERMAN['PRODUCT_MODEL'] must be configured. "
                "Example: 'catalog.Product'"
            )
        try:
            self.model = apps.get_model(label)
        except (LookupError, ValueError) as e:
            raise ImproperlyConfigured(
                f"LEDGERMAN['PRODUCT_MODEL'] refers to unknown model '{label}'"
            ) from e
        self.cost_field = cost_field or ledgerman_settings.DEFAULT_COST_FIELD

    def existing(self, product_ids: Iterable[int]) -> set[int]:
        ids = set(product_ids)
        if not ids:
            return set()
        return set(
            self.model._default_manager.filter(pk__in=ids).values_list('pk', flat=True)
        )

    def default_cost(self, product_id: int) -> Decimal | None:
        product = self.model._default_manager.filter(pk=product_id).first()
        if product is None:
            return None
        value = getattr(product, self.cost_field, None)
        return Decimal(str(value)) if value is not None else None


# Cached catalog instance
_lock = threading.Lock()
_product_catalog: ProductCatalog | None = None


def get_product_catalog() -> ProductCatalog:
    """
    Return the configured product catalog.

    Returns:
        ProductCatalog instance

    Raises:
        ImproperlyConfigured: If PRODUCT_CATALOG is empty or import fails
    """
    global _product_catalog

    if _product_catalog is None:
        with _lock:
            if _product_catalog is None:  # double-checked
                catalog_path = ledgerman_settings.PRODUCT_CATALOG

                if not catalog_path:
                    raise ImproperlyConfigured(
                        "LEDGERMAN['PRODUCT_CATALOG'] must be configured. "
                        "Example: 'ledgerman.adapters.catalog.ModelProductCatalog'"
                    )

                try:
                    catalog_class = import_string(catalog_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import product catalog '{catalog_path}': {e}"
                    ) from e
                _product_catalog = catalog_class()
                logger.debug("Loaded product catalog: %s", catalog_path)

    return _product_catalog


def reset_product_catalog() -> None:
    """Reset the cached catalog. Useful for testing."""
    global _product_catalog
    _product_catalog = None
