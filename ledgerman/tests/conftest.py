"""
Pytest fixtures for Ledgerman tests.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from ledgerman import stock
from ledgerman.adapters import reset_product_catalog
from ledgerman.tests.catalog.models import Product


User = get_user_model()


@pytest.fixture(autouse=True)
def fresh_catalog():
    """Catalog adapter is cached per process; reload it for every test."""
    reset_product_catalog()
    yield
    reset_product_catalog()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='testuser',
        password='testpass123'
    )


@pytest.fixture
def product(db):
    """Create a test product."""
    return Product.objects.create(
        code='CAF-001',
        name='Café Arábica 1kg',
        purchase_price=Decimal('95.00'),
    )


@pytest.fixture
def other_product(db):
    """Create a second test product."""
    return Product.objects.create(
        code='ACU-002',
        name='Açúcar 5kg',
        purchase_price=Decimal('20.00'),
    )


@pytest.fixture
def stocked(product):
    """Product with 20 units on hand at an average of 150."""
    stock.apply([(product.pk, Decimal('10'), Decimal('100'))], 'purchase', 'purchase_order', 'PO-1')
    stock.apply([(product.pk, Decimal('10'), Decimal('200'))], 'purchase', 'purchase_order', 'PO-2')
    return product


@pytest.fixture
def today():
    """Return today's date."""
    return timezone.localdate()


@pytest.fixture
def yesterday():
    """Return yesterday's date."""
    return timezone.localdate() - timedelta(days=1)
