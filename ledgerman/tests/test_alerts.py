"""
Tests for min stock alerts.
"""

from decimal import Decimal

import pytest

from ledgerman import stock
from ledgerman.models import StockAlert
from ledgerman.services.alerts import check_alerts


pytestmark = pytest.mark.django_db


class TestCheckAlerts:

    def test_below_minimum_triggers(self, stocked):
        alert = StockAlert.objects.create(product_id=stocked.pk, min_quantity=Decimal('25'))

        triggered = check_alerts()

        assert triggered == [(alert, Decimal('20'))]
        alert.refresh_from_db()
        assert alert.last_triggered_at is not None

    def test_at_minimum_does_not_trigger(self, stocked):
        StockAlert.objects.create(product_id=stocked.pk, min_quantity=Decimal('20'))

        assert check_alerts() == []

    def test_never_stocked_counts_as_zero(self, product):
        StockAlert.objects.create(product_id=product.pk, min_quantity=Decimal('1'))

        [(alert, quantity)] = check_alerts()

        assert alert.product_id == product.pk
        assert quantity == Decimal('0')

    def test_inactive_ignored(self, stocked):
        StockAlert.objects.create(product_id=stocked.pk, min_quantity=Decimal('99'), is_active=False)

        assert check_alerts() == []

    def test_filter_by_product(self, stocked, other_product):
        StockAlert.objects.create(product_id=stocked.pk, min_quantity=Decimal('99'))
        StockAlert.objects.create(product_id=other_product.pk, min_quantity=Decimal('1'))

        triggered = check_alerts(other_product.pk)

        assert [a.product_id for a, _ in triggered] == [other_product.pk]

    def test_triggers_after_sale(self, stocked, caplog):
        StockAlert.objects.create(product_id=stocked.pk, min_quantity=Decimal('10'))
        assert check_alerts() == []

        stock.apply([(stocked.pk, 15)], 'sale_local', 'delivery_note', 'BL-1')

        with caplog.at_level('WARNING', logger='ledgerman'):
            triggered = check_alerts()

        assert triggered[0][1] == Decimal('5')
        assert 'stock.alert.triggered' in caplog.text
