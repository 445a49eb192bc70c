"""
Tests for stock.apply() — the transaction coordinator.
"""

from decimal import Decimal

import pytest
from django.db import transaction

from ledgerman import StockError, StockLine, stock
from ledgerman.models import Balance, Movement, MovementDirection, MovementSource
from ledgerman.signals import stock_changed
from ledgerman.tests.catalog.models import Product


pytestmark = pytest.mark.django_db


class TestApplyIncoming:
    """Purchases and manual entries."""

    def test_first_receipt_creates_balance(self, product, today):
        """Balance is created lazily on first entry."""
        assert stock.balance(product.pk) is None

        ids = stock.apply([(product.pk, 10, '100')], 'purchase', 'purchase_order', 'PO-1')

        balance = stock.balance(product.pk)
        assert balance.quantity == Decimal('10')
        assert balance.average_cost == Decimal('100')
        assert balance.last_movement_date == today
        assert len(ids) == 1

        movement = Movement.objects.get(pk=ids[0])
        assert movement.direction == MovementDirection.IN
        assert movement.source == MovementSource.PURCHASE
        assert movement.reference_type == 'purchase_order'
        assert movement.reference_id == 'PO-1'
        assert movement.unit_cost == Decimal('100')

    def test_average_cost_correctness(self, stocked):
        """IN 10 @ 100, IN 10 @ 200, OUT 5 → 15 @ 150."""
        assert stock.quantity(stocked.pk) == Decimal('20')
        assert stock.average_cost(stocked.pk) == Decimal('150')

        stock.apply([(stocked.pk, 5)], 'sale_local', 'delivery_note', 'BL-1')

        assert stock.quantity(stocked.pk) == Decimal('15')
        assert stock.average_cost(stocked.pk) == Decimal('150')

    def test_manual_entry_is_incoming(self, product):
        """manual_entry books an IN movement."""
        stock.apply([(product.pk, '2.5', '40')], 'manual_entry', 'stock_entry', 7)

        movement = stock.list_by_reference('stock_entry', 7).get()
        assert movement.direction == MovementDirection.IN
        assert movement.quantity == Decimal('2.5')
        assert stock.quantity(product.pk) == Decimal('2.5')

    def test_incoming_requires_cost(self, product):
        """IN lines without unit_cost are rejected before any write."""
        with pytest.raises(StockError) as exc:
            stock.apply([(product.pk, 10)], 'purchase', 'purchase_order', 'PO-1')

        assert exc.value.code == 'INVALID_COST'
        assert not Balance.objects.exists()

    def test_accepts_dicts_and_stock_lines(self, product, other_product):
        """Lines may be dicts or StockLine objects."""
        stock.apply(
            [
                {'product_id': product.pk, 'quantity': '3', 'unit_cost': '10'},
                StockLine(product_id=other_product.pk, quantity=Decimal('4'), unit_cost=Decimal('5')),
            ],
            'purchase', 'purchase_order', 'PO-9',
        )

        assert stock.quantity(product.pk) == Decimal('3')
        assert stock.quantity(other_product.pk) == Decimal('4')


class TestApplyOutgoing:
    """Local and export sales."""

    def test_out_records_current_average(self, stocked):
        """OUT movement is costed at the average, for COGS."""
        ids = stock.apply([(stocked.pk, 5, '999')], 'sale_export', 'delivery_note', 'BL-2')

        movement = Movement.objects.get(pk=ids[0])
        assert movement.direction == MovementDirection.OUT
        assert movement.source == MovementSource.SALE_EXPORT
        assert movement.unit_cost == Decimal('150')

    def test_insufficient_stock_reports_product(self, stocked):
        """Error carries product, available and requested."""
        with pytest.raises(StockError) as exc:
            stock.apply([(stocked.pk, 21)], 'sale_local', 'delivery_note', 'BL-3')

        assert exc.value.code == 'INSUFFICIENT_QUANTITY'
        assert exc.value.kind == 'business'
        assert exc.value.product_id == stocked.pk
        assert exc.value.available == Decimal('20')
        assert exc.value.requested == Decimal('21')
        assert stock.quantity(stocked.pk) == Decimal('20')

    def test_out_never_stocked(self, product):
        """Selling a product that never entered stock is an integrity error."""
        with pytest.raises(StockError) as exc:
            stock.apply([(product.pk, 1)], 'sale_local', 'delivery_note', 'BL-4')

        assert exc.value.code == 'BALANCE_NOT_FOUND'
        assert exc.value.kind == 'integrity'
        assert not Movement.objects.filter(reference_id='BL-4').exists()

    def test_sell_to_zero(self, stocked):
        """Quantity may reach exactly zero."""
        stock.apply([(stocked.pk, 20)], 'sale_local', 'delivery_note', 'BL-5')

        assert stock.quantity(stocked.pk) == Decimal('0')
        assert stock.average_cost(stocked.pk) == Decimal('150')


class TestAtomicity:
    """All lines land or none do."""

    def test_one_bad_line_aborts_document(self, stocked, other_product):
        """Insufficient stock on the second product rolls back the first."""
        stock.apply([(other_product.pk, 2, '20')], 'purchase', 'purchase_order', 'PO-3')

        with pytest.raises(StockError) as exc:
            stock.apply(
                [(stocked.pk, 5), (other_product.pk, 3)],
                'sale_local', 'delivery_note', 'BL-6',
            )

        assert exc.value.product_id == other_product.pk
        assert stock.quantity(stocked.pk) == Decimal('20')
        assert stock.quantity(other_product.pk) == Decimal('2')
        assert not Movement.objects.filter(reference_id='BL-6').exists()

    def test_document_row_rolls_back_with_stock(self, stocked):
        """Caller's document and stock effect share one transaction."""
        with pytest.raises(StockError):
            with transaction.atomic():
                Product.objects.create(code='DOC-1', name='stands in for a delivery note')
                stock.apply([(stocked.pk, 50)], 'sale_local', 'delivery_note', 'BL-7')

        assert not Product.objects.filter(code='DOC-1').exists()
        assert stock.quantity(stocked.pk) == Decimal('20')

    def test_caller_failure_rolls_back_stock(self, stocked):
        """An error after the stock call undoes the stock effect."""
        with pytest.raises(RuntimeError):
            with transaction.atomic():
                stock.apply([(stocked.pk, 5)], 'sale_local', 'delivery_note', 'BL-8')
                raise RuntimeError('document save failed')

        assert stock.quantity(stocked.pk) == Decimal('20')
        assert not Movement.objects.filter(reference_id='BL-8').exists()


class TestIdempotency:
    """Same document submitted twice."""

    def test_resubmission_rejected(self, stocked):
        """Second submission is DUPLICATE_REFERENCE and changes nothing."""
        ids = stock.apply([(stocked.pk, 5)], 'sale_local', 'delivery_note', 'BL-9')

        with pytest.raises(StockError) as exc:
            stock.apply([(stocked.pk, 5)], 'sale_local', 'delivery_note', 'BL-9')

        assert exc.value.code == 'DUPLICATE_REFERENCE'
        assert exc.value.kind == 'idempotency'
        assert exc.value.data['movement_ids'] == ids
        assert stock.quantity(stocked.pk) == Decimal('15')

    def test_integer_and_string_ids_are_the_same_document(self, product):
        """Reference ids are stored as text."""
        stock.apply([(product.pk, 1, '1')], 'purchase', 'purchase_order', 12)

        with pytest.raises(StockError) as exc:
            stock.apply([(product.pk, 1, '1')], 'purchase', 'purchase_order', '12')

        assert exc.value.code == 'DUPLICATE_REFERENCE'


class TestConsolidation:
    """Repeated products within one document."""

    def test_same_product_lines_merge(self, stocked):
        """Two OUT lines for one product become one movement."""
        ids = stock.apply([(stocked.pk, 2), (stocked.pk, 3)], 'sale_local', 'delivery_note', 'BL-10')

        assert len(ids) == 1
        assert Movement.objects.get(pk=ids[0]).quantity == Decimal('5')
        assert stock.quantity(stocked.pk) == Decimal('15')

    def test_same_product_incoming_blends_cost(self, product):
        """Merged IN lines give the same average as sequential receipts."""
        stock.apply(
            [(product.pk, 10, '100'), (product.pk, 10, '200')],
            'purchase', 'purchase_order', 'PO-4',
        )

        assert stock.quantity(product.pk) == Decimal('20')
        assert stock.average_cost(product.pk) == Decimal('150')

    def test_movements_in_product_order(self, product, other_product):
        """Lines are processed in ascending product id order."""
        ids = stock.apply(
            [(other_product.pk, 1, '1'), (product.pk, 1, '1')],
            'purchase', 'purchase_order', 'PO-5',
        )

        product_ids = [Movement.objects.get(pk=pk).product_id for pk in ids]
        assert product_ids == sorted(product_ids)


class TestValidation:
    """Rejected before any lock is taken."""

    @pytest.mark.parametrize('lines', [[], None, 'abc', [(1,)], [('x', 1)], [(1, 'abc')]])
    def test_malformed_lines(self, product, lines):
        with pytest.raises(StockError) as exc:
            stock.apply(lines, 'sale_local', 'delivery_note', 'BL-11')

        assert exc.value.kind == 'validation'

    @pytest.mark.parametrize('quantity', [0, -1, '0.0001'])
    def test_non_positive_or_too_precise_quantity(self, stocked, quantity):
        with pytest.raises(StockError) as exc:
            stock.apply([(stocked.pk, quantity)], 'sale_local', 'delivery_note', 'BL-12')

        assert exc.value.code == 'INVALID_QUANTITY'

    @pytest.mark.parametrize('quantity', ['1000000000000', '1e30'])
    def test_quantity_beyond_column_limit(self, product, quantity):
        with pytest.raises(StockError) as exc:
            stock.apply([(product.pk, quantity, '1')], 'purchase', 'purchase_order', 'PO-13')

        assert exc.value.code == 'INVALID_QUANTITY'
        assert not Balance.objects.exists()

    def test_cost_beyond_column_limit(self, product):
        with pytest.raises(StockError) as exc:
            stock.apply([(product.pk, 1, '100000000000')], 'purchase', 'purchase_order', 'PO-14')

        assert exc.value.code == 'INVALID_COST'
        assert not Balance.objects.exists()

    def test_balance_growing_beyond_limit(self, product):
        """Each line fits but the resulting balance would not."""
        stock.apply([(product.pk, '999999999999', '1')], 'purchase', 'purchase_order', 'PO-15')

        with pytest.raises(StockError) as exc:
            stock.apply([(product.pk, 1, '1')], 'purchase', 'purchase_order', 'PO-16')

        assert exc.value.code == 'INVALID_QUANTITY'
        assert exc.value.product_id == product.pk
        balance = Balance.objects.get(product_id=product.pk)
        assert balance.quantity == Decimal('999999999999')
        assert not stock.list_by_reference('purchase_order', 'PO-16').exists()

    def test_unknown_product(self, db):
        """Products missing from the catalog are rejected."""
        with pytest.raises(StockError) as exc:
            stock.apply([(999999, 1, '1')], 'purchase', 'purchase_order', 'PO-6')

        assert exc.value.code == 'PRODUCT_NOT_FOUND'
        assert exc.value.product_id == 999999
        assert not Balance.objects.exists()

    def test_unknown_source(self, product):
        with pytest.raises(StockError) as exc:
            stock.apply([(product.pk, 1, '1')], 'gift', 'purchase_order', 'PO-7')

        assert exc.value.code == 'INVALID_SOURCE'

    def test_reversal_source_refused(self, product):
        """Reversals only go through stock.reverse()."""
        with pytest.raises(StockError) as exc:
            stock.apply([(product.pk, 1, '1')], 'reversal', 'cancellation', 'C-1')

        assert exc.value.code == 'INVALID_SOURCE'

    def test_reference_required(self, product):
        with pytest.raises(StockError) as exc:
            stock.apply([(product.pk, 1, '1')], 'purchase', 'purchase_order', '')

        assert exc.value.code == 'INVALID_LINES'


class TestLedgerImmutability:
    """Movements are never rewritten."""

    def test_save_existing_movement_refused(self, stocked):
        movement = stock.list_by_product(stocked.pk).first()
        movement.quantity = Decimal('1')

        with pytest.raises(StockError) as exc:
            movement.save()

        assert exc.value.code == 'IMMUTABLE_MOVEMENT'

    def test_delete_movement_refused(self, stocked):
        movement = stock.list_by_product(stocked.pk).first()

        with pytest.raises(StockError) as exc:
            movement.delete()

        assert exc.value.code == 'IMMUTABLE_MOVEMENT'
        assert Movement.objects.filter(pk=movement.pk).exists()


class TestMetadata:
    """Business date, notes, user."""

    def test_backdated_movement(self, product, yesterday, today, user):
        stock.apply([(product.pk, 1, '1')], 'purchase', 'purchase_order', 'PO-8',
                    movement_date=today)
        ids = stock.apply([(product.pk, 1, '1')], 'manual_entry', 'stock_entry', 'SE-1',
                          movement_date=yesterday, notes='Inventário', user=user)

        movement = Movement.objects.get(pk=ids[0])
        assert movement.movement_date == yesterday
        assert movement.notes == 'Inventário'
        assert movement.user == user
        # last_movement_date never goes backwards
        assert stock.balance(product.pk).last_movement_date == today


class TestStockChangedSignal:
    """Hook for out-of-scope consumers."""

    def test_sent_after_commit(self, stocked, django_capture_on_commit_callbacks):
        received = []

        def receiver(sender, **kwargs):
            received.append(kwargs)

        stock_changed.connect(receiver)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                ids = stock.apply([(stocked.pk, 1)], 'sale_local', 'delivery_note', 'BL-13')
        finally:
            stock_changed.disconnect(receiver)

        assert len(received) == 1
        assert received[0]['movement_ids'] == ids
        assert received[0]['reference_id'] == 'BL-13'
        assert received[0]['source'] == MovementSource.SALE_LOCAL

    def test_not_sent_on_failure(self, stocked, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            with pytest.raises(StockError):
                stock.apply([(stocked.pk, 100)], 'sale_local', 'delivery_note', 'BL-14')

        assert callbacks == []
