"""
Stock queries — read-only operations.

All methods are classmethod on Stock and use no locking.
"""

import logging
from decimal import Decimal

from django.db.models import DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import Coalesce

from ledgerman.adapters.catalog import get_product_catalog
from ledgerman.models.balance import Balance
from ledgerman.models.enums import MovementDirection
from ledgerman.models.movement import Movement

logger = logging.getLogger('ledgerman')

ZERO = Decimal('0')


def _signed_totals(product_id=None) -> dict[int, Decimal]:
    """product_id -> signed sum of movement quantities."""
    qs = Movement.objects.all()
    if product_id is not None:
        qs = qs.filter(product_id=product_id)
    rows = qs.values('product_id').annotate(
        t_in=Coalesce(Sum('quantity', filter=Q(direction=MovementDirection.IN)), ZERO),
        t_out=Coalesce(Sum('quantity', filter=Q(direction=MovementDirection.OUT)), ZERO),
    ).order_by('product_id')
    return {row['product_id']: row['t_in'] - row['t_out'] for row in rows}


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def balance(cls, product_id) -> Balance | None:
        """Balance row for a product, None if it never entered stock."""
        return Balance.objects.for_product(product_id).first()

    @classmethod
    def quantity(cls, product_id) -> Decimal:
        """Quantity on hand — O(1) cache read. 0 if never stocked."""
        balance = cls.balance(product_id)
        return balance.quantity if balance else ZERO

    @classmethod
    def average_cost(cls, product_id) -> Decimal:
        """Current weighted average unit cost. 0 if never stocked."""
        balance = cls.balance(product_id)
        return balance.average_cost if balance else ZERO

    @classmethod
    def default_cost(cls, product_id) -> Decimal | None:
        """Catalog cost for form pre-fill. Not used by the ledger."""
        return get_product_catalog().default_cost(product_id)

    @classmethod
    def list_by_product(cls, product_id):
        """Movements of a product, oldest first."""
        return Movement.objects.for_product(product_id).order_by('created_at', 'pk')

    @classmethod
    def list_by_reference(cls, reference_type: str, reference_id):
        """Movements booked by a document, in product order."""
        return Movement.objects.for_reference(reference_type, reference_id).order_by('product_id', 'pk')

    @classmethod
    def list_reversals(cls, reference_type: str, reference_id):
        """Compensating movements pointing back at a document."""
        return Movement.objects.reversals_of(reference_type, reference_id).order_by('created_at', 'pk')

    @classmethod
    def reversed_quantity(cls, reference_type: str, reference_id, product_id) -> Decimal:
        """Quantity of a document line already cancelled."""
        return cls.list_reversals(reference_type, reference_id).filter(
            product_id=product_id,
        ).aggregate(t=Coalesce(Sum('quantity'), ZERO))['t']

    @classmethod
    def list_balances(cls, include_empty: bool = False):
        """Balances, optionally including products at zero."""
        qs = Balance.objects.all()
        if not include_empty:
            qs = qs.in_stock()
        return qs.annotate(
            value=ExpressionWrapper(
                F('quantity') * F('average_cost'),
                output_field=DecimalField(max_digits=30, decimal_places=7),
            )
        )

    @classmethod
    def summary(cls) -> dict:
        """
        Stock overview.

        Returns:
            {'total_value', 'total_products', 'out_of_stock'}
        """
        result = Balance.objects.aggregate(
            total_value=Coalesce(
                Sum(
                    F('quantity') * F('average_cost'),
                    output_field=DecimalField(max_digits=30, decimal_places=7),
                ),
                ZERO,
                output_field=DecimalField(max_digits=30, decimal_places=7),
            ),
        )
        return {
            'total_value': result['total_value'],
            'total_products': Balance.objects.count(),
            'out_of_stock': Balance.objects.empty().count(),
        }

    @classmethod
    def ledger_quantity(cls, product_id) -> Decimal:
        """Signed sum of movements for a product (audit path, O(N))."""
        return _signed_totals(product_id).get(int(product_id), ZERO)

    @classmethod
    def reconcile(cls, product_id=None) -> list[dict]:
        """
        Compare every balance with the signed sum of its movements.

        Never writes: the coordinator is the only balance writer.

        Returns:
            List of {'product_id', 'balance', 'ledger', 'diff'} for
            mismatching products (empty = consistent)
        """
        ledger = _signed_totals(product_id)
        balances = Balance.objects.all()
        if product_id is not None:
            balances = balances.for_product(product_id)
        cached = dict(balances.values_list('product_id', 'quantity'))

        mismatches = []
        for pid in sorted(set(ledger) | set(cached)):
            expected = ledger.get(pid, ZERO)
            actual = cached.get(pid, ZERO)
            if expected != actual:
                mismatch = {
                    'product_id': pid,
                    'balance': actual,
                    'ledger': expected,
                    'diff': expected - actual,
                }
                mismatches.append(mismatch)
                logger.warning(
                    "stock.reconcile.mismatch",
                    extra={k: str(v) for k, v in mismatch.items()},
                )
        return mismatches
