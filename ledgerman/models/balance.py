"""
Balance model — Current quantity and average cost per product.
"""

from decimal import Decimal

from django.db import models
from django.db.models import Q, Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _


class BalanceQuerySet(models.QuerySet):
    """QuerySet with helper methods for Balance queries."""

    def for_product(self, product_id):
        return self.filter(product_id=product_id)

    def in_stock(self):
        return self.filter(quantity__gt=0)

    def empty(self):
        return self.filter(quantity__lte=0)

    def locked(self, product_ids):
        """
        Lock balance rows for update in ascending product_id order.

        Must run inside transaction.atomic(). Fixed ordering avoids
        deadlocks between documents touching the same products.
        """
        return self.select_for_update().filter(
            product_id__in=product_ids,
        ).order_by('product_id')


class Balance(models.Model):
    """
    Running stock balance of one product.

    Performance:
    - quantity is a cache of the signed sum of Movements
    - Read is O(1), not O(N)
    - Written only by the stock service, under a row lock

    Created lazily the first time the product enters stock.
    """

    product_id = models.PositiveBigIntegerField(
        unique=True,
        verbose_name=_('ID do Produto'),
    )

    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade Disponível'),
    )
    average_cost = models.DecimalField(
        max_digits=15,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Custo Médio'),
    )

    last_movement_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Último Movimento'),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Atualizado em'))

    objects = BalanceQuerySet.as_manager()

    class Meta:
        verbose_name = _('Saldo')
        verbose_name_plural = _('Saldos')
        ordering = ['product_id']
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name='ledgerman_balance_quantity_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(average_cost__gte=0),
                name='ledgerman_balance_cost_non_negative',
            ),
        ]

    @property
    def stock_value(self) -> Decimal:
        """Value of the quantity on hand at the average cost."""
        return self.quantity * self.average_cost

    def ledger_quantity(self) -> Decimal:
        """Signed sum of all movements for this product (audit path, O(N))."""
        from ledgerman.models.movement import Movement

        totals = Movement.objects.filter(product_id=self.product_id).aggregate(
            t_in=Coalesce(Sum('quantity', filter=Q(direction='in')), Decimal('0')),
            t_out=Coalesce(Sum('quantity', filter=Q(direction='out')), Decimal('0')),
        )
        return totals['t_in'] - totals['t_out']

    def __str__(self) -> str:
        return f"#{self.product_id}: {self.quantity} @ {self.average_cost}"
