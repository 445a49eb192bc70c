"""
Movement model — Immutable ledger of stock events.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from ledgerman.exceptions import StockError
from ledgerman.models.enums import MovementDirection, MovementSource


class MovementQuerySet(models.QuerySet):
    """QuerySet with helper methods for Movement queries."""

    def for_product(self, product_id):
        return self.filter(product_id=product_id)

    def for_reference(self, reference_type, reference_id):
        return self.filter(reference_type=reference_type, reference_id=str(reference_id))

    def reversals_of(self, reference_type, reference_id):
        """Reversal movements pointing back at an original document."""
        return self.filter(
            source=MovementSource.REVERSAL,
            original_reference_type=reference_type,
            original_reference_id=str(reference_id),
        )


class Movement(models.Model):
    """
    Immutable record of a stock event.

    Rules:
    - NEVER update() or delete()
    - Corrections are new Movements (source=reversal) pointing back
      at the original document through original_reference_*
    - quantity is always positive; direction carries the sign

    Balance is updated in the same transaction by the stock service.
    """

    product_id = models.PositiveBigIntegerField(
        db_index=True,
        verbose_name=_('ID do Produto'),
    )

    direction = models.CharField(
        max_length=3,
        choices=MovementDirection.choices,
        verbose_name=_('Direção'),
    )
    source = models.CharField(
        max_length=20,
        choices=MovementSource.choices,
        verbose_name=_('Origem'),
    )

    # Originating document (delivery note, purchase order, stock entry, cancellation)
    reference_type = models.CharField(max_length=50, verbose_name=_('Tipo de Referência'))
    reference_id = models.CharField(max_length=64, verbose_name=_('ID da Referência'))

    # For reversals: the document being cancelled
    original_reference_type = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Tipo do Documento Estornado'),
    )
    original_reference_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        verbose_name=_('ID do Documento Estornado'),
    )

    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name=_('Quantidade'),
    )
    unit_cost = models.DecimalField(
        max_digits=15,
        decimal_places=4,
        verbose_name=_('Custo Unitário'),
        help_text=_('Saídas são valorizadas ao custo médio do momento'),
    )

    movement_date = models.DateField(default=timezone.localdate, verbose_name=_('Data do Movimento'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Usuário'),
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))

    objects = MovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimento')
        verbose_name_plural = _('Movimentos')
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['reference_type', 'reference_id', 'product_id', 'direction'],
                name='ledgerman_unique_movement_reference',
            ),
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name='ledgerman_movement_quantity_positive',
            ),
            models.CheckConstraint(
                condition=Q(unit_cost__gte=0),
                name='ledgerman_movement_cost_non_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['product_id', 'movement_date'], name='ledgerman_mv_prod_date_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='ledgerman_mv_reference_idx'),
            models.Index(fields=['original_reference_type', 'original_reference_id'], name='ledgerman_mv_original_idx'),
        ]

    @property
    def signed_quantity(self):
        return self.quantity if self.direction == MovementDirection.IN else -self.quantity

    @property
    def is_reversal(self) -> bool:
        return self.source == MovementSource.REVERSAL

    def save(self, *args, **kwargs):
        """Insert only — a committed movement is never rewritten."""
        if self.pk:
            raise StockError(
                'IMMUTABLE_MOVEMENT',
                "Movimentos são imutáveis. Para corrigir, lance um estorno.",
                movement_id=self.pk,
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion — movements are immutable."""
        raise StockError(
            'IMMUTABLE_MOVEMENT',
            "Movimentos são imutáveis. Para estornar, lance um movimento inverso.",
            movement_id=self.pk,
        )

    def __str__(self) -> str:
        signal = '+' if self.direction == MovementDirection.IN else '-'
        return f"#{self.product_id} {signal}{self.quantity} | {self.reference_type}:{self.reference_id}"
