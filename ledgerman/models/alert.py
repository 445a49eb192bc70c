"""
StockAlert model — configurable min stock trigger per product.

Usage:
    # Set alert threshold
    StockAlert.objects.create(product_id=product.pk, min_quantity=10)

    # Check alerts (in a periodic task or after stock changes)
    from ledgerman.services.alerts import check_alerts
    triggered = check_alerts()
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class StockAlert(models.Model):
    """
    Configurable stock alert per product.

    When the balance quantity drops below min_quantity, the alert is
    considered triggered. A product never stocked counts as zero.
    """

    product_id = models.PositiveBigIntegerField(
        unique=True,
        verbose_name=_('ID do Produto'),
    )

    # Threshold
    min_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name=_('Quantidade Mínima'),
        help_text=_('Alerta dispara quando disponível < este valor'),
    )

    # Configuration
    is_active = models.BooleanField(
        default=True,
        verbose_name=_('Ativo'),
    )

    # Tracking
    last_triggered_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Último disparo'),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Criado em'))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Atualizado em'))

    class Meta:
        verbose_name = _('Alerta de Estoque')
        verbose_name_plural = _('Alertas de Estoque')
        indexes = [
            models.Index(fields=['is_active'], name='ledgerman_alert_active_idx'),
        ]

    def __str__(self) -> str:
        return f"Alert: #{self.product_id} < {self.min_quantity}"
