"""
Enums for Ledgerman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class MovementDirection(models.TextChoices):
    """Sign of a movement. Quantity itself is always a positive magnitude."""
    IN = 'in', _('Entrada')
    OUT = 'out', _('Saída')

    @property
    def inverse(self) -> 'MovementDirection':
        return MovementDirection.OUT if self == MovementDirection.IN else MovementDirection.IN


class MovementSource(models.TextChoices):
    """
    Workflow that originated a movement.

    PURCHASE:     Purchase reception                     → IN
    SALE_LOCAL:   Local delivery note                    → OUT
    SALE_EXPORT:  Export delivery note                   → OUT
    MANUAL_ENTRY: Manual stock entry                     → IN
    REVERSAL:     Cancellation of any of the above       → inverse of original
    """
    PURCHASE = 'purchase', _('Compra')
    SALE_LOCAL = 'sale_local', _('Venda local')
    SALE_EXPORT = 'sale_export', _('Venda exportação')
    MANUAL_ENTRY = 'manual_entry', _('Entrada manual')
    REVERSAL = 'reversal', _('Estorno')


# Direction implied by each non-reversal source
SOURCE_DIRECTIONS = {
    MovementSource.PURCHASE: MovementDirection.IN,
    MovementSource.MANUAL_ENTRY: MovementDirection.IN,
    MovementSource.SALE_LOCAL: MovementDirection.OUT,
    MovementSource.SALE_EXPORT: MovementDirection.OUT,
}
