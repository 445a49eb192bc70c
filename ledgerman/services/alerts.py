"""
Stock alerts — check and trigger min stock alerts.

Usage:
    from ledgerman.services.alerts import check_alerts

    # Run periodically (cron) or from a stock_changed receiver
    triggered = check_alerts()
    # Returns list of (StockAlert, current_quantity) tuples
"""

import logging
from decimal import Decimal

from django.utils import timezone

from ledgerman.models.alert import StockAlert
from ledgerman.models.balance import Balance

logger = logging.getLogger('ledgerman')


def check_alerts(product_id=None) -> list[tuple[StockAlert, Decimal]]:
    """
    Check all active alerts and return those that are triggered.

    An alert is triggered when the balance quantity < min_quantity.

    Args:
        product_id: Optional product to check alerts for (None = all).

    Returns:
        List of (alert, current_quantity) tuples for triggered alerts.
    """
    qs = StockAlert.objects.filter(is_active=True).order_by('product_id')
    if product_id is not None:
        qs = qs.filter(product_id=product_id)

    alerts = list(qs)
    quantities = dict(
        Balance.objects.filter(
            product_id__in=[alert.product_id for alert in alerts],
        ).values_list('product_id', 'quantity')
    )

    triggered = []
    now = timezone.now()

    for alert in alerts:
        quantity = quantities.get(alert.product_id, Decimal('0'))

        if quantity < alert.min_quantity:
            alert.last_triggered_at = now
            alert.save(update_fields=['last_triggered_at'])
            triggered.append((alert, quantity))
            logger.warning(
                "stock.alert.triggered",
                extra={
                    "alert_id": alert.pk,
                    "product_id": alert.product_id,
                    "min_quantity": str(alert.min_quantity),
                    "quantity": str(quantity),
                },
            )

    return triggered
