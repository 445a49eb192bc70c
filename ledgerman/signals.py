"""
Ledgerman signals.

stock_changed is sent once per committed document, after the enclosing
transaction commits (never from inside the locked section).

Usage:
    from django.dispatch import receiver
    from ledgerman.signals import stock_changed

    @receiver(stock_changed)
    def refresh_invoice_status(sender, movement_ids, reference_type, reference_id, **kwargs):
        ...

Arguments:
    movement_ids: ids of the movements written
    product_ids: products touched
    reference_type / reference_id: originating document
    source: MovementSource value
"""

from django.dispatch import Signal

stock_changed = Signal()
