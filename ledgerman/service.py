"""
Stock Service — The single public interface for all stock operations.

Usage:
    from ledgerman import stock, StockError

    stock.apply([(cafe.pk, 10, '12.50')], 'purchase', 'purchase_order', 'BC-7')
    stock.apply([(cafe.pk, 4)], 'sale_local', 'delivery_note', 'BL-42')
    stock.reverse('delivery_note', 'BL-42', [(cafe.pk, 1)])
    stock.quantity(cafe.pk)  # 7
"""

import logging
import time

from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import StockError
from ledgerman.services.movements import StockMovements
from ledgerman.services.queries import StockQueries
from ledgerman.services.reversals import StockReversals

logger = logging.getLogger('ledgerman')


class Stock(StockQueries, StockMovements, StockReversals):
    """
    Single interface for all stock operations.

    Parameter convention: (lines, source, reference_type, reference_id, ...)
    Follows the document: "Delivery note BL-42 takes 4 coffees out"

    IMPORTANT: All state-changing methods use atomic transactions
    with per-product row locks. See each method's docstring.
    """

    @classmethod
    def retrying(cls, operation, *args, attempts: int | None = None,
                 backoff: float | None = None, **kwargs):
        """
        Run a whole submission, retrying while it fails with BUSY.

        Only retryable errors are retried; everything else propagates on
        the first failure. Do not call inside an outer transaction.atomic():
        a retry needs a fresh transaction.

        Usage:
            stock.retrying(stock.apply, lines, 'sale_local', 'delivery_note', 'BL-42')
        """
        attempts = attempts or ledgerman_settings.RETRY_ATTEMPTS
        backoff = ledgerman_settings.RETRY_BACKOFF_SECONDS if backoff is None else backoff

        for attempt in range(1, attempts + 1):
            try:
                return operation(*args, **kwargs)
            except StockError as e:
                if not e.retryable or attempt >= attempts:
                    raise
                logger.info(
                    "stock.retry",
                    extra={"attempt": attempt, "code": e.code},
                )
                time.sleep(backoff * attempt)
