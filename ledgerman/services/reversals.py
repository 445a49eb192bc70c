"""
Stock reversals — compensating movements for cancelled documents.

The original movements are never touched. A reversal is a new document
(the cancellation) whose movements point back at the original through
original_reference_type / original_reference_id.

Cost policy:
    - Reversing an OUT (sale cancelled): stock returns at the current
      average cost, average unchanged.
    - Reversing an IN (receipt cancelled): stock leaves at the cost it
      came in at, average recomputed with the IN formula.
"""

import logging
import uuid
from collections import defaultdict
from datetime import date
from decimal import Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce

from ledgerman.exceptions import StockError
from ledgerman.lines import StockLine, normalize_lines
from ledgerman.models.balance import Balance
from ledgerman.models.enums import MovementDirection, MovementSource
from ledgerman.models.movement import Movement
from ledgerman.services.movements import locked_transaction, post_movements

logger = logging.getLogger('ledgerman')


def _reversed_totals(reference_type: str, reference_id: str) -> dict[tuple[int, str], Decimal]:
    """(product_id, reversal direction) -> quantity already reversed."""
    rows = Movement.objects.reversals_of(reference_type, reference_id).values(
        'product_id', 'direction',
    ).annotate(total=Coalesce(Sum('quantity'), Decimal('0')))
    return {(row['product_id'], row['direction']): row['total'] for row in rows}


def _originals(reference_type: str, reference_id: str) -> dict[tuple[int, str], Movement]:
    """(product_id, direction) -> original movement of the document."""
    return {
        (movement.product_id, movement.direction): movement
        for movement in Movement.objects.for_reference(reference_type, reference_id).order_by('pk')
    }


class StockReversals:
    """Reversal (cancellation) methods."""

    @classmethod
    def reverse(cls, reference_type: str, reference_id, lines=None,
                cancellation_type: str = 'cancellation', cancellation_id=None,
                movement_date: date | None = None, notes: str = '',
                user=None, **metadata) -> list[int]:
        """
        Cancel a booked document, fully or partially.

        Args:
            reference_type / reference_id: The original document
            lines: (product_id, quantity) to cancel; None = everything
                not yet reversed
            cancellation_type / cancellation_id: The cancellation document
                (id generated when omitted)
            movement_date: Business date (None = today)

        Returns:
            Movement ids of the compensating movements

        Raises:
            StockError('REFERENCE_NOT_FOUND'): Original has no movements
            StockError('REVERSAL_EXCEEDS_ORIGINAL'): More than what is left
            StockError('NOTHING_TO_REVERSE'): Full reversal of a fully
                reversed document
            StockError('INSUFFICIENT_QUANTITY'): Cancelling a receipt whose
                stock has already left
            StockError('INVALID_LINES'): Partial line for a product the
                document booked in both directions

        Concurrency:
            - Balances locked before remaining quantities are computed, so
              two concurrent partial cancellations cannot both pass
        """
        reference_id = str(reference_id)
        cancellation_id = str(cancellation_id or uuid.uuid4().hex)
        if (cancellation_type, cancellation_id) == (reference_type, reference_id):
            raise StockError(
                'INVALID_LINES',
                'O estorno precisa de um documento próprio',
                reference_type=reference_type,
                reference_id=reference_id,
            )

        requested = None
        if lines is not None:
            requested = normalize_lines(lines, keep_cost=False)

        originals = _originals(reference_type, reference_id)
        if not originals:
            raise StockError(
                'REFERENCE_NOT_FOUND',
                reference_type=reference_type,
                reference_id=reference_id,
            )

        product_ids = sorted({product_id for product_id, _ in originals})
        notes = notes or f"Estorno de {reference_type} {reference_id}"

        with locked_transaction():
            list(Balance.objects.locked(product_ids))

            reversed_totals = _reversed_totals(reference_type, reference_id)

            def remaining(movement: Movement) -> Decimal:
                inverse = MovementDirection(movement.direction).inverse
                return movement.quantity - reversed_totals.get((movement.product_id, inverse), Decimal('0'))

            if requested is None:
                targets = [
                    (original, remaining(original))
                    for _, original in sorted(originals.items())
                    if remaining(original) > 0
                ]
                if not targets:
                    raise StockError(
                        'NOTHING_TO_REVERSE',
                        reference_type=reference_type,
                        reference_id=reference_id,
                    )
            else:
                targets = []
                for line in requested:
                    matches = [m for (pid, _), m in sorted(originals.items()) if pid == line.product_id]
                    if len(matches) > 1:
                        # A (product_id, quantity) line cannot say which direction to cancel
                        raise StockError(
                            'INVALID_LINES',
                            'Produto lançado em ambas as direções; estorne o documento inteiro',
                            product_id=line.product_id,
                            reference_type=reference_type,
                            reference_id=reference_id,
                        )
                    original = matches[0] if matches else None
                    left = remaining(original) if original else Decimal('0')
                    if line.quantity > left:
                        raise StockError(
                            'REVERSAL_EXCEEDS_ORIGINAL',
                            product_id=line.product_id,
                            original=original.quantity if original else Decimal('0'),
                            remaining=left,
                            requested=line.quantity,
                        )
                    targets.append((original, line.quantity))

            by_direction: dict[MovementDirection, list[StockLine]] = defaultdict(list)
            for original, quantity in targets:
                direction = MovementDirection(original.direction).inverse
                by_direction[direction].append(StockLine(
                    product_id=original.product_id,
                    quantity=quantity,
                    # IN reversal restores at current average, OUT reversal removes at original cost
                    unit_cost=original.unit_cost if direction == MovementDirection.OUT else None,
                ))

            movement_ids = []
            for direction in sorted(by_direction):
                movement_ids.extend(post_movements(
                    by_direction[direction],
                    direction,
                    MovementSource.REVERSAL,
                    cancellation_type,
                    cancellation_id,
                    movement_date=movement_date,
                    notes=notes,
                    user=user,
                    original_reference=(reference_type, reference_id),
                    metadata=metadata,
                ))

        logger.info(
            "stock.reverse",
            extra={
                "reference": f"{reference_type}:{reference_id}",
                "cancellation": f"{cancellation_type}:{cancellation_id}",
                "full": requested is None,
                "movement_ids": movement_ids,
            },
        )
        return movement_ids
