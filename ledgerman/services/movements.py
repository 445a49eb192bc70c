"""
Stock movements — the transaction coordinator.

Every state-changing path goes through post_movements(): one atomic
block, balance rows locked in product_id order, costing applied, ledger
row appended, balance rewritten. Either the whole document lands or
nothing does.

Callers persisting their own document row wrap both in one atomic:

    with transaction.atomic():
        note = DeliveryNote.objects.create(...)
        stock.apply(note.lines(), 'sale_local', 'delivery_note', note.pk)
"""

import logging
from contextlib import contextmanager
from datetime import date

from django.db import IntegrityError, OperationalError, connection, transaction
from django.utils import timezone

from ledgerman import costing
from ledgerman.adapters.catalog import get_product_catalog
from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import StockError
from ledgerman.lines import StockLine, normalize_lines
from ledgerman.models.balance import Balance
from ledgerman.models.enums import SOURCE_DIRECTIONS, MovementDirection, MovementSource
from ledgerman.models.movement import Movement
from ledgerman.signals import stock_changed

logger = logging.getLogger('ledgerman')

# SQLSTATEs meaning "try again later"
LOCK_SQLSTATES = {
    '55P03',  # lock_not_available
    '40001',  # serialization_failure
    '40P01',  # deadlock_detected
}


def _is_lock_error(exc: OperationalError) -> bool:
    cause = exc.__cause__
    sqlstate = getattr(cause, 'sqlstate', None) or getattr(cause, 'pgcode', None)
    if sqlstate in LOCK_SQLSTATES:
        return True
    # SQLite / MySQL report contention by message only
    message = str(exc).lower()
    return 'locked' in message or 'lock wait timeout' in message or 'deadlock' in message


def _set_lock_timeout():
    timeout = int(ledgerman_settings.LOCK_TIMEOUT_MS or 0)
    if timeout > 0 and connection.vendor == 'postgresql':
        with connection.cursor() as cursor:
            cursor.execute(f"SET LOCAL lock_timeout = {timeout}")


@contextmanager
def locked_transaction():
    """
    Atomic block with a bounded lock wait.

    Lock timeouts, deadlocks and serialization failures surface as
    StockError('BUSY') after the block has rolled back.
    """
    try:
        with transaction.atomic():
            _set_lock_timeout()
            yield
    except OperationalError as exc:
        if not _is_lock_error(exc):
            raise
        logger.warning("stock.busy", extra={"error": str(exc)})
        raise StockError('BUSY', reason=str(exc)) from exc


def _coerce_source(source) -> MovementSource:
    try:
        return MovementSource(source)
    except ValueError:
        raise StockError('INVALID_SOURCE', source=str(source)) from None


def _check_products(product_ids: list[int]):
    if not ledgerman_settings.VALIDATE_PRODUCTS:
        return
    existing = get_product_catalog().existing(product_ids)
    missing = [pid for pid in product_ids if pid not in existing]
    if missing:
        raise StockError('PRODUCT_NOT_FOUND', product_id=missing[0], missing=missing)


def _existing_movement_ids(reference_type, reference_id, direction, product_ids) -> list[int]:
    return list(
        Movement.objects.for_reference(reference_type, reference_id).filter(
            direction=direction,
            product_id__in=product_ids,
        ).order_by('pk').values_list('pk', flat=True)
    )


def post_movements(lines: list[StockLine], direction: MovementDirection, source: MovementSource,
                   reference_type: str, reference_id: str, movement_date: date | None = None,
                   notes: str = '', user=None, original_reference: tuple[str, str] | None = None,
                   metadata: dict | None = None) -> list[int]:
    """
    Apply validated lines as one atomic unit.

    Lines must already be normalized (one per product, sorted by product_id).

    Raises:
        StockError('DUPLICATE_REFERENCE'): Document already booked in this direction
        StockError('BALANCE_NOT_FOUND'): OUT against a product never stocked
        StockError('INSUFFICIENT_QUANTITY'): A line would drive quantity below zero
        StockError('INVALID_QUANTITY'|'INVALID_COST'): Resulting balance beyond column limits
        StockError('BUSY'): Lock not acquired in time

    Concurrency:
        - Runs under transaction.atomic() (savepoint when nested)
        - Uses select_for_update() on Balance, ascending product_id
        - Balance rows for IN lines are created with get_or_create first
    """
    movement_date = movement_date or timezone.localdate()
    reference_id = str(reference_id)
    product_ids = [line.product_id for line in lines]
    original_type, original_id = original_reference or ('', '')
    metadata = metadata or {}

    try:
        with locked_transaction():
            existing = _existing_movement_ids(reference_type, reference_id, direction, product_ids)
            if existing:
                raise StockError(
                    'DUPLICATE_REFERENCE',
                    reference_type=reference_type,
                    reference_id=reference_id,
                    movement_ids=existing,
                )

            if direction == MovementDirection.IN:
                for product_id in product_ids:
                    Balance.objects.get_or_create(product_id=product_id)

            balances = {b.product_id: b for b in Balance.objects.locked(product_ids)}

            movement_ids = []
            for line in lines:
                balance = balances.get(line.product_id)
                if balance is None:
                    raise StockError('BALANCE_NOT_FOUND', product_id=line.product_id)

                try:
                    result = costing.check_limits(costing.compute(
                        balance.quantity,
                        balance.average_cost,
                        direction,
                        line.quantity,
                        line.unit_cost,
                    ))
                except StockError as e:
                    raise StockError(e.code, e.message, **{**e.data, 'product_id': line.product_id}) from e

                movement = Movement.objects.create(
                    product_id=line.product_id,
                    direction=direction,
                    source=source,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    original_reference_type=original_type,
                    original_reference_id=original_id,
                    quantity=line.quantity,
                    unit_cost=result.unit_cost,
                    movement_date=movement_date,
                    notes=notes,
                    user=user,
                    metadata=metadata,
                )

                balance.quantity = result.quantity
                balance.average_cost = result.average_cost
                if balance.last_movement_date is None or movement_date > balance.last_movement_date:
                    balance.last_movement_date = movement_date
                balance.save(update_fields=['quantity', 'average_cost', 'last_movement_date', 'updated_at'])
                movement_ids.append(movement.pk)

            transaction.on_commit(lambda: stock_changed.send(
                sender=Movement,
                movement_ids=movement_ids,
                product_ids=product_ids,
                reference_type=reference_type,
                reference_id=reference_id,
                source=source,
            ))
    except IntegrityError as exc:
        # Lost a race against the same document submitted concurrently
        existing = _existing_movement_ids(reference_type, reference_id, direction, product_ids)
        if not existing:
            raise
        raise StockError(
            'DUPLICATE_REFERENCE',
            reference_type=reference_type,
            reference_id=reference_id,
            movement_ids=existing,
        ) from exc

    logger.info(
        "stock.post",
        extra={
            "direction": str(direction),
            "source": str(source),
            "reference": f"{reference_type}:{reference_id}",
            "products": product_ids,
            "movement_ids": movement_ids,
        },
    )
    return movement_ids


class StockMovements:
    """State-changing stock movement methods."""

    @classmethod
    def apply(cls, lines, source, reference_type: str, reference_id,
              movement_date: date | None = None, notes: str = '',
              user=None, **metadata) -> list[int]:
        """
        Book a business document in the ledger.

        Direction comes from the source: purchase and manual_entry are IN
        (unit_cost required per line), sale_local and sale_export are OUT
        (costed at the current average). Reversals go through reverse().

        Args:
            lines: (product_id, quantity[, unit_cost]) lines
            source: MovementSource value
            reference_type: Document kind, e.g. 'delivery_note'
            reference_id: Document id
            movement_date: Business date (None = today)
            notes: Free text stored on every movement
            user: Who booked it

        Returns:
            Movement ids, in product_id order

        Raises:
            StockError: validation codes before any lock is taken;
                INSUFFICIENT_QUANTITY, BALANCE_NOT_FOUND, DUPLICATE_REFERENCE,
                BUSY from the locked section (nothing is written)
        """
        source = _coerce_source(source)
        if source == MovementSource.REVERSAL:
            raise StockError(
                'INVALID_SOURCE',
                'Estornos devem usar stock.reverse()',
                source=str(source),
            )
        if not reference_type or reference_id in (None, ''):
            raise StockError('INVALID_LINES', 'Documento de referência é obrigatório')

        direction = SOURCE_DIRECTIONS[source]
        normalized = normalize_lines(
            lines,
            require_cost=direction == MovementDirection.IN,
            keep_cost=direction == MovementDirection.IN,
        )
        _check_products([line.product_id for line in normalized])

        movement_ids = post_movements(
            normalized,
            direction,
            source,
            reference_type,
            reference_id,
            movement_date=movement_date,
            notes=notes,
            user=user,
            metadata=metadata,
        )
        logger.info(
            "stock.apply",
            extra={
                "source": str(source),
                "reference": f"{reference_type}:{reference_id}",
                "lines": len(normalized),
            },
        )
        return movement_ids
