"""
Costing — moving weighted average, isolated, testable, reusable.

Pure computation over Decimal. No ORM access, no side effects:
given the current (quantity, average_cost) of a product and a movement,
returns the new state and the unit cost the movement must be recorded at.

Examples:
    >>> compute(Decimal('10'), Decimal('100'), 'in', Decimal('10'), Decimal('200'))
    CostingResult(quantity=Decimal('20.000'), average_cost=Decimal('150.0000'), ...)

    Outgoing stock never changes the average:
    >>> compute(Decimal('20'), Decimal('150'), 'out', Decimal('5'))
    CostingResult(quantity=Decimal('15.000'), average_cost=Decimal('150.0000'), ...)
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from ledgerman.exceptions import StockError

logger = logging.getLogger('ledgerman')

IN = 'in'
OUT = 'out'

QUANTITY_STEP = Decimal('0.001')
COST_STEP = Decimal('0.0001')
ZERO = Decimal('0')

# Exclusive upper bounds of the Decimal(15,3) and Decimal(15,4) columns
MAX_QUANTITY = Decimal(10) ** 12
MAX_COST = Decimal(10) ** 11


@dataclass(frozen=True)
class CostingResult:
    """New balance state plus the cost attributed to the movement."""

    quantity: Decimal
    average_cost: Decimal
    unit_cost: Decimal


def quantize_quantity(value: Decimal) -> Decimal:
    return Decimal(value).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def quantize_cost(value: Decimal) -> Decimal:
    return Decimal(value).quantize(COST_STEP, rounding=ROUND_HALF_UP)


def weighted_average(quantity: Decimal, average_cost: Decimal,
                     incoming_quantity: Decimal, incoming_cost: Decimal) -> Decimal:
    """
    Blend of the stock on hand with an incoming lot.

    incoming_quantity may be negative (lot being taken back out).
    When the resulting quantity is zero the incoming cost is the average.
    """
    new_quantity = quantity + incoming_quantity
    if new_quantity == 0:
        return incoming_cost
    total = quantity * average_cost + incoming_quantity * incoming_cost
    return total / new_quantity


def compute(quantity: Decimal, average_cost: Decimal, direction: str,
            movement_quantity: Decimal, unit_cost: Decimal | None = None) -> CostingResult:
    """
    Apply one movement to a balance state.

    Args:
        quantity: Quantity on hand before the movement
        average_cost: Average unit cost before the movement
        direction: 'in' or 'out'
        movement_quantity: Positive magnitude of the movement
        unit_cost: Cost of the movement.
            IN + cost:    weighted moving average (purchase, manual entry)
            IN + None:    stock restored at the current average (sale cancelled)
            OUT + None:   stock leaves at the current average (sale)
            OUT + cost:   lot taken back at its own cost (receipt cancelled),
                          average recomputed with the IN formula

    Returns:
        CostingResult

    Raises:
        StockError('INVALID_QUANTITY'): If movement_quantity <= 0
        StockError('INVALID_COST'): If unit_cost < 0
        StockError('INSUFFICIENT_QUANTITY'): If the new quantity would be negative
    """
    if movement_quantity <= 0:
        raise StockError('INVALID_QUANTITY', requested=movement_quantity)
    if unit_cost is not None and unit_cost < 0:
        raise StockError('INVALID_COST', unit_cost=unit_cost)

    if direction == IN:
        new_quantity = quantity + movement_quantity
        if unit_cost is None:
            return CostingResult(
                quantity=quantize_quantity(new_quantity),
                average_cost=quantize_cost(average_cost),
                unit_cost=quantize_cost(average_cost),
            )
        new_average = weighted_average(quantity, average_cost, movement_quantity, unit_cost)
        return CostingResult(
            quantity=quantize_quantity(new_quantity),
            average_cost=quantize_cost(new_average),
            unit_cost=quantize_cost(unit_cost),
        )

    if direction != OUT:
        raise StockError('INVALID_SOURCE', direction=direction)

    new_quantity = quantity - movement_quantity
    if new_quantity < 0:
        raise StockError(
            'INSUFFICIENT_QUANTITY',
            available=quantity,
            requested=movement_quantity,
        )

    if unit_cost is None:
        return CostingResult(
            quantity=quantize_quantity(new_quantity),
            average_cost=quantize_cost(average_cost),
            unit_cost=quantize_cost(average_cost),
        )

    new_average = weighted_average(quantity, average_cost, -movement_quantity, unit_cost)
    if new_average < 0:
        # Lot cost exceeds the value still on hand; keep the current average
        logger.warning(
            "stock.costing.negative_average",
            extra={
                "quantity": str(quantity),
                "average_cost": str(average_cost),
                "movement_quantity": str(movement_quantity),
                "unit_cost": str(unit_cost),
            },
        )
        new_average = average_cost

    return CostingResult(
        quantity=quantize_quantity(new_quantity),
        average_cost=quantize_cost(new_average),
        unit_cost=quantize_cost(unit_cost),
    )


def check_limits(result: CostingResult) -> CostingResult:
    """
    Refuse a balance state the ledger columns cannot hold.

    Raises:
        StockError('INVALID_QUANTITY'): Quantity reaches MAX_QUANTITY
        StockError('INVALID_COST'): Average or movement cost reaches MAX_COST
    """
    if result.quantity >= MAX_QUANTITY:
        raise StockError(
            'INVALID_QUANTITY',
            'Saldo excede a quantidade máxima suportada',
            quantity=result.quantity,
            limit=MAX_QUANTITY,
        )
    if result.average_cost >= MAX_COST or result.unit_cost >= MAX_COST:
        raise StockError(
            'INVALID_COST',
            'Custo excede o valor máximo suportado',
            average_cost=result.average_cost,
            unit_cost=result.unit_cost,
            limit=MAX_COST,
        )
    return result
