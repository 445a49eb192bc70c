"""
Document lines — parsing, validation and consolidation.

Every check here runs before any lock is taken. A document that fails
validation never touches the database.

Accepted line shapes:
    (product_id, quantity)
    (product_id, quantity, unit_cost)
    {'product_id': 1, 'quantity': '2.5', 'unit_cost': '10.00'}
    StockLine(product_id=1, quantity=Decimal('2.5'), unit_cost=Decimal('10'))
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from ledgerman.costing import COST_STEP, MAX_COST, MAX_QUANTITY, QUANTITY_STEP, quantize_cost
from ledgerman.exceptions import StockError


@dataclass(frozen=True)
class StockLine:
    """One (product, quantity[, unit_cost]) line of a business document."""

    product_id: int
    quantity: Decimal
    unit_cost: Decimal | None = None


def _to_decimal(value, code: str, **context) -> Decimal:
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise StockError(code, value=str(value), **context) from None
    if not result.is_finite():
        raise StockError(code, value=str(value), **context)
    return result


def _to_product_id(value) -> int:
    if isinstance(value, bool):
        raise StockError('INVALID_LINES', product_id=value)
    try:
        product_id = int(value)
    except (TypeError, ValueError):
        raise StockError('INVALID_LINES', product_id=value) from None
    if product_id <= 0 or str(product_id) != str(value).strip():
        raise StockError('INVALID_LINES', product_id=value)
    return product_id


def parse_line(raw) -> StockLine:
    """Build a StockLine from any accepted shape, validating types and signs."""
    if isinstance(raw, StockLine):
        product_id, quantity, unit_cost = raw.product_id, raw.quantity, raw.unit_cost
    elif isinstance(raw, Mapping):
        if 'product_id' not in raw or 'quantity' not in raw:
            raise StockError('INVALID_LINES', line=dict(raw))
        product_id = raw['product_id']
        quantity = raw['quantity']
        unit_cost = raw.get('unit_cost')
    elif isinstance(raw, (tuple, list)) and len(raw) in (2, 3):
        product_id, quantity = raw[0], raw[1]
        unit_cost = raw[2] if len(raw) == 3 else None
    else:
        raise StockError('INVALID_LINES', line=repr(raw))

    product_id = _to_product_id(product_id)
    quantity = _to_decimal(quantity, 'INVALID_QUANTITY', product_id=product_id)
    if quantity <= 0:
        raise StockError('INVALID_QUANTITY', product_id=product_id, requested=quantity)
    if quantity >= MAX_QUANTITY:
        raise StockError(
            'INVALID_QUANTITY',
            'Quantidade excede o máximo suportado',
            product_id=product_id,
            requested=quantity,
            limit=MAX_QUANTITY,
        )
    if quantity != quantity.quantize(QUANTITY_STEP):
        raise StockError(
            'INVALID_QUANTITY',
            'Quantidade com mais de 3 casas decimais',
            product_id=product_id,
            requested=quantity,
        )

    if unit_cost is not None:
        unit_cost = _to_decimal(unit_cost, 'INVALID_COST', product_id=product_id)
        if unit_cost < 0:
            raise StockError('INVALID_COST', product_id=product_id, unit_cost=unit_cost)
        if unit_cost >= MAX_COST:
            raise StockError(
                'INVALID_COST',
                'Custo excede o valor máximo suportado',
                product_id=product_id,
                unit_cost=unit_cost,
                limit=MAX_COST,
            )
        if unit_cost != unit_cost.quantize(COST_STEP):
            raise StockError(
                'INVALID_COST',
                'Custo com mais de 4 casas decimais',
                product_id=product_id,
                unit_cost=unit_cost,
            )

    return StockLine(product_id=product_id, quantity=quantity, unit_cost=unit_cost)


def normalize_lines(lines: Iterable, require_cost: bool = False,
                    keep_cost: bool = True) -> list[StockLine]:
    """
    Parse, validate and consolidate document lines.

    Lines for the same product are merged: quantities are summed and
    unit costs are blended by quantity, which is what applying them one
    after another under the weighted average would give.

    Args:
        lines: Iterable of raw lines
        require_cost: Every line must carry a unit_cost (incoming stock)
        keep_cost: False drops any unit_cost given (outgoing stock is
            always costed at the current average)

    Returns:
        StockLines sorted by product_id (the lock acquisition order)

    Raises:
        StockError('INVALID_LINES'|'INVALID_QUANTITY'|'INVALID_COST')
    """
    if lines is None or isinstance(lines, (str, bytes, Mapping)):
        raise StockError('INVALID_LINES')

    parsed = [parse_line(raw) for raw in lines]
    if not parsed:
        raise StockError('INVALID_LINES')

    merged: dict[int, list[StockLine]] = {}
    for line in parsed:
        if require_cost and line.unit_cost is None:
            raise StockError(
                'INVALID_COST',
                'Custo unitário é obrigatório para entradas',
                product_id=line.product_id,
            )
        merged.setdefault(line.product_id, []).append(line)

    result = []
    for product_id in sorted(merged):
        group = merged[product_id]
        quantity = sum((line.quantity for line in group), Decimal('0'))
        unit_cost = None
        if keep_cost and all(line.unit_cost is not None for line in group):
            if len(group) == 1:
                unit_cost = group[0].unit_cost
            else:
                total = sum((line.quantity * line.unit_cost for line in group), Decimal('0'))
                unit_cost = quantize_cost(total / quantity)
        result.append(StockLine(product_id=product_id, quantity=quantity, unit_cost=unit_cost))
    return result
