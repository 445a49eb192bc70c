"""
Django Ledgerman — Razão de estoque com custo médio ponderado.

Uso:
    from ledgerman import stock, StockError

    stock.apply([(cafe.pk, 10, '12.50')], 'purchase', 'purchase_order', 'BC-7')
    stock.apply([(cafe.pk, 4)], 'sale_local', 'delivery_note', 'BL-42')
    stock.quantity(cafe.pk)  # 6
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'stock':
        from ledgerman.service import Stock
        return Stock
    elif name == 'StockError':
        from ledgerman.exceptions import StockError
        return StockError
    elif name == 'StockLine':
        from ledgerman.lines import StockLine
        return StockLine
    elif name == 'Balance':
        from ledgerman.models.balance import Balance
        return Balance
    elif name == 'Movement':
        from ledgerman.models.movement import Movement
        return Movement
    elif name == 'MovementDirection':
        from ledgerman.models.enums import MovementDirection
        return MovementDirection
    elif name == 'MovementSource':
        from ledgerman.models.enums import MovementSource
        return MovementSource
    elif name == 'StockAlert':
        from ledgerman.models.alert import StockAlert
        return StockAlert
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'stock',
    'StockError',
    'StockLine',
    'Balance',
    'Movement',
    'MovementDirection',
    'MovementSource',
    'StockAlert',
]

__version__ = '0.1.0'
