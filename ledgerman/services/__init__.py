"""
Stock services — modular organization of stock operations.

Re-exports all public methods:
    from ledgerman.services import StockQueries, StockMovements, StockReversals
"""

from ledgerman.services.movements import StockMovements
from ledgerman.services.queries import StockQueries
from ledgerman.services.reversals import StockReversals

__all__ = [
    'StockQueries',
    'StockMovements',
    'StockReversals',
]
