"""
Ledgerman Models.

Core models for the inventory ledger:
- Balance: Current quantity and average cost per product (cache)
- Movement: Immutable ledger of stock events
- StockAlert: Configurable min stock trigger per product
"""

from ledgerman.models.alert import StockAlert
from ledgerman.models.balance import Balance
from ledgerman.models.enums import SOURCE_DIRECTIONS, MovementDirection, MovementSource
from ledgerman.models.movement import Movement

__all__ = [
    'MovementDirection',
    'MovementSource',
    'SOURCE_DIRECTIONS',
    'Balance',
    'Movement',
    'StockAlert',
]
