"""
Exceptions for Ledgerman.

All errors are StockError with a structured code for programmatic handling.
"""

from decimal import Decimal
from typing import Any


# Error code -> taxonomy kind
ERROR_KINDS = {
    'INVALID_LINES': 'validation',
    'INVALID_QUANTITY': 'validation',
    'INVALID_COST': 'validation',
    'INVALID_SOURCE': 'validation',
    'PRODUCT_NOT_FOUND': 'validation',
    'REFERENCE_NOT_FOUND': 'validation',
    'REVERSAL_EXCEEDS_ORIGINAL': 'validation',
    'NOTHING_TO_REVERSE': 'validation',
    'INSUFFICIENT_QUANTITY': 'business',
    'DUPLICATE_REFERENCE': 'idempotency',
    'BUSY': 'retryable',
    'BALANCE_NOT_FOUND': 'integrity',
    'IMMUTABLE_MOVEMENT': 'integrity',
}


class StockError(Exception):
    """
    Structured exception for stock operations.

    Usage:
        try:
            stock.apply([(produto.pk, 10)], 'sale_local', 'delivery_note', 'BL-42')
        except StockError as e:
            if e.code == 'INSUFFICIENT_QUANTITY':
                print(f"Só tem {e.available} disponível")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'INVALID_LINES': 'Documento sem linhas válidas',
        'INVALID_QUANTITY': 'Quantidade inválida (deve ser positiva)',
        'INVALID_COST': 'Custo unitário inválido (deve ser >= 0)',
        'INVALID_SOURCE': 'Origem de movimento inválida',
        'PRODUCT_NOT_FOUND': 'Produto não encontrado',
        'REFERENCE_NOT_FOUND': 'Documento de origem sem movimentos',
        'REVERSAL_EXCEEDS_ORIGINAL': 'Estorno excede a quantidade restante do documento',
        'NOTHING_TO_REVERSE': 'Documento já totalmente estornado',
        'INSUFFICIENT_QUANTITY': 'Quantidade insuficiente no estoque',
        'DUPLICATE_REFERENCE': 'Documento já lançado no estoque',
        'BUSY': 'Estoque ocupado, tente novamente',
        'BALANCE_NOT_FOUND': 'Saldo de estoque não encontrado',
        'IMMUTABLE_MOVEMENT': 'Movimentos são imutáveis',
    }

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"StockError({self.code!r}, {self.data!r})"

    @property
    def kind(self) -> str:
        """Taxonomy bucket: validation, business, idempotency, retryable, integrity."""
        return ERROR_KINDS.get(self.code, 'validation')

    @property
    def retryable(self) -> bool:
        """Whether resubmitting the whole document may succeed."""
        return self.kind == 'retryable'

    @property
    def product_id(self):
        """Shortcut for data['product_id']."""
        return self.data.get('product_id')

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }
