from .ledger import CashMovement
from .transactions import Transaction, TransactionLine
from .closures import PeriodClosure

__all__ = [
    'CashMovement',
    'Transaction', 'TransactionLine',
    'PeriodClosure',
]
