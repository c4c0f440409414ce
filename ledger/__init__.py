"""
Ledger side of the shielded pool: the contract boundary, an in-memory
implementation of it and the observer that mirrors its commitment tree.
"""

from .base import (
    CommitmentEvent,
    DepositArgs,
    EventKind,
    Ledger,
    LedgerReceipt,
    TransactArgs,
)
from .errors import (
    LedgerError,
    DoubleSpendError,
    UnknownRootError,
    InvalidProofError,
    LedgerRejectedError,
)
from .local_ledger import LocalLedger
from .observer import LedgerObserver

__all__ = [
    # Boundary
    'Ledger',
    'CommitmentEvent',
    'EventKind',
    'DepositArgs',
    'TransactArgs',
    'LedgerReceipt',

    # Implementations
    'LocalLedger',
    'LedgerObserver',

    # Exceptions
    'LedgerError',
    'DoubleSpendError',
    'UnknownRootError',
    'InvalidProofError',
    'LedgerRejectedError',
]
