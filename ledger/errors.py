"""Rejections reported by the ledger"""


class LedgerError(Exception):
    """Base exception for ledger rejections"""
    pass


class DoubleSpendError(LedgerError):
    """A nullifier in the transaction was already consumed"""

    def __init__(self, nullifier: int):
        super().__init__(f"Nullifier {nullifier:#x} already spent")
        self.nullifier = nullifier


class UnknownRootError(LedgerError):
    """Transaction proved against a root the ledger does not accept"""
    pass


class InvalidProofError(LedgerError):
    """Proof failed verification"""
    pass


class LedgerRejectedError(LedgerError):
    """Malformed or otherwise unacceptable transaction"""
    pass
