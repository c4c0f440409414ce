"""
Shielded pool operations: proof input assembly and the client facade.
"""

from .client import InsufficientFundsError, ShieldedPoolClient
from .proof_inputs import ProofInputAssembler

__all__ = [
    'ShieldedPoolClient',
    'ProofInputAssembler',
    'InsufficientFundsError',
]
