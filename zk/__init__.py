"""
Zero-knowledge primitives for the shielded pool client:
Poseidon hashing, the commitment tree and the prover boundary.
"""

from .errors import (
    ZKError,
    MerkleTreeError,
    LeafIndexError,
    TreeFullError,
    RootMismatchError,
    ProofInputError,
    CircuitShapeError,
    AmountMismatchError,
    ProofGenerationError,
)
from .merkle import IncrementalMerkleTree, MerkleProof
from .poseidon import PRIME, CircomPoseidon, poseidon_hash
from .prover import ProofArtifact, Prover, SnarkjsProver, parse_call_data

__all__ = [
    # Hash
    'PRIME',
    'CircomPoseidon',
    'poseidon_hash',

    # Tree
    'IncrementalMerkleTree',
    'MerkleProof',

    # Prover
    'Prover',
    'SnarkjsProver',
    'ProofArtifact',
    'parse_call_data',

    # Exceptions
    'ZKError',
    'MerkleTreeError',
    'LeafIndexError',
    'TreeFullError',
    'RootMismatchError',
    'ProofInputError',
    'CircuitShapeError',
    'AmountMismatchError',
    'ProofGenerationError',
]
