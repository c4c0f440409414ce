"""Exceptions raised by the tree, prover and proof input layers"""


class ZKError(Exception):
    """Base exception for ZK operations"""
    pass


class MerkleTreeError(ZKError):
    """Commitment tree invariant violated"""
    pass


class LeafIndexError(MerkleTreeError):
    """Leaf inserted or requested at the wrong position"""
    pass


class TreeFullError(MerkleTreeError):
    """Tree capacity of 2^depth leaves exhausted"""
    pass


class RootMismatchError(MerkleTreeError):
    """Local tree root disagrees with the ledger"""
    pass


class ProofInputError(ZKError):
    """Structured circuit input could not be assembled"""
    pass


class CircuitShapeError(ProofInputError):
    """No circuit for the requested number of inputs/outputs"""
    pass


class AmountMismatchError(ProofInputError):
    """Per-token amounts do not balance"""
    pass


class ProofGenerationError(ZKError):
    """Proof generation failed"""
    pass
