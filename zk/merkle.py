"""
Append-only incremental Merkle tree over note commitments.

Mirrors the ledger's on-chain commitment tree: fixed depth, zero-valued empty
leaves, binary Poseidon nodes and strictly sequential insertion.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from .errors import LeafIndexError, TreeFullError
from .poseidon import PRIME, poseidon_hash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MerkleProof:
    """Inclusion witness for one leaf against one root"""
    root: int
    leaf: int
    index: int
    siblings: Tuple[int, ...]
    # bit i set when the node at level i is a right child
    path_indices: int

    def to_circuit_input(self) -> Dict[str, object]:
        return {
            'root': str(self.root),
            'leaf': str(self.leaf),
            'siblings': [str(s) for s in self.siblings],
            'pathIndices': str(self.path_indices),
        }


@dataclass
class IncrementalMerkleTree:
    """Incremental Merkle tree using Poseidon hash with bounds checking"""
    depth: int
    zero_value: int = 0
    zeros: List[int] = field(default_factory=list)
    # nodes[level][position], level 0 holds the leaves
    nodes: List[List[int]] = field(default_factory=list)

    def __post_init__(self):
        if self.depth < 1 or self.depth > 32:
            raise ValueError(f"Unsupported tree depth: {self.depth}")
        self.zeros = self._compute_empty_nodes()
        self.nodes = [[] for _ in range(self.depth + 1)]
        self._lock = threading.RLock()

    def _compute_empty_nodes(self) -> List[int]:
        """Hash of an empty subtree at each level, level 0 = empty leaf"""
        empty = [self.zero_value]
        for _ in range(self.depth):
            empty.append(poseidon_hash([empty[-1], empty[-1]]))
        return empty

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    @property
    def num_leaves(self) -> int:
        return len(self.nodes[0])

    @property
    def leaves(self) -> List[int]:
        return list(self.nodes[0])

    @property
    def root(self) -> int:
        with self._lock:
            if self.nodes[self.depth]:
                return self.nodes[self.depth][0]
            return self.zeros[self.depth]

    def _node(self, level: int, position: int) -> int:
        row = self.nodes[level]
        return row[position] if position < len(row) else self.zeros[level]

    def insert(self, leaf: int) -> int:
        """Append a leaf at position num_leaves and return its index"""
        if leaf < 0 or leaf >= PRIME:
            raise ValueError(f"Leaf {leaf} outside field bounds")

        with self._lock:
            index = self.num_leaves
            if index >= self.capacity:
                raise TreeFullError(
                    f"Tree of depth {self.depth} is full ({self.capacity} leaves)")

            self.nodes[0].append(leaf)
            current = leaf
            position = index
            for level in range(self.depth):
                if position & 1:
                    current = poseidon_hash([self._node(level, position - 1), current])
                else:
                    current = poseidon_hash([current, self.zeros[level]])
                position >>= 1
                row = self.nodes[level + 1]
                if position < len(row):
                    row[position] = current
                else:
                    row.append(current)

            logger.debug(f"Inserted leaf {index}, root {self.root:#x}")
            return index

    def insert_at(self, index: int, leaf: int) -> int:
        """Insert only if index is the next free position"""
        with self._lock:
            if index != self.num_leaves:
                raise LeafIndexError(
                    f"Cannot insert at index {index}, tree has {self.num_leaves} leaves")
            return self.insert(leaf)

    def witness(self, index: int) -> MerkleProof:
        """Get Merkle proof for leaf at index against the current root"""
        with self._lock:
            if index < 0 or index >= self.num_leaves:
                raise LeafIndexError(
                    f"Index {index} out of bounds ({self.num_leaves} leaves)")

            siblings = []
            path_indices = 0
            position = index
            for level in range(self.depth):
                path_indices |= (position & 1) << level
                siblings.append(self._node(level, position ^ 1))
                position >>= 1

            return MerkleProof(
                root=self.root,
                leaf=self.nodes[0][index],
                index=index,
                siblings=tuple(siblings),
                path_indices=path_indices,
            )

    def snapshot(self, indices: Sequence[int]) -> Tuple[int, List[MerkleProof]]:
        """Root and witnesses for several leaves taken in one atomic view"""
        with self._lock:
            proofs = [self.witness(i) for i in indices]
            return self.root, proofs

    def verify_proof(self, proof: MerkleProof) -> bool:
        """Verify Merkle proof"""
        if len(proof.siblings) != self.depth:
            return False

        current = proof.leaf
        for level, sibling in enumerate(proof.siblings):
            if (proof.path_indices >> level) & 1:
                current = poseidon_hash([sibling, current])
            else:
                current = poseidon_hash([current, sibling])
        return current == proof.root
