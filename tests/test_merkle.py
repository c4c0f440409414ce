import pytest

from zk.errors import LeafIndexError, TreeFullError
from zk.merkle import IncrementalMerkleTree
from zk.poseidon import poseidon_hash


def test_empty_root_is_hash_of_zero_subtrees():
    tree = IncrementalMerkleTree(2)
    zero1 = poseidon_hash([0, 0])
    assert tree.root == poseidon_hash([zero1, zero1])
    assert tree.num_leaves == 0


def test_empty_subtree_hashes_match_circomlib():
    tree = IncrementalMerkleTree(2)
    assert tree.zeros[1] == 0x2098f5fb9e239eab3ceac3f27b81e481dc3124d55ffed523a839ee8446b64864
    assert tree.root == 0x1069673dcdb12263df301a6ff584a7ec261a44cb9dc68df067a4774460b1f1e1


def test_root_matches_manual_computation():
    tree = IncrementalMerkleTree(2)
    for leaf in (11, 22, 33):
        tree.insert(leaf)

    expected = poseidon_hash([poseidon_hash([11, 22]), poseidon_hash([33, 0])])
    assert tree.root == expected
    assert tree.leaves == [11, 22, 33]


def test_insert_returns_sequential_indices():
    tree = IncrementalMerkleTree(4)
    assert [tree.insert(leaf) for leaf in (5, 6, 7)] == [0, 1, 2]
    assert tree.num_leaves == 3


def test_insert_at_requires_next_index():
    tree = IncrementalMerkleTree(4)
    tree.insert_at(0, 5)
    with pytest.raises(LeafIndexError):
        tree.insert_at(2, 6)
    with pytest.raises(LeafIndexError):
        tree.insert_at(0, 6)
    assert tree.insert_at(1, 6) == 1


def test_capacity_is_enforced():
    tree = IncrementalMerkleTree(2)
    for leaf in range(4):
        tree.insert(leaf + 1)
    with pytest.raises(TreeFullError):
        tree.insert(99)
    assert tree.num_leaves == 4


@pytest.mark.parametrize("depth", [0, 33])
def test_depth_bounds(depth):
    with pytest.raises(ValueError):
        IncrementalMerkleTree(depth)


def test_witnesses_verify_against_current_root():
    tree = IncrementalMerkleTree(4)
    for leaf in range(1, 7):
        tree.insert(leaf * 10)

    for index in range(6):
        proof = tree.witness(index)
        assert proof.root == tree.root
        assert proof.leaf == (index + 1) * 10
        assert len(proof.siblings) == 4
        assert proof.path_indices == index
        assert tree.verify_proof(proof)


def test_path_indices_mark_right_children():
    tree = IncrementalMerkleTree(3)
    for leaf in range(6):
        tree.insert(leaf + 1)
    assert tree.witness(5).path_indices == 0b101
    assert tree.witness(5).to_circuit_input()['pathIndices'] == '5'


def test_tampered_witness_fails():
    tree = IncrementalMerkleTree(3)
    tree.insert(1)
    tree.insert(2)
    proof = tree.witness(0)

    forged = type(proof)(proof.root, 3, proof.index, proof.siblings, proof.path_indices)
    assert not tree.verify_proof(forged)


def test_witness_index_bounds():
    tree = IncrementalMerkleTree(3)
    tree.insert(1)
    with pytest.raises(LeafIndexError):
        tree.witness(1)


def test_snapshot_shares_one_root():
    tree = IncrementalMerkleTree(3)
    for leaf in (1, 2, 3):
        tree.insert(leaf)

    root, proofs = tree.snapshot([0, 2])
    assert root == tree.root
    assert [p.root for p in proofs] == [root, root]
    assert [p.index for p in proofs] == [0, 2]


def test_circuit_input_uses_decimal_strings():
    tree = IncrementalMerkleTree(2)
    tree.insert(7)
    data = tree.witness(0).to_circuit_input()
    assert data['leaf'] == '7'
    assert data['pathIndices'] == '0'
    assert all(isinstance(s, str) for s in data['siblings'])
