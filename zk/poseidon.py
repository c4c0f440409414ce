"""
Circom-compatible Poseidon hash over the BN254 scalar field.

Round constants and MDS matrices are regenerated with the Grain LFSR from the
Poseidon reference parameter script (field=1, sbox=0, n=254, R_F=8), which is
how circomlib's constants were produced. Widths t=2..17 (1..16 inputs) are
supported, matching circomlib's poseidon templates.
"""

import logging
from functools import lru_cache
from typing import List, Sequence, Tuple

logger = logging.getLogger(__name__)

# ============================================================================
# FIELD PARAMETERS
# ============================================================================

# BN254 scalar field prime
PRIME = 21888242871839275222246405745257275088548364400416034343698204186575808495617

FIELD_BITS = 254
FULL_ROUNDS = 8
# Partial rounds per width, indexed by t - 2 (circomlib N_ROUNDS_P)
PARTIAL_ROUNDS = [56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68]
MAX_INPUTS = len(PARTIAL_ROUNDS)


class GrainLFSR:
    """80-bit Grain LFSR in self-shrinking mode, as used for Poseidon parameters"""

    def __init__(self, width: int, partial_rounds: int):
        bits = (
            format(1, '02b') +                 # field: GF(p)
            format(0, '04b') +                 # sbox: x^alpha
            format(FIELD_BITS, '012b') +
            format(width, '012b') +
            format(FULL_ROUNDS, '010b') +
            format(partial_rounds, '010b') +
            '1' * 30
        )
        # bit i of the register is sequence position i; position 0 is shifted out first
        self.state = sum(int(b) << i for i, b in enumerate(bits))
        for _ in range(160):
            self._clock()

    def _clock(self) -> int:
        s = self.state
        new_bit = ((s >> 62) ^ (s >> 51) ^ (s >> 38) ^
                   (s >> 23) ^ (s >> 13) ^ s) & 1
        self.state = (s >> 1) | (new_bit << 79)
        return new_bit

    def next_bit(self) -> int:
        new_bit = self._clock()
        while new_bit == 0:
            self._clock()
            new_bit = self._clock()
        return self._clock()

    def random_bits(self, num_bits: int) -> int:
        value = 0
        for _ in range(num_bits):
            value = (value << 1) | self.next_bit()
        return value


@lru_cache(maxsize=None)
def load_poseidon_parameters(width: int) -> Tuple[Tuple[int, ...], Tuple[Tuple[int, ...], ...]]:
    """Generate (round_constants, mds_matrix) for state width t"""
    if width < 2 or width > MAX_INPUTS + 1:
        raise ValueError(f"Unsupported Poseidon width: {width}")

    partial_rounds = PARTIAL_ROUNDS[width - 2]
    grain = GrainLFSR(width, partial_rounds)

    constants = []
    for _ in range((FULL_ROUNDS + partial_rounds) * width):
        value = grain.random_bits(FIELD_BITS)
        while value >= PRIME:
            value = grain.random_bits(FIELD_BITS)
        constants.append(value)

    # Cauchy matrix M[i][j] = 1 / (x_i + y_j) over distinct x, y
    while True:
        samples = [grain.random_bits(FIELD_BITS) % PRIME for _ in range(2 * width)]
        while len(set(samples)) != len(samples):
            samples = [grain.random_bits(FIELD_BITS) % PRIME for _ in range(2 * width)]
        xs, ys = samples[:width], samples[width:]
        if all((x + y) % PRIME != 0 for x in xs for y in ys):
            break

    mds = tuple(
        tuple(pow(x + y, PRIME - 2, PRIME) for y in ys)
        for x in xs
    )

    logger.debug(f"Generated Poseidon parameters for t={width}")
    return tuple(constants), mds


# ============================================================================
# PERMUTATION
# ============================================================================


class CircomPoseidon:
    """Circom-compatible Poseidon hash with generated constants"""

    PRIME = PRIME

    @staticmethod
    def ark(state: List[int], constants: Sequence[int], constant_idx: int) -> List[int]:
        """Add round constants"""
        return [(x + constants[constant_idx + i]) % PRIME for i, x in enumerate(state)]

    @staticmethod
    def sbox(state: List[int], full_round: bool) -> List[int]:
        """Apply S-box (x^5 mod p)"""
        if full_round:
            return [pow(x, 5, PRIME) for x in state]
        return [pow(state[0], 5, PRIME)] + state[1:]

    @staticmethod
    def mix(state: List[int], mds: Sequence[Sequence[int]]) -> List[int]:
        """Apply MDS matrix multiplication"""
        return [sum(m * x for m, x in zip(row, state)) % PRIME for row in mds]

    @staticmethod
    def hash(inputs: Sequence[int]) -> int:
        """Poseidon hash matching circomlib's poseidon(inputs)"""
        if not 1 <= len(inputs) <= MAX_INPUTS:
            raise ValueError(
                f"Poseidon takes 1 to {MAX_INPUTS} inputs, got {len(inputs)}")

        for value in inputs:
            if not isinstance(value, int) or value < 0 or value >= PRIME:
                raise ValueError(f"Value {value} outside field bounds")

        width = len(inputs) + 1
        partial_rounds = PARTIAL_ROUNDS[width - 2]
        constants, mds = load_poseidon_parameters(width)

        state = [0] + list(inputs)
        half_full = FULL_ROUNDS // 2
        for r in range(FULL_ROUNDS + partial_rounds):
            state = CircomPoseidon.ark(state, constants, r * width)
            full_round = r < half_full or r >= half_full + partial_rounds
            state = CircomPoseidon.sbox(state, full_round)
            state = CircomPoseidon.mix(state, mds)

        return state[0]


def poseidon_hash(inputs: Sequence[int]) -> int:
    """Hash a sequence of field elements"""
    return CircomPoseidon.hash(inputs)
