"""
Notes in their life stages.

A UtxoOutput is built for payment to an address and becomes immutable once
finalized; a UtxoInput is an owned note with a known tree index and can be
spent by publishing its nullifier.
"""

import logging
import secrets
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from config.config import MAX_AMOUNT_BITS
from . import keys
from .encoding import (
    decode_address,
    encode_address,
    envelope_length,
    pack_commitment,
    pack_envelope,
)
from .errors import FinalizedOutputError, FormatError
from .tokens import TokenRegistry

logger = logging.getLogger(__name__)


def zero_amounts(max_tokens: int) -> List[int]:
    return [0] * max_tokens


def check_amounts(amounts: Sequence[int], max_tokens: int) -> List[int]:
    """Exactly max_tokens amounts, each below 2^MAX_AMOUNT_BITS"""
    if len(amounts) != max_tokens:
        raise FormatError(
            f"Amounts vector must have {max_tokens} entries, got {len(amounts)}")
    for amount in amounts:
        if not isinstance(amount, int) or amount < 0 or amount >= 1 << MAX_AMOUNT_BITS:
            raise FormatError(f"Invalid token amount: {amount!r}")
    return list(amounts)


@dataclass(frozen=True)
class UtxoInput:
    """
    An owned note with its tree position.

    Read back from the ledger, so only the amounts vector is checked against
    the circuit width; the nullifier is derived once from the owner's spending
    key.
    """
    commitment: int
    amounts: Tuple[int, ...]
    blinding: int
    index: int
    private_key: int = field(repr=False)
    max_tokens: int = field(default=10, repr=False, compare=False)
    nullifier: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(
            self, 'amounts', tuple(check_amounts(self.amounts, self.max_tokens)))
        object.__setattr__(
            self, 'nullifier', keys.nullifier(self.commitment, self.index, self.private_key))

    @classmethod
    def from_output(cls, output: 'UtxoOutput', index: int, private_key: int) -> 'UtxoInput':
        if not output.is_finalized:
            raise FinalizedOutputError("Output must be finalized before it can be spent")
        return cls(output.commitment, tuple(output.amounts), output.blinding, index,
                   private_key, output.registry.max_tokens)

    def amount_of(self, slot: int) -> int:
        return self.amounts[slot]


class UtxoOutput:
    """
    A note under construction for a destination address.

    A random blinding is drawn on construction; commitment and encrypted data
    are only meaningful after finalize().
    """

    def __init__(self, address: str, registry: TokenRegistry, amounts: Optional[Sequence[int]] = None):
        self.registry = registry
        max_tokens = registry.max_tokens
        self.amounts = check_amounts(
            amounts if amounts is not None else zero_amounts(max_tokens), max_tokens)
        self.public_key, self.encryption_key = decode_address(address)
        self.blinding = keys.random_field_element()

        self.commitment: Optional[int] = None
        self.encrypted_data: str = ""
        self.is_finalized = False

    def check_finalized(self):
        if self.is_finalized:
            raise FinalizedOutputError("Cannot modify finalized output")

    def set_token_amount(self, token: str, amount: int):
        self.check_finalized()
        slot = self.registry.slot_of(token)
        check_amounts([amount], 1)
        self.amounts[slot] = amount

    def finalize(self, real: bool = True) -> 'UtxoOutput':
        """
        Fix the commitment and encrypted payload.

        A decoy output (real=False) gets random bytes of exactly the length of a
        genuine envelope so observers cannot tell the two apart.
        """
        self.check_finalized()
        commitment = keys.commit(self.amounts, self.public_key, self.blinding)

        if real:
            envelope = keys.encrypt(
                self.encryption_key, pack_commitment(self.amounts, self.blinding))
            encrypted_data = pack_envelope(envelope)
        else:
            encrypted_data = secrets.token_bytes(
                envelope_length(self.registry.max_tokens)).hex()

        self.commitment = commitment
        self.encrypted_data = encrypted_data
        self.is_finalized = True
        return self

    def __repr__(self):
        state = f"commitment={self.commitment:#x}" if self.is_finalized else "unfinalized"
        return f"UtxoOutput(public_key={self.public_key:#x}, {state})"


def zero_output(registry: TokenRegistry) -> UtxoOutput:
    """Finalized zero-value decoy output owned by nobody"""
    zero_key = keys.encryption_public_key(bytes(32))
    output = UtxoOutput(encode_address(0, zero_key), registry)
    return output.finalize(real=False)
