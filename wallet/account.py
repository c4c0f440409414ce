"""
Accounts in two capabilities.

`PublicAccount` is what a payer knows about a payee: the address. `Account`
additionally holds the spending key, so only it can open notes, derive
nullifiers and spend.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from . import keys
from .encoding import decode_address, encode_address, unpack_commitment, unpack_envelope
from .errors import DecryptionError, FormatError
from .tokens import TokenRegistry
from .utxo import UtxoInput, UtxoOutput

logger = logging.getLogger(__name__)


class PublicAccount:
    """Receive-only view of an account, built from its address"""

    def __init__(self, public_key: int, encryption_key: bytes, registry: TokenRegistry):
        self.public_key = public_key
        self.encryption_key = bytes(encryption_key)
        self.registry = registry

    @classmethod
    def from_address(cls, address: str, registry: TokenRegistry) -> 'PublicAccount':
        public_key, encryption_key = decode_address(address)
        return cls(public_key, encryption_key, registry)

    @property
    def address(self) -> str:
        return encode_address(self.public_key, self.encryption_key)

    def pay(self, token_amounts: Dict[str, int], finalize: bool = True) -> UtxoOutput:
        """Output paying the given per-token amounts to this account"""
        output = UtxoOutput(self.address, self.registry)
        for token, amount in token_amounts.items():
            output.set_token_amount(token, amount)
        return output.finalize() if finalize else output

    def pay_raw(self, amounts: Sequence[int], finalize: bool = True) -> UtxoOutput:
        output = UtxoOutput(self.address, self.registry, amounts)
        return output.finalize() if finalize else output

    def __repr__(self):
        return f"{self.__class__.__name__}(public_key={self.public_key:#x})"


class Account(PublicAccount):
    """Spending account: owns a private key and the notes decrypted with it"""

    def __init__(self, registry: TokenRegistry, private_key: Optional[int] = None):
        self.private_key = private_key if private_key is not None else keys.generate_private_key()
        derived = keys.derive_keys(self.private_key)
        super().__init__(derived.public_key, derived.encryption_public_key, registry)
        self._encryption_secret = derived.encryption_secret_key
        self.utxos: List[UtxoInput] = []

    @staticmethod
    def from_address(address: str, registry: TokenRegistry) -> PublicAccount:
        """Public-only account; the spending key cannot be recovered from an address"""
        return PublicAccount.from_address(address, registry)

    def try_decrypt(self, commitment: int, data: str, index: int) -> Optional[UtxoInput]:
        """
        Open a note observed on the ledger.

        Returns None when the note is not addressed to this account, which is
        the expected outcome for most notes on a shared ledger.
        """
        try:
            envelope = unpack_envelope(data)
            plaintext = keys.decrypt(self._encryption_secret, envelope)
            amounts, blinding = unpack_commitment(plaintext, self.registry.max_tokens)
        except (FormatError, DecryptionError):
            return None

        if keys.commit(amounts, self.public_key, blinding) != commitment:
            logger.warning(f"Note {index} decrypts but does not match its commitment")
            return None

        try:
            return UtxoInput(commitment, tuple(amounts), blinding, index,
                             self.private_key, self.registry.max_tokens)
        except FormatError as e:
            logger.warning(f"Note {index} carries unspendable amounts: {e}")
            return None

    def attempt_decrypt_and_add(self, commitment: int, data: str, index: int) -> Optional[UtxoInput]:
        utxo = self.try_decrypt(commitment, data, index)
        if utxo is None:
            logger.debug(f"Note {index} not addressed to {self!r}")
            return None

        if any(u.index == utxo.index for u in self.utxos):
            return None

        self.utxos.append(utxo)
        logger.info(f"{self!r} received note {index}")
        return utxo

    def claim_output(self, output: UtxoOutput, index: int) -> UtxoInput:
        """Promote an output paid to this account once its tree index is known"""
        if output.public_key != self.public_key:
            raise FormatError("Output is not addressed to this account")
        utxo = UtxoInput.from_output(output, index, self.private_key)
        if not any(u.index == index for u in self.utxos):
            self.utxos.append(utxo)
        return utxo

    def unspent(self, spent: Iterable[int] = ()) -> List[UtxoInput]:
        spent = set(spent)
        return [u for u in self.utxos if u.nullifier not in spent]

    def balance(self, token: str, spent: Iterable[int] = ()) -> int:
        slot = self.registry.slot_of(token)
        return sum(u.amounts[slot] for u in self.unspent(spent))
