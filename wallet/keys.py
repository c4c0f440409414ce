"""
Key derivation, note commitments, nullifiers and note encryption.

A single spending key (a field element) yields both the circuit identity
`publicKey = Poseidon(privateKey)` and an x25519 keypair used to deliver note
plaintexts, so an account is fully recoverable from its spending key.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Sequence

import nacl.exceptions
import nacl.utils
from nacl.public import Box, PrivateKey, PublicKey

from zk.poseidon import PRIME, poseidon_hash
from .encoding import NONCE_LENGTH, EncryptedEnvelope, to_bytes32
from .errors import DecryptionError, FormatError

logger = logging.getLogger(__name__)

# Keys are drawn from [2^253, p) so they always encode to 254 bits
PRIVATE_KEY_FLOOR = 1 << 253


@dataclass(frozen=True)
class DerivedKeys:
    public_key: int
    encryption_public_key: bytes
    encryption_secret_key: bytes


def random_field_element() -> int:
    """Uniform element of the scalar field"""
    return secrets.randbelow(PRIME)


def generate_private_key() -> int:
    return PRIVATE_KEY_FLOOR + secrets.randbelow(PRIME - PRIVATE_KEY_FLOOR)


def encryption_secret_key(private_key: int) -> bytes:
    return to_bytes32(private_key)


def encryption_public_key(secret_key: bytes) -> bytes:
    return bytes(PrivateKey(secret_key).public_key)


def derive_keys(private_key: int) -> DerivedKeys:
    """Deterministically derive the public identity and encryption keypair"""
    if private_key < 0 or private_key >= PRIME:
        raise FormatError("Private key must be a field element")

    secret = encryption_secret_key(private_key)
    return DerivedKeys(
        public_key=poseidon_hash([private_key]),
        encryption_public_key=encryption_public_key(secret),
        encryption_secret_key=secret,
    )


def commit(amounts: Sequence[int], public_key: int, blinding: int) -> int:
    """Poseidon(amounts[0..N], publicKey, blinding); argument order is binding"""
    return poseidon_hash(list(amounts) + [public_key, blinding])


def nullifier(commitment: int, index: int, private_key: int) -> int:
    return poseidon_hash([commitment, index, private_key])


# ============================================================================
# NOTE ENCRYPTION
# ============================================================================


def encrypt(recipient_key: bytes, plaintext: bytes) -> EncryptedEnvelope:
    """Seal plaintext to the recipient with a fresh ephemeral x25519 key"""
    ephemeral = PrivateKey.generate()
    nonce = nacl.utils.random(NONCE_LENGTH)
    try:
        box = Box(ephemeral, PublicKey(bytes(recipient_key)))
    except (TypeError, ValueError, nacl.exceptions.CryptoError) as e:
        raise FormatError(f"Invalid encryption key: {e}") from e

    encrypted = box.encrypt(plaintext, nonce)
    return EncryptedEnvelope(
        nonce=nonce,
        ephemeral_public_key=bytes(ephemeral.public_key),
        ciphertext=encrypted.ciphertext,
    )


def decrypt(secret_key: bytes, envelope: EncryptedEnvelope) -> bytes:
    """Open an envelope; raises DecryptionError for a wrong key or tampered data"""
    try:
        box = Box(PrivateKey(secret_key), PublicKey(envelope.ephemeral_public_key))
        return box.decrypt(envelope.ciphertext, envelope.nonce)
    except (TypeError, ValueError, nacl.exceptions.CryptoError) as e:
        raise DecryptionError(str(e)) from e
