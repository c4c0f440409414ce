"""
Fixed-width binary layouts shared with the circuits and the contract.

Field elements travel as 32-byte big-endian words. Addresses, note payloads
and encryption envelopes are plain concatenations of such words and are
exchanged as lowercase hex strings.
"""

import binascii
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from zk.poseidon import PRIME
from .errors import FormatError

WORD_LENGTH = 32
NONCE_LENGTH = 24
PUBKEY_LENGTH = 32
ADDRESS_LENGTH = 2 * WORD_LENGTH
# Poly1305 authenticator prepended to every box ciphertext
MAC_LENGTH = 16


# ============================================================================
# FIELD ELEMENTS
# ============================================================================


def to_bytes32(value: int) -> bytes:
    """Encode a non-negative integer as a 32-byte big-endian word"""
    if not isinstance(value, int) or value < 0:
        raise FormatError(f"Cannot encode {value!r} as an unsigned word")
    try:
        return value.to_bytes(WORD_LENGTH, 'big')
    except OverflowError as e:
        raise FormatError(f"Value {value} does not fit in {WORD_LENGTH} bytes") from e


def from_bytes32(data: bytes) -> int:
    if len(data) != WORD_LENGTH:
        raise FormatError(f"Expected {WORD_LENGTH} bytes, got {len(data)}")
    return int.from_bytes(data, 'big')


def field_from_bytes32(data: bytes) -> int:
    """Decode a word and require it to be a canonical field element"""
    value = from_bytes32(data)
    if value >= PRIME:
        raise FormatError(f"Value {value:#x} is not a field element")
    return value


def hex_to_bytes(data: str) -> bytes:
    """Decode hex, accepting an optional 0x prefix"""
    if data.startswith(('0x', '0X')):
        data = data[2:]
    try:
        return bytes.fromhex(data)
    except ValueError as e:
        raise FormatError(f"Invalid hex string: {e}") from e


# ============================================================================
# ADDRESSES
# ============================================================================


def encode_address(public_key: int, encryption_key: bytes) -> str:
    """publicKey (32 bytes BE) || encryptionKey (32 bytes), as hex"""
    if isinstance(public_key, int) and public_key >= PRIME:
        raise FormatError(f"Public key {public_key:#x} is not a field element")
    if len(encryption_key) != PUBKEY_LENGTH:
        raise FormatError(
            f"Encryption key must be {PUBKEY_LENGTH} bytes, got {len(encryption_key)}")
    return (to_bytes32(public_key) + bytes(encryption_key)).hex()


def decode_address(address: str) -> Tuple[int, bytes]:
    raw = hex_to_bytes(address)
    if len(raw) != ADDRESS_LENGTH:
        raise FormatError(
            f"Address must be {ADDRESS_LENGTH} bytes, got {len(raw)}")
    return field_from_bytes32(raw[:WORD_LENGTH]), raw[WORD_LENGTH:]


# ============================================================================
# NOTE PAYLOAD
# ============================================================================


def commitment_payload_length(max_tokens: int) -> int:
    return WORD_LENGTH * (max_tokens + 1)


def pack_commitment(amounts: Sequence[int], blinding: int) -> bytes:
    """blinding || amounts[0] || ... || amounts[N-1], 32 bytes each"""
    return to_bytes32(blinding) + b''.join(to_bytes32(a) for a in amounts)


def unpack_commitment(data: bytes, max_tokens: int) -> Tuple[List[int], int]:
    """Inverse of pack_commitment, returns (amounts, blinding)"""
    expected = commitment_payload_length(max_tokens)
    if len(data) != expected:
        raise FormatError(
            f"Note payload must be {expected} bytes, got {len(data)}")

    words = [field_from_bytes32(data[i:i + WORD_LENGTH])
             for i in range(0, len(data), WORD_LENGTH)]
    return words[1:], words[0]


# ============================================================================
# ENCRYPTION ENVELOPE
# ============================================================================


@dataclass(frozen=True)
class EncryptedEnvelope:
    """x25519-xsalsa20-poly1305 box: nonce, sender ephemeral key, ciphertext"""
    nonce: bytes
    ephemeral_public_key: bytes
    ciphertext: bytes


def envelope_length(max_tokens: int) -> int:
    """Packed size of a genuine note envelope"""
    return NONCE_LENGTH + PUBKEY_LENGTH + MAC_LENGTH + commitment_payload_length(max_tokens)


def pack_envelope(envelope: EncryptedEnvelope) -> str:
    nonce = envelope.nonce
    ephemeral = envelope.ephemeral_public_key
    if len(nonce) > NONCE_LENGTH or len(ephemeral) > PUBKEY_LENGTH:
        raise FormatError("Envelope nonce or ephemeral key too long")

    packed = (
        bytes(NONCE_LENGTH - len(nonce)) + nonce +
        bytes(PUBKEY_LENGTH - len(ephemeral)) + ephemeral +
        envelope.ciphertext
    )
    return binascii.hexlify(packed).decode()


def unpack_envelope(data: str) -> EncryptedEnvelope:
    raw = hex_to_bytes(data)
    if len(raw) < NONCE_LENGTH + PUBKEY_LENGTH:
        raise FormatError(f"Envelope too short: {len(raw)} bytes")
    return EncryptedEnvelope(
        nonce=raw[:NONCE_LENGTH],
        ephemeral_public_key=raw[NONCE_LENGTH:NONCE_LENGTH + PUBKEY_LENGTH],
        ciphertext=raw[NONCE_LENGTH + PUBKEY_LENGTH:],
    )
