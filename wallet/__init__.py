"""
Wallet layer: addresses, notes, accounts and the token slot registry.
"""

from .account import Account, PublicAccount
from .encoding import (
    EncryptedEnvelope,
    decode_address,
    encode_address,
    envelope_length,
    pack_commitment,
    pack_envelope,
    unpack_commitment,
    unpack_envelope,
)
from .errors import (
    WalletError,
    FormatError,
    DecryptionError,
    FinalizedOutputError,
    UnknownTokenError,
    TokenRegistryError,
)
from .keys import commit, derive_keys, generate_private_key, nullifier, random_field_element
from .tokens import TokenRegistry
from .utxo import UtxoInput, UtxoOutput, zero_amounts, zero_output

__all__ = [
    # Accounts
    'Account',
    'PublicAccount',

    # Notes
    'UtxoInput',
    'UtxoOutput',
    'zero_output',
    'zero_amounts',
    'TokenRegistry',

    # Primitives
    'commit',
    'nullifier',
    'derive_keys',
    'generate_private_key',
    'random_field_element',

    # Encoding
    'EncryptedEnvelope',
    'encode_address',
    'decode_address',
    'pack_commitment',
    'unpack_commitment',
    'pack_envelope',
    'unpack_envelope',
    'envelope_length',

    # Exceptions
    'WalletError',
    'FormatError',
    'DecryptionError',
    'FinalizedOutputError',
    'UnknownTokenError',
    'TokenRegistryError',
]
