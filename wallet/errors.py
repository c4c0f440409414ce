"""Exceptions raised by the wallet layer"""


class WalletError(Exception):
    """Base exception for wallet operations"""
    pass


class FormatError(WalletError, ValueError):
    """Malformed address, amounts vector or envelope"""
    pass


class DecryptionError(WalletError):
    """Envelope could not be opened with the given key"""
    pass


class FinalizedOutputError(WalletError):
    """Output already finalized and can no longer change"""
    pass


class UnknownTokenError(WalletError, KeyError):
    """Token has no slot in the registry"""
    pass


class TokenRegistryError(WalletError):
    """Conflicting token-to-slot registration"""
    pass
