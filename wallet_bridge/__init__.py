"""Wallet Bridge.

Cryptographic bridge between a wallet front-end and its backend.
"""
from .version import __version__
from .bridge import WalletBridge
from .exceptions import (
    BridgeError,
    DecodeError,
    AuthenticationError,
    EncodingError,
    EncryptionError,
    IndexOutOfRange,
    SigningError,
    SigningIndexError,
    DuplicatePromotionError,
)

__all__ = [
    "__version__",
    "WalletBridge",
    "BridgeError",
    "DecodeError",
    "AuthenticationError",
    "EncodingError",
    "EncryptionError",
    "IndexOutOfRange",
    "SigningError",
    "SigningIndexError",
    "DuplicatePromotionError",
]
