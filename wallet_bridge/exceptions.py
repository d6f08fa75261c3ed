"""
Wallet Bridge Errors — Failure taxonomy shared by every bridge component.

Core components raise these; only the host facade (``WalletBridge``) turns
them into ``None`` sentinels.

Security Note:
    ``AuthenticationError`` subclasses ``DecodeError`` and is always raised
    with the same message as a malformed envelope, so callers handling
    ``DecodeError`` cannot build a tag oracle from the difference.
"""


class BridgeError(Exception):
    """Base class for all wallet bridge failures."""


class DecodeError(BridgeError):
    """Malformed base64, hex, point, DER or structured payload."""


class AuthenticationError(DecodeError):
    """AEAD tag did not verify."""


class EncodingError(BridgeError):
    """A record could not be serialized for encryption."""


class EncryptionError(BridgeError):
    """Envelope construction failed (key generation, KDF, AEAD, randomness)."""


class IndexOutOfRange(BridgeError, IndexError):
    """Vault lookup with an index that selects nothing."""


class SigningError(BridgeError):
    """The signature could not be produced."""


class SigningIndexError(IndexOutOfRange, SigningError):
    """Signing was requested with a vault index that selects nothing."""


class DuplicatePromotionError(BridgeError):
    """The pending key pair was already promoted and duplicates are rejected."""
