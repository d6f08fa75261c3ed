"""
Crypto Channel — ECIES-style envelopes between the wallet and its backend.

Key agreement and sealing for every message:
- ECDH(secp256k1) between one ephemeral key and one static key
- SHA-256 over the shared X coordinate
- HKDF-SHA256(no salt, no info) → 32-byte AEAD key
- ChaCha20-Poly1305 (default) or AES-256-GCM with a random 96-bit nonce

Wire format (before base64):
    [ephemeral public key 33B][nonce 12B][ciphertext][tag 16B]

Security Note:
    Never log plaintext, ciphertext or key material.
    Every failure to open an envelope surfaces with the same message so
    that tag failures cannot be told apart from malformed input.
"""
import os
import base64
import binascii
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, TypeVar

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..exceptions import AuthenticationError, DecodeError, EncryptionError
from ..records import decode_record, encode_record
from .config import CURVE, StaticIdentity, compress_public_key, load_public_key

logger = logging.getLogger("wallet_bridge.vault")

T = TypeVar("T")

POINT_SIZE = 33  # compressed SEC1
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
KEY_LENGTH = 32
MIN_ENVELOPE_SIZE = POINT_SIZE + NONCE_SIZE + TAG_SIZE

_CIPHERS = {
    "chacha20": ChaCha20Poly1305,
    "aesgcm": AESGCM,
}

_OPEN_FAILED = "Envelope could not be opened"


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(shared_x: bytes) -> bytes:
    """Derive the 32-byte AEAD key from an ECDH X coordinate.

    The X coordinate is hashed with SHA-256 first; the digest is the HKDF
    input keying material.

    Args:
        shared_x: X coordinate of the ECDH shared point.

    Returns:
        32-byte derived key.
    """
    shared_secret = hashlib.sha256(shared_x).digest()
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,
        info=None,
    )
    return hkdf.derive(shared_secret)


def agree(
    private_key: ec.EllipticCurvePrivateKey,
    public_key: ec.EllipticCurvePublicKey,
) -> bytes:
    """ECDH on secp256k1, then ``derive_key`` over the shared X coordinate."""
    return derive_key(private_key.exchange(ec.ECDH(), public_key))


# ---------------------------------------------------------------------------
# Envelope framing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Envelope:
    """A sealed message: ephemeral key, nonce and ciphertext with tag."""

    ephemeral_public_key: bytes
    nonce: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        return self.ephemeral_public_key + self.nonce + self.ciphertext

    def encode(self) -> str:
        """Base64 transport form."""
        return base64.b64encode(self.to_bytes()).decode("ascii")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Envelope":
        """Split raw envelope bytes into their parts.

        Raises:
            DecodeError: If the data is shorter than 61 bytes.
        """
        if len(data) < MIN_ENVELOPE_SIZE:
            raise DecodeError(_OPEN_FAILED)
        return cls(
            ephemeral_public_key=data[:POINT_SIZE],
            nonce=data[POINT_SIZE:POINT_SIZE + NONCE_SIZE],
            ciphertext=data[POINT_SIZE + NONCE_SIZE:],
        )

    @classmethod
    def decode(cls, text: str) -> "Envelope":
        """Parse the base64 transport form.

        Raises:
            DecodeError: If the text is not strict base64 or too short.
        """
        try:
            data = base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError, TypeError) as err:
            raise DecodeError(_OPEN_FAILED) from err
        return cls.from_bytes(data)


# ---------------------------------------------------------------------------
# Channel
# ---------------------------------------------------------------------------

class CryptoChannel:
    """Seals outbound messages for the backend and opens inbound ones.

    Outbound envelopes are encrypted to the counterparty's static public
    key; inbound envelopes are decrypted with the module's static private
    key. Both directions use a fresh ephemeral key per message.
    """

    def __init__(
        self,
        identity: StaticIdentity,
        cipher_backend: str = "chacha20",
        bind_ephemeral_key: bool = True,
    ):
        if cipher_backend not in _CIPHERS:
            raise ValueError(f"Unsupported cipher backend: {cipher_backend}")
        self._identity = identity
        self._cipher_cls = _CIPHERS[cipher_backend]
        self._bind_ephemeral_key = bind_ephemeral_key

    def _associated_data(self, ephemeral_public_key: bytes) -> bytes | None:
        # X-only ECDH ignores the parity prefix, so bind the whole point.
        return ephemeral_public_key if self._bind_ephemeral_key else None

    def encrypt(self, plaintext: bytes) -> str:
        """Seal plaintext for the counterparty.

        Args:
            plaintext: Bytes to encrypt.

        Returns:
            Base64 envelope.

        Raises:
            EncryptionError: If any step of envelope construction fails.
        """
        try:
            ephemeral = ec.generate_private_key(CURVE)
            key = agree(ephemeral, self._identity.peer_public_key)
            ephemeral_public_key = compress_public_key(ephemeral.public_key())
            cipher = self._cipher_cls(key)
            nonce = os.urandom(NONCE_SIZE)
            ct = cipher.encrypt(
                nonce, plaintext, self._associated_data(ephemeral_public_key),
            )
        except (ValueError, TypeError, OSError, NotImplementedError,
                UnsupportedAlgorithm) as err:
            logger.error("Envelope encryption failed: %s", type(err).__name__)
            raise EncryptionError("Envelope encryption failed") from err
        return Envelope(ephemeral_public_key, nonce, ct).encode()

    def decrypt(self, envelope: str) -> bytes:
        """Open a base64 envelope addressed to this module.

        Args:
            envelope: Base64 envelope.

        Returns:
            Decrypted plaintext bytes.

        Raises:
            DecodeError: If the envelope is malformed or does not
                authenticate (``AuthenticationError`` for the latter,
                raised with the same message).
        """
        parsed = Envelope.decode(envelope)
        try:
            ephemeral = load_public_key(parsed.ephemeral_public_key)
        except ValueError as err:
            raise DecodeError(_OPEN_FAILED) from err
        key = agree(self._identity.private_key, ephemeral)
        cipher = self._cipher_cls(key)
        try:
            return cipher.decrypt(
                parsed.nonce,
                parsed.ciphertext,
                self._associated_data(parsed.ephemeral_public_key),
            )
        except InvalidTag:
            raise AuthenticationError(_OPEN_FAILED) from None

    # ------------------------------------------------------------------
    # Record helpers
    # ------------------------------------------------------------------

    def encrypt_record(self, record: Any) -> str:
        """Encode a record and seal it.

        Raises:
            EncodingError: If the record cannot be serialized.
            EncryptionError: If sealing fails.
        """
        return self.encrypt(encode_record(record))

    def decrypt_record(self, envelope: str, target: type[T]) -> T:
        """Open an envelope and decode its payload as ``target``.

        Raises:
            DecodeError: If the envelope or the payload is invalid.
        """
        return decode_record(self.decrypt(envelope), target)
