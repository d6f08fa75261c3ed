"""
Signer — Deterministic ECDSA over caller-hashed digests.

Signatures are produced with RFC 6979 nonces, emitted in DER by the signing
library and converted to the raw 64-byte ``r || s`` form that downstream
verifiers expect.
"""
import hashlib
import logging

from ecdsa import BadDigestError, MalformedPointError, SECP256k1, SigningKey
from ecdsa.der import UnexpectedDER
from ecdsa.util import sigdecode_der, sigencode_der

from ..exceptions import IndexOutOfRange, SigningError, SigningIndexError
from .key_vault import KeyVault

logger = logging.getLogger("wallet_bridge.vault")

COORDINATE_SIZE = 32
SIGNATURE_SIZE = 2 * COORDINATE_SIZE
ORDER = SECP256k1.order


def der_to_raw(der_signature: bytes, low_s: bool = False) -> bytes:
    """Convert a DER signature to raw ``r || s``, each left-padded to 32 bytes.

    Args:
        der_signature: DER-encoded ECDSA signature.
        low_s: Replace ``s`` with ``n - s`` when ``s > n/2``.

    Returns:
        64-byte raw signature.

    Raises:
        SigningError: If the DER is malformed or r/s exceed 32 bytes.
    """
    try:
        r, s = sigdecode_der(der_signature, ORDER)
    except (UnexpectedDER, ValueError) as err:
        raise SigningError("Malformed DER signature") from err
    if low_s and s > ORDER // 2:
        s = ORDER - s
    if r.bit_length() > 8 * COORDINATE_SIZE or s.bit_length() > 8 * COORDINATE_SIZE:
        raise SigningError("Invalid signature: r or s exceeds 32 bytes")
    return r.to_bytes(COORDINATE_SIZE, "big") + s.to_bytes(COORDINATE_SIZE, "big")


class Signer:
    """Signs digests with the private scalar of a vault entry."""

    def __init__(self, vault: KeyVault, low_s: bool = False):
        self._vault = vault
        self._low_s = low_s

    def sign(self, digest: bytes, index: int) -> bytes:
        """Sign a pre-hashed digest with the key at ``index``.

        No hashing is performed here; digests longer than the curve order
        are truncated as ECDSA prescribes.

        Args:
            digest: Message digest.
            index: Vault index (-1 = pending).

        Returns:
            64-byte raw signature.

        Raises:
            SigningIndexError: If ``index`` selects no key pair.
            SigningError: If the digest cannot be signed.
        """
        try:
            secret = self._vault.get_private_key(index)
        except IndexOutOfRange as err:
            raise SigningIndexError(str(err)) from err
        if not digest:
            raise SigningError("Cannot sign an empty digest")
        try:
            key = SigningKey.from_string(secret, curve=SECP256k1)
            der_signature = key.sign_digest_deterministic(
                digest,
                hashfunc=hashlib.sha256,
                sigencode=sigencode_der,
                allow_truncate=True,
            )
        except (BadDigestError, MalformedPointError, ValueError) as err:
            raise SigningError("Digest could not be signed") from err
        signature = der_to_raw(der_signature, low_s=self._low_s)
        logger.debug("Signed %d-byte digest with vault index %d", len(digest), index)
        return signature
