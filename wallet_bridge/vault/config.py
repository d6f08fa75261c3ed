"""
Bridge Configuration — Static identity loading and validated settings.

Reads the module's static key material from environment variables:
    WALLET_BRIDGE_PRIVATE_KEY = <hex-encoded 32-byte secp256k1 scalar>
    WALLET_BRIDGE_PEER_PUBLIC_KEY = <hex-encoded SEC1 point of the backend>

Optional policy variables:
    WALLET_BRIDGE_CIPHER_BACKEND = aesgcm | chacha20 (default chacha20)
    WALLET_BRIDGE_BIND_EPHEMERAL_KEY = true | false (default true)
    WALLET_BRIDGE_LOW_S = true | false (default false)
    WALLET_BRIDGE_DUPLICATE_PROMOTION = allow | reject (default allow)

Security Note:
    Never log key material. Only log which variables were found.
"""
import os
import logging
from dataclasses import dataclass, field

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("wallet_bridge.vault")

PRIVATE_KEY_ENV = "WALLET_BRIDGE_PRIVATE_KEY"
PEER_PUBLIC_KEY_ENV = "WALLET_BRIDGE_PEER_PUBLIC_KEY"

SCALAR_SIZE = 32
CURVE = ec.SECP256K1()
CURVE_ORDER = int(
    "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16
)

_TRUE_VALUES = ("1", "true", "yes", "on")


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(
            f"{name} environment variable is not set"
        )
    return value


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def load_private_key(value: bytes) -> ec.EllipticCurvePrivateKey:
    """Build a secp256k1 private key from a 32-byte big-endian scalar.

    Raises:
        ValueError: If the scalar is not 32 bytes or not in [1, n-1].
    """
    if len(value) != SCALAR_SIZE:
        raise ValueError(
            f"private scalar must be exactly {SCALAR_SIZE} bytes, "
            f"got {len(value)}"
        )
    scalar = int.from_bytes(value, "big")
    if not 0 < scalar < CURVE_ORDER:
        raise ValueError("private scalar is outside the secp256k1 group order")
    return ec.derive_private_key(scalar, CURVE)


def load_public_key(value: bytes) -> ec.EllipticCurvePublicKey:
    """Parse a compressed or uncompressed SEC1 point on secp256k1.

    Raises:
        ValueError: If the bytes are not a valid point.
    """
    return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, value)


def compress_public_key(key: ec.EllipticCurvePublicKey) -> bytes:
    """Serialize a public key as a 33-byte compressed point."""
    return key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.CompressedPoint,
    )


def generate_identity() -> tuple[str, str]:
    """Generate a fresh secp256k1 key pair as hex strings.

    This is a utility for operators to provision new static keys.

    Returns:
        Tuple of (private_key_hex, compressed_public_key_hex).
    """
    private_key = ec.generate_private_key(CURVE)
    scalar = private_key.private_numbers().private_value
    return (
        scalar.to_bytes(SCALAR_SIZE, "big").hex(),
        compress_public_key(private_key.public_key()).hex(),
    )


class BridgeConfig(BaseModel):
    """Validated bridge configuration."""

    private_key: bytes = Field(repr=False)
    peer_public_key: bytes
    cipher_backend: str = Field(default="chacha20")
    bind_ephemeral_key: bool = True
    low_s: bool = False
    duplicate_promotion: str = Field(default="allow")

    @field_validator("private_key", "peer_public_key", mode="before")
    @classmethod
    def decode_hex(cls, v):
        """Accept hex strings as they appear in the environment."""
        if isinstance(v, str):
            return bytes.fromhex(v.strip())
        return v

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, v: bytes) -> bytes:
        """Ensure the private scalar is a usable secp256k1 key."""
        load_private_key(v)
        return v

    @field_validator("peer_public_key")
    @classmethod
    def validate_peer_public_key(cls, v: bytes) -> bytes:
        """Ensure the counterparty key is a point on secp256k1."""
        load_public_key(v)
        return v

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in ("aesgcm", "chacha20"):
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @field_validator("duplicate_promotion")
    @classmethod
    def validate_duplicate_promotion(cls, v: str) -> str:
        """Validate the promotion policy name."""
        v = v.lower()
        if v not in ("allow", "reject"):
            raise ValueError(f"Unsupported duplicate promotion policy: {v}")
        return v

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        """Create BridgeConfig by loading values from environment.

        Returns:
            Populated BridgeConfig instance.

        Raises:
            RuntimeError: If a required key variable is missing.
        """
        private_key = _require_env(PRIVATE_KEY_ENV)
        peer_public_key = _require_env(PEER_PUBLIC_KEY_ENV)
        config = cls(
            private_key=private_key,
            peer_public_key=peer_public_key,
            cipher_backend=os.environ.get(
                "WALLET_BRIDGE_CIPHER_BACKEND", "chacha20"
            ),
            bind_ephemeral_key=_env_flag(
                "WALLET_BRIDGE_BIND_EPHEMERAL_KEY", True
            ),
            low_s=_env_flag("WALLET_BRIDGE_LOW_S", False),
            duplicate_promotion=os.environ.get(
                "WALLET_BRIDGE_DUPLICATE_PROMOTION", "allow"
            ),
        )
        logger.debug(
            "Loaded bridge configuration (cipher=%s, low_s=%s, promotion=%s)",
            config.cipher_backend, config.low_s, config.duplicate_promotion,
        )
        return config


@dataclass(frozen=True)
class StaticIdentity:
    """The module's long-term private key and the counterparty public key."""

    private_key: ec.EllipticCurvePrivateKey = field(repr=False)
    peer_public_key: ec.EllipticCurvePublicKey

    @classmethod
    def from_config(cls, config: BridgeConfig) -> "StaticIdentity":
        return cls(
            private_key=load_private_key(config.private_key),
            peer_public_key=load_public_key(config.peer_public_key),
        )
