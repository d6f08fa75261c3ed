"""Key Vault — Envelope crypto, transient key storage and signing.

Security Note (Threat Model):
    Secret scalars live in process memory for the lifetime of the vault.
    A memory dump of the host process could expose them. This is an
    accepted limitation; the vault never persists or logs key material.
"""

from .config import BridgeConfig, StaticIdentity, generate_identity
from .crypto import CryptoChannel, Envelope
from .key_vault import DuplicatePolicy, KeyPair, KeyVault, PublicDescriptor, Routing
from .signer import Signer, der_to_raw

__all__ = [
    "BridgeConfig",
    "StaticIdentity",
    "generate_identity",
    "CryptoChannel",
    "Envelope",
    "DuplicatePolicy",
    "KeyPair",
    "KeyVault",
    "PublicDescriptor",
    "Routing",
    "Signer",
    "der_to_raw",
]
