"""Shared fixtures: a module identity and its backend counterpart."""
import pytest

from wallet_bridge import WalletBridge
from wallet_bridge.records import KeyMaterial
from wallet_bridge.vault.config import BridgeConfig, StaticIdentity, generate_identity
from wallet_bridge.vault.crypto import CryptoChannel

# Compressed points of the secp256k1 generator multiples 1G and 3G.
G1_COMPRESSED = bytes.fromhex(
    "0279BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798"
)
G3_COMPRESSED = bytes.fromhex(
    "02F9308A019258C31049344F85F89D5229B531C845836F99B08601F113BCE036F9"
)


def scalar(value: int) -> bytes:
    """Encode a small integer as a 32-byte big-endian scalar."""
    return value.to_bytes(32, "big")


def material(private: int, blinding: int, tx_id: str = "ab" * 32, vout: int = 0) -> KeyMaterial:
    return KeyMaterial(
        tx_id=tx_id, vout=vout, private=scalar(private), blinding=scalar(blinding),
    )


@pytest.fixture
def module_keys():
    """Static key pair of the wallet module (private_hex, public_hex)."""
    return generate_identity()


@pytest.fixture
def backend_keys():
    """Static key pair of the backend (private_hex, public_hex)."""
    return generate_identity()


@pytest.fixture
def config(module_keys, backend_keys):
    return BridgeConfig(
        private_key=module_keys[0],
        peer_public_key=backend_keys[1],
    )


@pytest.fixture
def module_channel(config):
    """Channel as seen by the wallet module."""
    return CryptoChannel(StaticIdentity.from_config(config))


@pytest.fixture
def backend_channel(module_keys, backend_keys):
    """Channel as seen by the backend: encrypts to the module, opens its requests."""
    backend_config = BridgeConfig(
        private_key=backend_keys[0],
        peer_public_key=module_keys[1],
    )
    return CryptoChannel(StaticIdentity.from_config(backend_config))


@pytest.fixture
def bridge(config):
    return WalletBridge(config, clock=lambda: 1700000000)
