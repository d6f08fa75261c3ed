"""
WalletBridge — Host-facing operations of the wallet bridge.

Every public method returns a plain value (JSON text, base64, hex) or
``None`` when the operation failed. No exception crosses this boundary;
causes are logged for diagnostics only.

Security Note:
    Envelope failures are logged with a single generic message whatever
    their cause. Never log keys, plaintext or envelopes.
"""
import base64
import logging
import time
from functools import wraps
from typing import Any, Callable, Optional

import orjson

from .exceptions import BridgeError, DecodeError
from .records import (
    AddressesRecord,
    KeyMaterial,
    RequestRecord,
    WalletInfo,
    to_jsonable,
)
from .vault.config import BridgeConfig, StaticIdentity
from .vault.crypto import CryptoChannel
from .vault.key_vault import DuplicatePolicy, KeyVault, Routing
from .vault.signer import Signer

logger = logging.getLogger("wallet_bridge")


def host_operation(func: Callable) -> Callable:
    """Turn any failure of a host operation into a ``None`` result."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DecodeError:
            logger.warning("%s: envelope or payload rejected", func.__name__)
        except BridgeError as err:
            logger.warning("%s failed: %s", func.__name__, err)
        except Exception:
            logger.exception("%s failed unexpectedly", func.__name__)
        return None
    return wrapper


def _to_json(value: Any) -> str:
    return orjson.dumps(to_jsonable(value)).decode("utf-8")


class WalletBridge:
    """Crypto channel, key vault and signer behind the host operation table.

    The vault is an explicit object; pass one in to share it, or let the
    bridge create its own.
    """

    def __init__(
        self,
        config: BridgeConfig,
        vault: Optional[KeyVault] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config
        self._channel = CryptoChannel(
            StaticIdentity.from_config(config),
            cipher_backend=config.cipher_backend,
            bind_ephemeral_key=config.bind_ephemeral_key,
        )
        self.vault = vault if vault is not None else KeyVault(
            DuplicatePolicy(config.duplicate_promotion)
        )
        self._signer = Signer(self.vault, low_s=config.low_s)
        self._clock = clock

    @classmethod
    def from_env(cls) -> "WalletBridge":
        """Build a bridge from ``WALLET_BRIDGE_*`` environment variables."""
        return cls(BridgeConfig.from_env())

    @property
    def channel(self) -> CryptoChannel:
        return self._channel

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    @host_operation
    def encrypt_request(self, request: str, arg: str = "") -> Optional[str]:
        """Seal a backend request stamped with the current unix time.

        Returns:
            Base64 envelope, or None on failure.
        """
        record = RequestRecord(
            request=request, arg=arg or "", timestamp=int(self._clock()),
        )
        return self._channel.encrypt_record(record)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    @host_operation
    def decrypt_utxos(self, envelope: str, target: str) -> Optional[str]:
        """Open key material and route it into the vault.

        Args:
            envelope: Base64 envelope holding a list of key material.
            target: Routing selector (``"wallet"``, ``"new"``, ``"utxos"``).

        Returns:
            JSON array of public descriptors, or None on failure.
        """
        routing = Routing.from_selector(target)
        material = self._channel.decrypt_record(envelope, list[KeyMaterial])
        return _to_json(self.vault.ingest(material, routing))

    @host_operation
    def decrypt_addresses(self, envelope: str) -> Optional[str]:
        """Open deposit key material plus change addresses.

        The deposit pair becomes the vault's pending pair.

        Returns:
            JSON object ``{deposit, changeBtc, changeToken}``, or None.
        """
        record = self._channel.decrypt_record(envelope, AddressesRecord)
        deposit, = self.vault.ingest([record.deposit], Routing.APPEND_PENDING)
        return _to_json({
            "deposit": to_jsonable(deposit),
            "changeBtc": record.change_btc,
            "changeToken": record.change_token,
        })

    @host_operation
    def decrypt_info(self, envelope: str) -> Optional[str]:
        """Open the backend's wallet info as a JSON object."""
        return _to_json(self._channel.decrypt_record(envelope, WalletInfo))

    @host_operation
    def decrypt_string(self, envelope: str) -> Optional[str]:
        """Open a plain string message."""
        return self._channel.decrypt_record(envelope, str)

    # ------------------------------------------------------------------
    # Vault
    # ------------------------------------------------------------------

    @host_operation
    def get_blinding_key(self, index: int) -> Optional[str]:
        """Base64 blinding scalar at ``index`` (-1 = pending)."""
        return base64.b64encode(self.vault.get_blinding_key(index)).decode("ascii")

    @host_operation
    def get_private_key(self, index: int) -> Optional[str]:
        """Base64 spending scalar at ``index`` (-1 = pending)."""
        return base64.b64encode(self.vault.get_private_key(index)).decode("ascii")

    @host_operation
    def save_new_keys(self) -> None:
        """Promote the pending key pair into the indexed vault."""
        self.vault.promote_pending()

    @host_operation
    def sign(self, digest_hex: str, index: int) -> Optional[str]:
        """Sign a hex digest with the key at ``index``.

        Returns:
            Hex of the 64-byte raw signature, or None on failure.
        """
        try:
            digest = bytes.fromhex(digest_hex)
        except (ValueError, TypeError) as err:
            raise DecodeError("Digest is not valid hex") from err
        return self._signer.sign(digest, index).hex()
