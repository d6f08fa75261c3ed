"""
KeyVault — Transient in-process store of spending/blinding key pairs.

Provides the vault state machine used by the bridge:
- ``ingest(material, routing)`` — move decrypted key material into the vault
- ``promote_pending()`` — append the pending pair to the indexed entries
- ``get_private_key(index)`` / ``get_blinding_key(index)`` — read back secrets
- ``clear()`` — destroy every held key pair

Index ``-1`` always designates the pending slot.

Security Note:
    Secret scalars live only inside ``KeyPair`` objects owned by the vault.
    ``ingest`` returns public descriptors, never secret material.
    Never log scalars; only log counts, indices and routing.
"""
import base64
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from ..exceptions import DecodeError, DuplicatePromotionError, IndexOutOfRange
from ..records import KeyMaterial
from .config import compress_public_key, load_private_key

logger = logging.getLogger("wallet_bridge.vault")

PENDING_INDEX = -1


class Routing(str, Enum):
    """Destination of ingested key material."""

    REPLACE_ALL = "wallet"
    APPEND_PENDING = "new"
    APPEND_ALL = "utxos"

    @classmethod
    def from_selector(cls, selector: str) -> "Routing":
        """Resolve a host selector (``"wallet"``/``"new"``/``"utxos"`` or a
        member name such as ``"append_all"``).

        Raises:
            DecodeError: If the selector names no routing.
        """
        try:
            return cls(selector)
        except ValueError:
            pass
        try:
            return cls[selector.upper()]
        except (KeyError, AttributeError):
            raise DecodeError(f"Unknown routing selector: {selector!r}") from None


class DuplicatePolicy(str, Enum):
    """What ``promote_pending`` does when the pending pair was already promoted."""

    ALLOW = "allow"
    REJECT = "reject"


@dataclass(frozen=True)
class KeyPair:
    """One spending scalar and its blinding scalar."""

    private: bytes = field(repr=False)
    blinding: bytes = field(repr=False)

    def __post_init__(self):
        for name in ("private", "blinding"):
            try:
                load_private_key(getattr(self, name))
            except ValueError as err:
                raise DecodeError(f"Invalid {name} scalar") from err

    @property
    def public_key(self) -> bytes:
        return compress_public_key(load_private_key(self.private).public_key())

    @property
    def public_blind_key(self) -> bytes:
        return compress_public_key(load_private_key(self.blinding).public_key())


class PublicDescriptor(BaseModel):
    """Non-secret projection of a vault key pair and its unspent output."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    index: int
    tx_id: str
    vout: int = Field(ge=0)
    public_key: bytes
    public_blind_key: bytes

    @field_serializer("public_key", "public_blind_key", when_used="json")
    def encode_base64(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")

    @classmethod
    def describe(cls, index: int, material: KeyMaterial, pair: KeyPair) -> "PublicDescriptor":
        return cls(
            index=index,
            tx_id=material.tx_id,
            vout=material.vout,
            public_key=pair.public_key,
            public_blind_key=pair.public_blind_key,
        )


class KeyVault:
    """Indexed key pairs plus a single pending pair.

    Entries are assigned dense indices in insertion order; an index never
    changes its key pair until the vault is cleared or replaced wholesale
    by a ``REPLACE_ALL`` ingestion. Every mutating call is atomic: on
    failure neither the entries nor the pending slot change.
    """

    def __init__(self, duplicate_policy: DuplicatePolicy = DuplicatePolicy.ALLOW):
        self._entries: list[KeyPair] = []
        self._pending: Optional[KeyPair] = None
        self._pending_promoted = False
        self._duplicate_policy = DuplicatePolicy(duplicate_policy)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"<KeyVault entries={len(self._entries)} "
            f"pending={self._pending is not None}>"
        )

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    @staticmethod
    def _materialize(
        material: Iterable[KeyMaterial], offset: int
    ) -> tuple[list[KeyPair], list[PublicDescriptor]]:
        """Build key pairs and descriptors without touching vault state."""
        pairs: list[KeyPair] = []
        descriptors: list[PublicDescriptor] = []
        for position, item in enumerate(material):
            pair = KeyPair(private=item.private, blinding=item.blinding)
            pairs.append(pair)
            descriptors.append(
                PublicDescriptor.describe(offset + position, item, pair)
            )
        return pairs, descriptors

    def ingest(
        self, material: Sequence[KeyMaterial], routing: Routing
    ) -> list[PublicDescriptor]:
        """Route decrypted key material into the vault.

        Args:
            material: Key material in backend order.
            routing: ``REPLACE_ALL`` replaces every entry, ``APPEND_PENDING``
                stores the first pair as pending, ``APPEND_ALL`` appends.

        Returns:
            Public descriptors of the ingested pairs.

        Raises:
            DecodeError: If any scalar is invalid, or ``APPEND_PENDING``
                receives no material.
        """
        routing = Routing(routing)
        if routing is Routing.REPLACE_ALL:
            pairs, descriptors = self._materialize(material, 0)
            self._entries = pairs
        elif routing is Routing.APPEND_PENDING:
            if not material:
                raise DecodeError("No key material to hold as pending")
            pairs, descriptors = self._materialize(material[:1], 0)
            self._pending = pairs[0]
            self._pending_promoted = False
        elif routing is Routing.APPEND_ALL:
            pairs, descriptors = self._materialize(material, len(self._entries))
            self._entries.extend(pairs)
        else:
            raise ValueError(f"Unhandled routing: {routing}")
        logger.debug(
            "Ingested %d key pair(s) via %s; vault holds %d",
            len(pairs), routing.name, len(self._entries),
        )
        return descriptors

    def promote_pending(self) -> int:
        """Append the pending pair to the indexed entries.

        The pending slot is not cleared.

        Returns:
            Index assigned to the promoted pair.

        Raises:
            IndexOutOfRange: If there is no pending pair.
            DuplicatePromotionError: If the pending pair was already
                promoted and the policy is ``REJECT``.
        """
        if self._pending is None:
            raise IndexOutOfRange("No pending key pair to promote")
        if self._pending_promoted and self._duplicate_policy is DuplicatePolicy.REJECT:
            raise DuplicatePromotionError("Pending key pair already promoted")
        self._entries.append(self._pending)
        self._pending_promoted = True
        index = len(self._entries) - 1
        logger.debug("Promoted pending key pair to index %d", index)
        return index

    def clear(self) -> None:
        """Destroy every entry and the pending pair."""
        self._entries = []
        self._pending = None
        self._pending_promoted = False

    # ------------------------------------------------------------------
    # Read-back
    # ------------------------------------------------------------------

    def _select(self, index: int) -> KeyPair:
        if index == PENDING_INDEX:
            if self._pending is None:
                raise IndexOutOfRange("No pending key pair")
            return self._pending
        if 0 <= index < len(self._entries):
            return self._entries[index]
        raise IndexOutOfRange(
            f"Vault index {index} out of range ({len(self._entries)} entries)"
        )

    def get_private_key(self, index: int) -> bytes:
        """Return the spending scalar at ``index`` (-1 = pending)."""
        return self._select(index).private

    def get_blinding_key(self, index: int) -> bytes:
        """Return the blinding scalar at ``index`` (-1 = pending)."""
        return self._select(index).blinding
