"""
Wallet Bridge Records — Typed payloads carried inside encrypted envelopes.

Every record is a pydantic model with camelCase aliases. Records are
dumped in JSON mode and serialized with orjson; decoding always names the
concrete type it expects, e.g. ``decode_record(data, list[KeyMaterial])``.
Byte fields travel as standard base64 strings.
"""
import base64
import logging
from functools import lru_cache
from typing import Any, TypeVar

import orjson
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticSerializationError

from .exceptions import DecodeError, EncodingError

logger = logging.getLogger("wallet_bridge")

T = TypeVar("T")


class Record(BaseModel):
    """Base for every wire record."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class RequestRecord(Record):
    """Outbound request to the backend."""

    request: str
    arg: str = ""
    timestamp: int


class KeyMaterial(Record):
    """Inbound key material for one unspent output."""

    tx_id: str
    vout: int = Field(ge=0)
    private: bytes = Field(repr=False)
    blinding: bytes = Field(repr=False)

    @field_validator("private", "blinding", mode="before")
    @classmethod
    def decode_base64(cls, v: Any) -> Any:
        """Accept base64 text (wire form) as well as raw bytes."""
        if isinstance(v, str):
            return base64.b64decode(v, validate=True)
        return v

    @field_serializer("private", "blinding", when_used="json")
    def encode_base64(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")


class AddressesRecord(Record):
    """Deposit key material plus the change addresses for a swap."""

    deposit: KeyMaterial
    change_btc: str = ""
    change_token: str = ""


class WalletInfo(Record):
    """Trading limits and fee schedule published by the backend."""

    token: str
    token_id: str
    token_name: str
    ticker: str
    max_buy_btc: int = Field(ge=0)
    max_buy_token: int = Field(ge=0)
    min_buy_btc: int = Field(ge=0)
    min_buy_token: int = Field(ge=0)
    fee_rate_ppm: int = Field(ge=0)
    fee_base_sats: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

def to_jsonable(value: Any) -> Any:
    """Convert records (and lists of records) to JSON-compatible values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def encode_record(value: Any) -> bytes:
    """Serialize a record, a list of records or a plain string to bytes.

    Args:
        value: Value to serialize.

    Returns:
        orjson-encoded bytes.

    Raises:
        EncodingError: If the value cannot be serialized.
    """
    try:
        return orjson.dumps(to_jsonable(value))
    except (orjson.JSONEncodeError, PydanticSerializationError) as err:
        raise EncodingError(
            f"Cannot encode value of type {type(value).__name__}"
        ) from err


@lru_cache(maxsize=32)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def decode_record(data: bytes, target: type[T]) -> T:
    """Validate serialized bytes against a concrete record type.

    Args:
        data: Bytes produced by ``encode_record`` (or the backend).
        target: Expected type, e.g. ``WalletInfo`` or ``list[KeyMaterial]``.

    Returns:
        Validated instance of ``target``.

    Raises:
        DecodeError: If the payload does not match ``target``.
    """
    try:
        return _adapter(target).validate_json(data)
    except ValidationError as err:
        logger.debug(
            "Payload rejected for %s: %d error(s)",
            getattr(target, "__name__", target), err.error_count(),
        )
        raise DecodeError("Payload does not match the expected record") from err
