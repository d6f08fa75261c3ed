"""
Tests for the ECIES crypto channel.

Tests cover:
- Round-trip between the module and its backend counterpart
- Envelope shape and freshness of ephemeral key and nonce
- Tamper sensitivity over every bit of an envelope
- Malformed input rejection
- Record helpers
"""
import base64

import pytest

from wallet_bridge.exceptions import AuthenticationError, DecodeError, EncodingError
from wallet_bridge.records import RequestRecord
from wallet_bridge.vault.config import (
    BridgeConfig,
    StaticIdentity,
    generate_identity,
    load_public_key,
)
from wallet_bridge.vault.crypto import (
    MIN_ENVELOPE_SIZE,
    CryptoChannel,
    Envelope,
    derive_key,
)


def _flip(envelope: str, bit: int) -> str:
    raw = bytearray(base64.b64decode(envelope))
    raw[bit // 8] ^= 1 << (bit % 8)
    return base64.b64encode(bytes(raw)).decode("ascii")


class TestRoundTrip:
    """Messages sealed by one side open on the other."""

    @pytest.mark.parametrize("message", [b"", b"x", b"ping" * 100, bytes(range(256))])
    def test_backend_opens_module_envelope(self, module_channel, backend_channel, message):
        """Test the backend decrypts what the module encrypted."""
        assert backend_channel.decrypt(module_channel.encrypt(message)) == message

    def test_module_opens_backend_envelope(self, module_channel, backend_channel):
        """Test the module decrypts what the backend encrypted."""
        envelope = backend_channel.encrypt(b"key material")
        assert module_channel.decrypt(envelope) == b"key material"

    @pytest.mark.parametrize("backend", ["chacha20", "aesgcm"])
    def test_cipher_backends(self, module_keys, backend_keys, backend):
        """Test both AEAD backends round-trip."""
        sender = CryptoChannel(
            StaticIdentity.from_config(BridgeConfig(
                private_key=module_keys[0], peer_public_key=backend_keys[1],
            )),
            cipher_backend=backend,
        )
        receiver = CryptoChannel(
            StaticIdentity.from_config(BridgeConfig(
                private_key=backend_keys[0], peer_public_key=module_keys[1],
            )),
            cipher_backend=backend,
        )
        assert receiver.decrypt(sender.encrypt(b"hello")) == b"hello"

    def test_mismatched_cipher_fails(self, module_keys, backend_keys):
        """Test an AES-GCM envelope does not open under ChaCha20-Poly1305."""
        sender = CryptoChannel(
            StaticIdentity.from_config(BridgeConfig(
                private_key=module_keys[0], peer_public_key=backend_keys[1],
            )),
            cipher_backend="aesgcm",
        )
        receiver = CryptoChannel(
            StaticIdentity.from_config(BridgeConfig(
                private_key=backend_keys[0], peer_public_key=module_keys[1],
            )),
        )
        with pytest.raises(DecodeError):
            receiver.decrypt(sender.encrypt(b"hello"))

    def test_wrong_recipient_fails(self, module_channel):
        """Test an envelope for another key pair does not open."""
        stranger_priv, _ = generate_identity()
        _, other_pub = generate_identity()
        stranger = CryptoChannel(StaticIdentity.from_config(BridgeConfig(
            private_key=stranger_priv, peer_public_key=other_pub,
        )))
        with pytest.raises(DecodeError):
            stranger.decrypt(module_channel.encrypt(b"secret"))

    def test_unsupported_backend_rejected(self, config):
        """Test an unknown cipher backend name is refused."""
        with pytest.raises(ValueError):
            CryptoChannel(StaticIdentity.from_config(config), cipher_backend="rc4")


class TestEnvelopeShape:
    """Tests for the wire layout of sealed messages."""

    def test_minimum_length(self, module_channel):
        """Test an empty plaintext still yields 33+12+16 bytes."""
        raw = base64.b64decode(module_channel.encrypt(b""))
        assert len(raw) == MIN_ENVELOPE_SIZE == 61

    def test_length_tracks_plaintext(self, module_channel):
        """Test ciphertext length equals plaintext length plus the tag."""
        raw = base64.b64decode(module_channel.encrypt(b"a" * 10))
        assert len(raw) == 61 + 10

    def test_ephemeral_key_is_compressed_point(self, module_channel):
        """Test the first 33 bytes parse as a compressed secp256k1 point."""
        raw = base64.b64decode(module_channel.encrypt(b"data"))
        assert raw[0] in (2, 3)
        load_public_key(raw[:33])

    def test_fresh_ephemeral_key_and_nonce(self, module_channel):
        """Test two encryptions of the same message share no key or nonce."""
        first = Envelope.decode(module_channel.encrypt(b"same"))
        second = Envelope.decode(module_channel.encrypt(b"same"))
        assert first.ephemeral_public_key != second.ephemeral_public_key
        assert first.nonce != second.nonce
        assert first.ciphertext != second.ciphertext

    def test_envelope_split(self):
        """Test Envelope.from_bytes splits at offsets 33 and 45."""
        data = bytes(range(70))
        envelope = Envelope.from_bytes(data)
        assert envelope.ephemeral_public_key == data[:33]
        assert envelope.nonce == data[33:45]
        assert envelope.ciphertext == data[45:]
        assert envelope.to_bytes() == data


class TestTamperSensitivity:
    """Any modified bit makes the envelope unusable."""

    def test_every_bit_flip_fails(self, module_channel, backend_channel):
        """Test flipping each bit of the envelope breaks decryption."""
        envelope = backend_channel.encrypt(b"ok")
        size = len(base64.b64decode(envelope))
        for bit in range(size * 8):
            with pytest.raises(DecodeError):
                module_channel.decrypt(_flip(envelope, bit))

    def test_tag_failure_is_authentication_error(self, module_channel, backend_channel):
        """Test a corrupted tag raises AuthenticationError, a DecodeError."""
        envelope = backend_channel.encrypt(b"ok")
        with pytest.raises(AuthenticationError):
            module_channel.decrypt(_flip(envelope, 8 * 50))

    def test_failures_share_one_message(self, module_channel, backend_channel):
        """Test tag failures and malformed input read the same to callers."""
        envelope = backend_channel.encrypt(b"ok")
        with pytest.raises(DecodeError) as tag_failure:
            module_channel.decrypt(_flip(envelope, 8 * 50))
        with pytest.raises(DecodeError) as malformed:
            module_channel.decrypt("AAAA")
        assert str(tag_failure.value) == str(malformed.value)

    def test_parity_flip_without_binding(self, module_keys, backend_keys):
        """Test unbound envelopes accept a negated ephemeral point."""
        sender = CryptoChannel(
            StaticIdentity.from_config(BridgeConfig(
                private_key=backend_keys[0], peer_public_key=module_keys[1],
            )),
            bind_ephemeral_key=False,
        )
        receiver = CryptoChannel(
            StaticIdentity.from_config(BridgeConfig(
                private_key=module_keys[0], peer_public_key=backend_keys[1],
            )),
            bind_ephemeral_key=False,
        )
        envelope = sender.encrypt(b"legacy")
        assert receiver.decrypt(envelope) == b"legacy"
        assert receiver.decrypt(_flip(envelope, 0)) == b"legacy"


class TestMalformedInput:
    """Tests for envelopes that never reach the cipher."""

    @pytest.mark.parametrize("text", [
        "",
        "not base64!!",
        base64.b64encode(b"\x02" * 60).decode(),
    ])
    def test_rejected(self, module_channel, text):
        """Test short or non-base64 input raises DecodeError."""
        with pytest.raises(DecodeError):
            module_channel.decrypt(text)

    def test_invalid_point_rejected(self, module_channel):
        """Test an ephemeral key that is not a curve point is rejected."""
        raw = b"\x05" + b"\x00" * 32 + b"\x00" * 12 + b"\x00" * 16
        with pytest.raises(DecodeError):
            module_channel.decrypt(base64.b64encode(raw).decode())


class TestKeyDerivation:
    """Tests for the ECDH key schedule."""

    def test_derive_key_length(self):
        """Test the derived key is 32 bytes and deterministic."""
        key = derive_key(b"\x01" * 32)
        assert len(key) == 32
        assert key == derive_key(b"\x01" * 32)
        assert key != derive_key(b"\x02" * 32)

    def test_derived_key_is_not_raw_secret(self):
        """Test the shared coordinate is never used directly as the key."""
        shared_x = b"\x07" * 32
        assert derive_key(shared_x) != shared_x


class TestRecordHelpers:
    """Tests for encrypt_record / decrypt_record."""

    def test_request_round_trip(self, module_channel, backend_channel):
        """Test a request record survives encryption unchanged."""
        record = RequestRecord(request="ping", arg="", timestamp=1700000000)
        opened = backend_channel.decrypt_record(
            module_channel.encrypt_record(record), RequestRecord,
        )
        assert opened == record

    def test_wrong_target_type(self, module_channel, backend_channel):
        """Test decoding into the wrong record type raises DecodeError."""
        envelope = module_channel.encrypt_record("just text")
        with pytest.raises(DecodeError):
            backend_channel.decrypt_record(envelope, RequestRecord)

    def test_unencodable_record(self, module_channel):
        """Test an unserializable value raises EncodingError."""
        with pytest.raises(EncodingError):
            module_channel.encrypt_record(object())
