"""Unit tests for Borsh encoding, transaction building and signing."""

from __future__ import annotations

import struct

import pytest

from nearbox.pneuma import tx as actions
from nearbox.pneuma.borsh import Deserializer, Serializer
from nearbox.pneuma.tx import (
    FunctionCallPermission,
    NonceTracker,
    SignedTransaction,
    build_transaction,
)
from nearbox.sigil.crypto import SignatureError, sign_transaction, verify_signed_transaction
from nearbox.sigil.keys import KeyPair, PublicKey
from nearbox.utils import b58encode_str, sha256_digest

BLOCK_HASH = bytes(range(32))


def _key() -> KeyPair:
    return KeyPair.from_seed(b"\x07" * 32)


class TestBorsh:
    def test_integers_little_endian(self) -> None:
        ser = Serializer()
        ser.u8(1)
        ser.u32(2)
        ser.u64(3)
        ser.u128(4)
        assert ser.output() == b"\x01" + struct.pack("<I", 2) + struct.pack("<Q", 3) + (4).to_bytes(16, "little")

    def test_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            Serializer().u8(256)
        with pytest.raises(ValueError):
            Serializer().u64(-1)

    def test_string_and_option(self) -> None:
        ser = Serializer()
        ser.str("hé")
        ser.option(None, Serializer.u8)
        ser.option(9, Serializer.u8)
        data = ser.output()
        assert data == struct.pack("<I", 3) + "hé".encode() + b"\x00" + b"\x01\x09"

        des = Deserializer(data)
        assert des.str() == "hé"
        assert des.option(Deserializer.u8) is None
        assert des.option(Deserializer.u8) == 9
        assert des.remaining() == 0

    def test_short_input(self) -> None:
        with pytest.raises(ValueError):
            Deserializer(b"\x01\x00").u32()

    def test_fixed_bytes_length_checked(self) -> None:
        with pytest.raises(ValueError):
            Serializer().fixed_bytes(b"\x00" * 31, 32)


class TestTransactionLayout:
    def test_transfer_bytes(self) -> None:
        pk = PublicKey(b"\x00" * 32)
        transaction = build_transaction("a", pk, "b", 5, BLOCK_HASH, [actions.transfer(1)])
        expected = (
            struct.pack("<I", 1) + b"a"
            + b"\x00" + b"\x00" * 32
            + struct.pack("<Q", 5)
            + struct.pack("<I", 1) + b"b"
            + BLOCK_HASH
            + struct.pack("<I", 1)
            + b"\x03" + (1).to_bytes(16, "little")
        )
        assert transaction.to_bytes() == expected
        assert transaction.hash() == sha256_digest(expected)

    def test_action_tags(self) -> None:
        pk = _key().public_key
        cases = [
            (actions.create_account(), 0),
            (actions.deploy_contract(b"\x00asm"), 1),
            (actions.function_call("m"), 2),
            (actions.transfer(0), 3),
            (actions.add_full_access_key(pk), 5),
        ]
        for action, tag in cases:
            transaction = build_transaction("a", pk, "b", 1, BLOCK_HASH, [action])
            body = transaction.to_bytes()
            action_offset = 4 + 1 + 1 + 32 + 8 + 4 + 1 + 32 + 4
            assert body[action_offset] == tag

    def test_function_call_args_are_compact_json(self) -> None:
        action = actions.function_call("ft_transfer", {"receiver_id": "bob", "amount": "1"}, 10, "2")
        assert action.args == b'{"receiver_id":"bob","amount":"1"}'
        assert action.gas == 10
        assert action.deposit == 2

    def test_full_access_key_layout(self) -> None:
        pk = _key().public_key
        ser = Serializer()
        actions.add_full_access_key(pk).serialize(ser)
        assert ser.output() == b"\x00" + pk.data + b"\x00" * 8 + b"\x01"

    def test_function_call_key_layout(self) -> None:
        pk = _key().public_key
        permission = FunctionCallPermission("dao.test.near", ("vote",), allowance=5)
        ser = Serializer()
        actions.add_function_call_key(pk, permission).serialize(ser)
        assert ser.output() == (
            b"\x00" + pk.data + b"\x00" * 8
            + b"\x00"
            + b"\x01" + (5).to_bytes(16, "little")
            + struct.pack("<I", 13) + b"dao.test.near"
            + struct.pack("<I", 1) + struct.pack("<I", 4) + b"vote"
        )

    def test_base58_block_hash_accepted(self) -> None:
        pk = _key().public_key
        transaction = build_transaction("a", pk, "b", 1, b58encode_str(BLOCK_HASH), [actions.transfer(1)])
        assert transaction.block_hash == BLOCK_HASH

    def test_bad_block_hash(self) -> None:
        with pytest.raises(ValueError):
            build_transaction("a", _key().public_key, "b", 1, b"\x00" * 8, [actions.transfer(1)])

    def test_empty_actions(self) -> None:
        with pytest.raises(ValueError):
            build_transaction("a", _key().public_key, "b", 1, BLOCK_HASH, [])


class TestSigning:
    def _transaction(self, key: KeyPair, nonce: int = 1):
        return build_transaction(
            "alice.test.near",
            key.public_key,
            "bob.test.near",
            nonce,
            BLOCK_HASH,
            [actions.transfer("1000"), actions.function_call("ping", {"n": 1})],
        )

    def test_deterministic(self) -> None:
        key = _key()
        first = sign_transaction(self._transaction(key), key)
        second = sign_transaction(self._transaction(key), key)
        assert first.signature == second.signature
        assert first.to_base64() == second.to_base64()

    def test_signature_covers_hash(self) -> None:
        key = _key()
        signed = sign_transaction(self._transaction(key), key)
        assert key.public_key.verify(signed.signature, signed.transaction.hash())
        verify_signed_transaction(signed)

    def test_envelope_layout(self) -> None:
        key = _key()
        signed = sign_transaction(self._transaction(key), key)
        body = signed.transaction.to_bytes()
        assert signed.to_bytes() == body + b"\x00" + signed.signature
        assert len(signed.signature) == 64

    def test_envelope_decodes(self) -> None:
        key = _key()
        signed = sign_transaction(self._transaction(key, nonce=42), key)
        decoded = SignedTransaction.from_bytes(signed.to_bytes())
        assert decoded == signed
        assert decoded.transaction.nonce == 42

    def test_trailing_bytes_rejected(self) -> None:
        key = _key()
        signed = sign_transaction(self._transaction(key), key)
        with pytest.raises(ValueError):
            SignedTransaction.from_bytes(signed.to_bytes() + b"\x00")

    def test_wrong_key_rejected(self) -> None:
        key = _key()
        with pytest.raises(SignatureError):
            sign_transaction(self._transaction(key), KeyPair.from_random())

    def test_tampered_signature_fails(self) -> None:
        key = _key()
        signed = sign_transaction(self._transaction(key), key)
        forged = SignedTransaction(signed.transaction, bytes(64))
        with pytest.raises(SignatureError):
            verify_signed_transaction(forged)


class TestNonceTracker:
    class _Gateway:
        def __init__(self, nonce: int) -> None:
            self.nonce = nonce
            self.calls: list[tuple[str, str]] = []

        def access_key_nonce(self, account_id: str, public_key: str) -> int:
            self.calls.append((account_id, public_key))
            return self.nonce

    def test_observed_plus_one(self) -> None:
        gateway = self._Gateway(41)
        key = _key().public_key
        assert NonceTracker(gateway).next_nonce("alice.test.near", key) == 42
        assert gateway.calls == [("alice.test.near", str(key))]

    def test_idempotent_without_submission(self) -> None:
        tracker = NonceTracker(self._Gateway(7))
        assert tracker.next_nonce("a", "ed25519:x") == tracker.next_nonce("a", "ed25519:x") == 8
