"""
Ed25519 key management for sandbox accounts.

Keys use NEAR's text form, ``ed25519:<base58>``:
- public keys encode the 32 raw public bytes
- secret keys encode 64 bytes (32-byte seed followed by the public key)

The KeyStore maps account ids to the one keypair the client signs with.
It is an explicit object handed to whatever needs it, so several
independent sandboxes can live in one process.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterator, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from ..errors import AccountKeyUnknown
from ..utils import b58decode_str, b58encode_str

ED25519 = "ed25519"
ED25519_KEY_TYPE = 0

# Key baked into near-sandbox genesis for test.near / near / sandbox.
DEFAULT_SANDBOX_PRIVATE_KEY = (
    "ed25519:3D4YudUahN1nawWogh8pAKSj92sUNMdbZGjn7kERKzYoTy8tnFQuwoGUC51DowKqorvkr2pytJSnwuSbsNVfqygr"
)


def _split_key_string(value: str) -> tuple[str, bytes]:
    curve, sep, encoded = value.partition(":")
    if not sep:
        curve, encoded = ED25519, value
    if curve != ED25519:
        raise ValueError(f"Unsupported key type: {curve}")
    return curve, b58decode_str(encoded)


@dataclass(frozen=True)
class PublicKey:
    data: bytes
    key_type: int = ED25519_KEY_TYPE

    def __post_init__(self) -> None:
        if len(self.data) != 32:
            raise ValueError(f"Ed25519 public key must be 32 bytes, got {len(self.data)}")

    @classmethod
    def from_string(cls, value: str) -> "PublicKey":
        _, raw = _split_key_string(value)
        return cls(raw)

    def verify(self, signature: bytes, message: bytes) -> bool:
        key = ed25519.Ed25519PublicKey.from_public_bytes(self.data)
        try:
            key.verify(signature, message)
        except InvalidSignature:
            return False
        return True

    def __str__(self) -> str:
        return f"{ED25519}:{b58encode_str(self.data)}"


class KeyPair:
    """An ed25519 signing keypair."""

    def __init__(self, private_key: ed25519.Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self.public_key = PublicKey(
            private_key.public_key().public_bytes(
                encoding=serialization.Encoding.Raw,
                format=serialization.PublicFormat.Raw,
            )
        )

    @classmethod
    def from_random(cls) -> "KeyPair":
        return cls(ed25519.Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "KeyPair":
        return cls(ed25519.Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def from_string(cls, value: str) -> "KeyPair":
        """
        Load a keypair from ``ed25519:<base58>``.

        Accepts both the 64-byte (seed + public key) and bare 32-byte seed forms.

        Raises:
            ValueError: If the key is malformed or its public half does not match
        """
        _, raw = _split_key_string(value)
        if len(raw) not in (32, 64):
            raise ValueError(f"Ed25519 secret key must be 32 or 64 bytes, got {len(raw)}")
        pair = cls.from_seed(raw[:32])
        if len(raw) == 64 and raw[32:] != pair.public_key.data:
            raise ValueError("Secret key does not match its embedded public key.")
        return pair

    def seed(self) -> bytes:
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    def __str__(self) -> str:
        return f"{ED25519}:{b58encode_str(self.seed() + self.public_key.data)}"

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key})"


class KeyStore:
    """In-memory account id -> keypair map.

    Putting a new keypair for a known account replaces the lookup entry;
    the old key stays valid on chain but is no longer used for signing.
    """

    def __init__(self) -> None:
        self._keys: dict[str, KeyPair] = {}
        self._lock = threading.Lock()

    def put(self, account_id: str, key_pair: KeyPair) -> None:
        with self._lock:
            self._keys[account_id] = key_pair

    def get(self, account_id: str) -> KeyPair:
        with self._lock:
            key_pair = self._keys.get(account_id)
        if key_pair is None:
            raise AccountKeyUnknown(account_id)
        return key_pair

    def find(self, account_id: str) -> Optional[KeyPair]:
        with self._lock:
            return self._keys.get(account_id)

    def __contains__(self, account_id: object) -> bool:
        with self._lock:
            return account_id in self._keys

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._keys))

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)
