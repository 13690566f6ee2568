from __future__ import annotations

import base64
import hashlib
import json
from typing import Any

import base58


def sha256_digest(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def b64encode_str(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode_str(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.b64decode(value + padding)


def b58encode_str(data: bytes) -> str:
    return base58.b58encode(data).decode("ascii")


def b58decode_str(value: str) -> bytes:
    return base58.b58decode(value.encode("ascii"))


def json_args_bytes(args: Any) -> bytes:
    """Encode contract-call arguments the way near-api-js does (compact JSON, UTF-8)."""
    if isinstance(args, (bytes, bytearray)):
        return bytes(args)
    return json.dumps(args if args is not None else {}, separators=(",", ":")).encode("utf-8")
