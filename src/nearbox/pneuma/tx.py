"""
Transaction Builder - Assemble NEAR transactions and their binary envelope.

A Transaction is immutable once built. Signing (see ``sigil.crypto``)
wraps it in a separate SignedTransaction, which is base64-encoded for
transport.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

from ..sigil.keys import PublicKey
from ..utils import b58decode_str, b64encode_str, json_args_bytes, sha256_digest
from .amount import DEFAULT_FUNCTION_CALL_GAS
from .borsh import Deserializer, Serializer

if TYPE_CHECKING:
    from .rpc import RpcGateway

logger = logging.getLogger(__name__)


# ============ Actions ============
#
# Variant tags follow the on-chain Action enum order:
# CreateAccount=0, DeployContract=1, FunctionCall=2, Transfer=3, AddKey=5.


@dataclass(frozen=True)
class CreateAccount:
    tag = 0

    def serialize(self, ser: Serializer) -> None:
        pass


@dataclass(frozen=True)
class DeployContract:
    code: bytes
    tag = 1

    def serialize(self, ser: Serializer) -> None:
        ser.to_bytes(self.code)

    def __repr__(self) -> str:
        return f"DeployContract(code=<{len(self.code)} bytes>)"


@dataclass(frozen=True)
class FunctionCall:
    method_name: str
    args: bytes
    gas: int
    deposit: int
    tag = 2

    def serialize(self, ser: Serializer) -> None:
        ser.str(self.method_name)
        ser.to_bytes(self.args)
        ser.u64(self.gas)
        ser.u128(self.deposit)


@dataclass(frozen=True)
class Transfer:
    deposit: int
    tag = 3

    def serialize(self, ser: Serializer) -> None:
        ser.u128(self.deposit)


@dataclass(frozen=True)
class FunctionCallPermission:
    receiver_id: str
    method_names: tuple[str, ...] = ()
    allowance: Optional[int] = None


@dataclass(frozen=True)
class AddKey:
    public_key: PublicKey
    permission: Optional[FunctionCallPermission] = None  # None means full access
    tag = 5

    def serialize(self, ser: Serializer) -> None:
        _serialize_public_key(ser, self.public_key)
        ser.u64(0)  # access key nonce starts at zero
        if self.permission is None:
            ser.u8(1)
            return
        ser.u8(0)
        ser.option(self.permission.allowance, Serializer.u128)
        ser.str(self.permission.receiver_id)
        ser.sequence(list(self.permission.method_names), Serializer.str)


Action = Union[CreateAccount, DeployContract, FunctionCall, Transfer, AddKey]


def create_account() -> CreateAccount:
    return CreateAccount()


def deploy_contract(code: bytes) -> DeployContract:
    return DeployContract(bytes(code))


def function_call(
    method_name: str,
    args: Any = None,
    gas: int | str = DEFAULT_FUNCTION_CALL_GAS,
    deposit: int | str = 0,
) -> FunctionCall:
    """Build a FunctionCall action; ``args`` are JSON-encoded unless already bytes."""
    return FunctionCall(method_name, json_args_bytes(args), int(gas), int(deposit))


def transfer(deposit: int | str) -> Transfer:
    return Transfer(int(deposit))


def add_full_access_key(public_key: PublicKey) -> AddKey:
    return AddKey(public_key)


def add_function_call_key(public_key: PublicKey, permission: FunctionCallPermission) -> AddKey:
    return AddKey(public_key, permission)


# ============ Transaction ============


@dataclass(frozen=True)
class Transaction:
    signer_id: str
    public_key: PublicKey
    nonce: int
    receiver_id: str
    block_hash: bytes
    actions: tuple[Action, ...] = field(default_factory=tuple)

    def serialize(self, ser: Serializer) -> None:
        ser.str(self.signer_id)
        _serialize_public_key(ser, self.public_key)
        ser.u64(self.nonce)
        ser.str(self.receiver_id)
        ser.fixed_bytes(self.block_hash, 32)
        ser.sequence(list(self.actions), _serialize_action)

    def to_bytes(self) -> bytes:
        ser = Serializer()
        self.serialize(ser)
        return ser.output()

    def hash(self) -> bytes:
        """SHA-256 of the serialized transaction; this is what gets signed."""
        return sha256_digest(self.to_bytes())


@dataclass(frozen=True)
class SignedTransaction:
    transaction: Transaction
    signature: bytes

    def to_bytes(self) -> bytes:
        ser = Serializer()
        self.transaction.serialize(ser)
        ser.u8(self.transaction.public_key.key_type)
        ser.fixed_bytes(self.signature, 64)
        return ser.output()

    def to_base64(self) -> str:
        return b64encode_str(self.to_bytes())

    @classmethod
    def from_bytes(cls, data: bytes) -> "SignedTransaction":
        des = Deserializer(data)
        transaction = _deserialize_transaction(des)
        des.u8()
        signature = des.fixed_bytes(64)
        if des.remaining():
            raise ValueError(f"{des.remaining()} trailing bytes after signed transaction")
        return cls(transaction, signature)


def build_transaction(
    signer_id: str,
    public_key: PublicKey,
    receiver_id: str,
    nonce: int,
    block_hash: bytes | str,
    actions: Sequence[Action],
) -> Transaction:
    """
    Assemble an unsigned transaction.

    Args:
        signer_id: Account paying for and signing the transaction
        public_key: Signer's access key
        receiver_id: Account the actions apply to
        nonce: Access-key nonce to use (observed + 1)
        block_hash: Recent block hash, raw 32 bytes or base58 text
        actions: Ordered action list

    Returns:
        Immutable Transaction
    """
    if isinstance(block_hash, str):
        block_hash = b58decode_str(block_hash)
    if len(block_hash) != 32:
        raise ValueError(f"Block hash must be 32 bytes, got {len(block_hash)}")
    if not actions:
        raise ValueError("A transaction needs at least one action")
    return Transaction(
        signer_id=signer_id,
        public_key=public_key,
        nonce=nonce,
        receiver_id=receiver_id,
        block_hash=bytes(block_hash),
        actions=tuple(actions),
    )


# ============ Nonce tracking ============


class NonceTracker:
    """Reads the access-key nonce right before every transaction.

    Nothing is cached: two concurrent submissions from the same key can
    observe the same value, so callers must serialize per account.
    """

    def __init__(self, gateway: "RpcGateway") -> None:
        self.gateway = gateway

    def next_nonce(self, account_id: str, public_key: PublicKey | str) -> int:
        observed = self.gateway.access_key_nonce(account_id, str(public_key))
        logger.debug("Access key nonce for %s is %d", account_id, observed)
        return observed + 1


# ============ Helpers ============


def _serialize_public_key(ser: Serializer, key: PublicKey) -> None:
    ser.u8(key.key_type)
    ser.fixed_bytes(key.data, 32)


def _serialize_action(ser: Serializer, action: Action) -> None:
    ser.u8(action.tag)
    action.serialize(ser)


def _deserialize_public_key(des: Deserializer) -> PublicKey:
    key_type = des.u8()
    if key_type != 0:
        raise ValueError(f"Unsupported key type tag: {key_type}")
    return PublicKey(des.fixed_bytes(32))


def _deserialize_action(des: Deserializer) -> Action:
    tag = des.u8()
    if tag == CreateAccount.tag:
        return CreateAccount()
    if tag == DeployContract.tag:
        return DeployContract(des.to_bytes())
    if tag == FunctionCall.tag:
        return FunctionCall(des.str(), des.to_bytes(), des.u64(), des.u128())
    if tag == Transfer.tag:
        return Transfer(des.u128())
    if tag == AddKey.tag:
        key = _deserialize_public_key(des)
        des.u64()
        if des.u8() == 1:
            return AddKey(key)
        allowance = des.option(Deserializer.u128)
        receiver_id = des.str()
        method_names = tuple(des.sequence(Deserializer.str))
        return AddKey(key, FunctionCallPermission(receiver_id, method_names, allowance))
    raise ValueError(f"Unsupported action tag: {tag}")


def _deserialize_transaction(des: Deserializer) -> Transaction:
    return Transaction(
        signer_id=des.str(),
        public_key=_deserialize_public_key(des),
        nonce=des.u64(),
        receiver_id=des.str(),
        block_hash=des.fixed_bytes(32),
        actions=tuple(des.sequence(_deserialize_action)),
    )
