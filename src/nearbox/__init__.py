__all__ = [
    # Configuration
    "SandboxConfig",
    "sandbox_genesis_records",
    # Keys & signing
    "KeyPair",
    "KeyStore",
    "PublicKey",
    "sign_transaction",
    "verify_signed_transaction",
    # Transactions
    "Transaction",
    "SignedTransaction",
    "NonceTracker",
    "build_transaction",
    # Amounts
    "to_base_units",
    "from_base_units",
    # RPC
    "RpcGateway",
    "BroadcastResult",
    # Workflows
    "Sandbox",
    "ContractMirror",
    "LockupProvisioner",
    "LockupStage",
    "account_to_lockup",
    "extract_lockup_contract_id",
    # Errors
    "SandboxError",
    "RpcError",
    "TransportError",
    "NodeUnavailable",
    "BroadcastTimeout",
    "NodeRejected",
    "AccessKeyNotFound",
    "AccountNotFound",
    "ContractCodeNotFound",
    "InvalidNonceError",
    "KeyStoreError",
    "AccountKeyUnknown",
    "ParentAccountUnknown",
    "ExecutionFailure",
    "ProvisioningError",
    "AddressRecoveryFailure",
    "OwnerAccountMissing",
    "AmountError",
]

from .config import SandboxConfig, sandbox_genesis_records
from .errors import (
    AccessKeyNotFound,
    AccountKeyUnknown,
    AccountNotFound,
    AddressRecoveryFailure,
    AmountError,
    BroadcastTimeout,
    ContractCodeNotFound,
    ExecutionFailure,
    InvalidNonceError,
    KeyStoreError,
    NodeRejected,
    NodeUnavailable,
    OwnerAccountMissing,
    ParentAccountUnknown,
    ProvisioningError,
    RpcError,
    SandboxError,
    TransportError,
)
from .pneuma.amount import from_base_units, to_base_units
from .pneuma.rpc import BroadcastResult, RpcGateway
from .pneuma.tx import NonceTracker, SignedTransaction, Transaction, build_transaction
from .sigil.crypto import sign_transaction, verify_signed_transaction
from .sigil.keys import KeyPair, KeyStore, PublicKey
from .sandbox.accounts import Sandbox
from .sandbox.mirror import ContractMirror
from .sandbox.lockup import LockupProvisioner, LockupStage, account_to_lockup, extract_lockup_contract_id
