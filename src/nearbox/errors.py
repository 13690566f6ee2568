"""
Error taxonomy for the sandbox client.

Every error carries an ``exit_code`` so the CLI can map failures to
process exit status.
"""

from __future__ import annotations

from typing import Any, Optional


class SandboxError(RuntimeError):
    exit_code: int = 1


# ============ RPC ============


class RpcError(SandboxError):
    """Base class for anything raised while talking to a node."""

    def __init__(self, message: str, *, method: Optional[str] = None, data: Any = None) -> None:
        super().__init__(message)
        self.method = method
        self.data = data


class TransportError(RpcError):
    """The request never completed (connection refused, reset, timeout)."""

    exit_code = 2


NodeUnavailable = TransportError


class BroadcastTimeout(TransportError):
    """A broadcast outlived the caller-side timeout.

    The transaction may still land; do not resubmit it blindly.
    """


class NodeRejected(RpcError):
    """The node answered with a JSON-RPC error."""

    exit_code = 3


class AccessKeyNotFound(NodeRejected):
    pass


class AccountNotFound(NodeRejected):
    pass


class ContractCodeNotFound(NodeRejected):
    pass


class InvalidNonceError(NodeRejected):
    """The node refused a transaction because its nonce was already used."""


# ============ Key store ============


class KeyStoreError(SandboxError):
    exit_code = 4


class AccountKeyUnknown(KeyStoreError):
    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account {account_id} not found. Create it first.")
        self.account_id = account_id


class ParentAccountUnknown(AccountKeyUnknown):
    def __init__(self, account_id: str) -> None:
        KeyStoreError.__init__(self, f"Parent account {account_id} has no registered key.")
        self.account_id = account_id


# ============ Execution ============


class ExecutionFailure(SandboxError):
    """A transaction was included but one of its receipts failed."""

    exit_code = 5

    def __init__(self, message: str, *, failure: Any = None, logs: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.failure = failure
        self.logs = logs


# ============ Provisioning workflows ============


class ProvisioningError(SandboxError):
    exit_code = 6


class AddressRecoveryFailure(ProvisioningError):
    pass


class OwnerAccountMissing(ProvisioningError):
    pass


class AmountError(ValueError):
    pass


__all__ = [
    "AccessKeyNotFound",
    "AccountKeyUnknown",
    "AccountNotFound",
    "AddressRecoveryFailure",
    "AmountError",
    "BroadcastTimeout",
    "ContractCodeNotFound",
    "ExecutionFailure",
    "InvalidNonceError",
    "KeyStoreError",
    "NodeRejected",
    "NodeUnavailable",
    "OwnerAccountMissing",
    "ParentAccountUnknown",
    "ProvisioningError",
    "RpcError",
    "SandboxError",
    "TransportError",
]
