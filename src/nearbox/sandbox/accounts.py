"""
Sandbox accounts - create, fund, deploy, call.

Every transaction goes through the same pipeline: read the latest final
block hash, read the signer's access-key nonce, build, sign, broadcast
and wait for finality. The nonce read-then-increment is not atomic, so
each signer's submissions run under that signer's lock; different
signers proceed in parallel.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional, Sequence

import httpx

from ..config import SandboxConfig
from ..errors import ParentAccountUnknown, SandboxError, TransportError
from ..pneuma import tx as actions
from ..pneuma.amount import DEFAULT_FUNCTION_CALL_GAS
from ..pneuma.rpc import BroadcastResult, RpcGateway
from ..pneuma.tx import Action, NonceTracker, build_transaction
from ..sigil.crypto import sign_transaction
from ..sigil.keys import KeyPair, KeyStore

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_BALANCE = "100000000000000000000000000"  # 100 NEAR


class Sandbox:
    """
    Transaction client for a running sandbox node.

    Args:
        gateway: RPC gateway pointed at the sandbox node
        key_store: Keys the client signs with (a fresh store if omitted)
        post_broadcast_delay: Seconds to pause after each broadcast so the
            next read sees the new final block
    """

    def __init__(
        self,
        gateway: RpcGateway,
        key_store: Optional[KeyStore] = None,
        post_broadcast_delay: float = 0.0,
    ) -> None:
        self.gateway = gateway
        self.keys = key_store if key_store is not None else KeyStore()
        self.nonces = NonceTracker(gateway)
        self.post_broadcast_delay = post_broadcast_delay
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: SandboxConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "Sandbox":
        """Build a sandbox client with the genesis root accounts' key registered."""
        gateway = RpcGateway(
            config.rpc_url,
            timeout=config.timeout,
            read_retries=config.read_retries,
            transport=transport,
        )
        sandbox = cls(gateway, post_broadcast_delay=config.post_broadcast_delay)
        sandbox.register_accounts(config.root_accounts, KeyPair.from_string(config.root_private_key))
        return sandbox

    def close(self) -> None:
        self.gateway.close()

    def __enter__(self) -> "Sandbox":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ============ Node ============

    @property
    def rpc_url(self) -> str:
        return self.gateway.url

    def connect(self) -> dict[str, Any]:
        """Verify the node answers and return its status."""
        status = self.gateway.status()
        logger.info("RPC connection verified - chain id %s", status.get("chain_id"))
        return status

    def wait_until_ready(self, timeout: float = 60.0, poll_interval: float = 0.5) -> dict[str, Any]:
        """
        Poll the node until it answers ``status``.

        Raises:
            TimeoutError: If the node is not reachable within timeout
        """
        start = time.time()
        while time.time() - start < timeout:
            try:
                return self.connect()
            except TransportError:
                time.sleep(poll_interval)
        raise TimeoutError(f"Sandbox node at {self.rpc_url} not ready within {timeout}s")

    # ============ Keys & locking ============

    def register_accounts(self, account_ids: Iterable[str], key_pair: KeyPair) -> None:
        for account_id in account_ids:
            self.keys.put(account_id, key_pair)

    def get_key_pair(self, account_id: str) -> Optional[KeyPair]:
        return self.keys.find(account_id)

    @contextmanager
    def account_lock(self, account_id: str) -> Iterator[None]:
        """
        Hold the submission lock for one signer.

        Re-entrant, so callers can wrap several operations from the same
        account (for example a read followed by dependent transactions).
        """
        with self._locks_guard:
            lock = self._locks.setdefault(account_id, threading.RLock())
        with lock:
            yield

    # ============ Transactions ============

    def sign_and_send(
        self,
        signer_id: str,
        receiver_id: str,
        action_list: Sequence[Action],
        key_pair: Optional[KeyPair] = None,
    ) -> BroadcastResult:
        """
        Build, sign and broadcast a transaction, waiting for finality.

        Raises:
            AccountKeyUnknown: If no key is registered for the signer
        """
        key_pair = key_pair or self.keys.get(signer_id)
        with self.account_lock(signer_id):
            block_hash = self.gateway.latest_block_hash()
            nonce = self.nonces.next_nonce(signer_id, key_pair.public_key)
            transaction = build_transaction(
                signer_id, key_pair.public_key, receiver_id, nonce, block_hash, action_list
            )
            signed = sign_transaction(transaction, key_pair)
            result = self.gateway.broadcast_and_await_finality(signed.to_base64())
            if self.post_broadcast_delay > 0:
                time.sleep(self.post_broadcast_delay)
        return result

    def create_account(
        self,
        account_id: str,
        initial_balance: str | int = DEFAULT_ACCOUNT_BALANCE,
        parent_id: Optional[str] = None,
    ) -> str:
        """
        Create, fund and key a new account.

        The parent defaults to ``account_id`` minus its first label
        (``alice.test.near`` -> ``test.near``). The parent pays and signs;
        the new account gets a fresh full-access key. The key is stored
        before broadcasting; if creation fails, whatever key was already
        registered for ``account_id`` is put back.

        Returns:
            The created account id

        Raises:
            ParentAccountUnknown: If the parent has no registered key
            ExecutionFailure: If the node rejected the creation receipt
        """
        parent_id = parent_id or _parent_of(account_id)
        parent_key = self.keys.find(parent_id)
        if parent_key is None:
            raise ParentAccountUnknown(parent_id)

        previous_key = self.keys.find(account_id)
        new_key = KeyPair.from_random()
        self.keys.put(account_id, new_key)

        try:
            result = self.sign_and_send(
                parent_id,
                account_id,
                [
                    actions.create_account(),
                    actions.transfer(initial_balance),
                    actions.add_full_access_key(new_key.public_key),
                ],
                key_pair=parent_key,
            )
            result.raise_for_failure(f"Failed to create account {account_id}")
        except SandboxError:
            # a live account keeps signing with the key the chain knows
            if previous_key is not None:
                self.keys.put(account_id, previous_key)
            raise
        logger.info("Created account %s (parent %s)", account_id, parent_id)
        return account_id

    def deploy_contract(self, account_id: str, code: bytes) -> BroadcastResult:
        """Deploy code to an account, signed by the account's own key."""
        result = self.sign_and_send(account_id, account_id, [actions.deploy_contract(code)])
        result.raise_for_failure(f"Failed to deploy contract to {account_id}")
        logger.info("Deployed contract to %s (%d bytes)", account_id, len(code))
        return result

    def function_call(
        self,
        signer_id: str,
        receiver_id: str,
        method_name: str,
        args: Any = None,
        gas: str | int = DEFAULT_FUNCTION_CALL_GAS,
        deposit: str | int = "0",
    ) -> BroadcastResult:
        """Call a contract method; the full result comes back, failed or not."""
        return self.sign_and_send(
            signer_id,
            receiver_id,
            [actions.function_call(method_name, args, gas, deposit)],
        )

    def transfer(self, signer_id: str, receiver_id: str, amount: str | int) -> BroadcastResult:
        return self.sign_and_send(signer_id, receiver_id, [actions.transfer(amount)])

    # ============ Views ============

    def view_function(self, contract_id: str, method_name: str, args: Any = None) -> Any:
        return self.gateway.view_function(contract_id, method_name, args)

    def view_account(self, account_id: str) -> dict[str, Any]:
        return self.gateway.view_account(account_id)

    def balance(self, account_id: str) -> int:
        return int(self.view_account(account_id)["amount"])


def _parent_of(account_id: str) -> str:
    _, sep, parent = account_id.partition(".")
    if not sep or not parent:
        raise ValueError(f"Top-level account {account_id} needs an explicit parent_id")
    return parent
