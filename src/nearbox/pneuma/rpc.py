"""
JSON-RPC Client for NEAR nodes.

One httpx channel per gateway; every call is a single request/response
exchange with no batching. The same class talks to the sandbox node and,
as a separate instance, to a production node for contract mirroring.
"""

from __future__ import annotations

import itertools
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..errors import (
    AccessKeyNotFound,
    AccountNotFound,
    BroadcastTimeout,
    ContractCodeNotFound,
    ExecutionFailure,
    InvalidNonceError,
    NodeRejected,
    RpcError,
    TransportError,
)
from ..utils import b64decode_str, b64encode_str, json_args_bytes

logger = logging.getLogger(__name__)

DEFAULT_SANDBOX_RPC_URL = "http://127.0.0.1:3030"
DEFAULT_MAINNET_RPC_URL = "https://rpc.mainnet.fastnear.com"

FINALITY = "final"
WAIT_UNTIL_FINAL = "FINAL"


# ============ Broadcast results ============


def collect_logs(outcome: dict[str, Any]) -> tuple[str, ...]:
    """
    Gather every log line from a final execution outcome.

    Receipts fan out (a factory call spawns child receipts), so logs from
    the transaction outcome and from *every* receipt outcome are collected
    in order. Both snake_case and camelCase payloads are accepted.
    """
    logs: list[str] = []

    top_level = outcome.get("logs")
    if isinstance(top_level, list):
        logs.extend(str(line) for line in top_level)

    tx_outcome = outcome.get("transaction_outcome") or outcome.get("transactionOutcome") or {}
    logs.extend(str(line) for line in (tx_outcome.get("outcome") or {}).get("logs") or [])

    receipts = outcome.get("receipts_outcome") or outcome.get("receiptsOutcome") or []
    for receipt in receipts:
        logs.extend(str(line) for line in (receipt.get("outcome") or {}).get("logs") or [])

    return tuple(logs)


@dataclass(frozen=True)
class BroadcastResult:
    """Outcome of a broadcast: success value, or failure detail plus logs.

    A failed execution is an expected result in sandbox tests, so it is
    returned as data. Call ``raise_for_failure()`` where it is fatal.
    """

    raw: dict[str, Any]
    status: dict[str, Any]
    logs: tuple[str, ...] = field(default_factory=tuple)
    transaction_hash: Optional[str] = None

    @classmethod
    def from_rpc(cls, result: dict[str, Any]) -> "BroadcastResult":
        status = result.get("status")
        if not isinstance(status, dict):
            status = {"Unknown": status}
        transaction = result.get("transaction") or {}
        tx_outcome = result.get("transaction_outcome") or result.get("transactionOutcome") or {}
        return cls(
            raw=result,
            status=status,
            logs=collect_logs(result),
            transaction_hash=transaction.get("hash") or tx_outcome.get("id"),
        )

    @property
    def failed(self) -> bool:
        return "Failure" in self.status

    @property
    def failure(self) -> Any:
        return self.status.get("Failure")

    @property
    def success_value(self) -> Optional[bytes]:
        value = self.status.get("SuccessValue")
        if value is None:
            return None
        return b64decode_str(value)

    def json(self) -> Any:
        value = self.success_value
        if not value:
            return None
        return json.loads(value)

    def logs_contain(self, pattern: str) -> bool:
        return any(pattern in line for line in self.logs)

    def raise_for_failure(self, context: str = "Transaction failed") -> "BroadcastResult":
        if self.failed:
            raise ExecutionFailure(
                f"{context}: {json.dumps(self.failure)}",
                failure=self.failure,
                logs=self.logs,
            )
        return self


# ============ Gateway ============


class RpcGateway:
    """
    Thin JSON-RPC wrapper around a single NEAR node endpoint.

    Args:
        url: Node RPC endpoint
        timeout: Seconds before any request (broadcast included) is abandoned
        read_retries: Extra attempts for read-only calls on transport errors
        retry_delay: Seconds between read retries
        transport: Optional httpx transport (tests plug in a MockTransport)
    """

    def __init__(
        self,
        url: str = DEFAULT_SANDBOX_RPC_URL,
        timeout: float = 30.0,
        read_retries: int = 0,
        retry_delay: float = 0.5,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self.read_retries = read_retries
        self.retry_delay = retry_delay
        self._ids = itertools.count(1)
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RpcGateway":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ---- low level ----

    def call(self, method: str, params: Any, *, read_only: bool = True) -> Any:
        """
        Make a JSON-RPC call.

        Read-only calls are retried ``read_retries`` times on transport
        errors. Writes are never retried: a lost response does not mean
        the node did not accept the transaction.

        Returns:
            Result field from the RPC response

        Raises:
            TransportError: If the request could not complete
            NodeRejected: If the node answered with an error
        """
        attempts = self.read_retries + 1 if read_only else 1
        attempt = 1
        while True:
            try:
                return self._call_once(method, params)
            except TransportError:
                if attempt >= attempts:
                    raise
                logger.debug("Retrying %s after transport error (attempt %d/%d)", method, attempt, attempts)
                attempt += 1
                time.sleep(self.retry_delay)

    def _call_once(self, method: str, params: Any) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug("RPC %s -> %s", method, self.url)

        try:
            response = self._client.post(self.url, json=payload)
        except httpx.TimeoutException as exc:
            if method in ("send_tx", "broadcast_tx_commit"):
                raise BroadcastTimeout(f"Broadcast timed out: {exc}", method=method) from exc
            raise TransportError(f"RPC {method} timed out: {exc}", method=method) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"RPC {method} failed: {exc}", method=method) from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and data.get("error") is not None:
            raise _classify_error(method, params, data["error"])
        if response.status_code >= 500:
            raise TransportError(f"RPC {method} returned HTTP {response.status_code}", method=method)
        if response.status_code >= 400 or not isinstance(data, dict):
            raise NodeRejected(
                f"RPC {method} returned HTTP {response.status_code}: {response.text[:200]}",
                method=method,
            )

        result = data.get("result")
        # Older nodes report query failures inside the result body.
        if isinstance(result, dict) and isinstance(result.get("error"), str):
            raise _classify_error(method, params, {"name": "HANDLER_ERROR", "message": result["error"]})
        return result

    def _query(self, request_type: str, **params: Any) -> dict[str, Any]:
        return self.call("query", {"request_type": request_type, "finality": FINALITY, **params})

    # ---- node ----

    def status(self) -> dict[str, Any]:
        return self.call("status", [])

    def latest_block_hash(self) -> str:
        """Base58 hash of the latest final block."""
        block = self.call("block", {"finality": FINALITY})
        return block["header"]["hash"]

    # ---- state ----

    def access_key_nonce(self, account_id: str, public_key: str) -> int:
        result = self._query("view_access_key", account_id=account_id, public_key=public_key)
        return int(result["nonce"])

    def view_account(self, account_id: str) -> dict[str, Any]:
        return self._query("view_account", account_id=account_id)

    def view_function(self, contract_id: str, method_name: str, args: Any = None) -> Any:
        """
        Run a read-only contract method.

        Returns:
            The method's JSON return value (None for an empty result,
            plain text if the contract returned something that is not JSON)
        """
        result = self._query(
            "call_function",
            account_id=contract_id,
            method_name=method_name,
            args_base64=b64encode_str(json_args_bytes(args)),
        )
        raw = bytes(result.get("result") or [])
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return raw.decode("utf-8", errors="replace")

    def view_code(self, contract_id: str) -> bytes:
        result = self._query("view_code", account_id=contract_id)
        code_b64 = result.get("code_base64") or result.get("codeBase64")
        if not code_b64:
            raise ContractCodeNotFound(f"No contract code found for {contract_id}", method="query")
        return b64decode_str(code_b64)

    # ---- transactions ----

    def broadcast_and_await_finality(
        self,
        signed_tx_base64: str,
        wait_until: str = WAIT_UNTIL_FINAL,
    ) -> BroadcastResult:
        """
        Submit a signed transaction and block until it reaches ``wait_until``.

        Returns:
            BroadcastResult; execution failures are data, not exceptions

        Raises:
            BroadcastTimeout: If the caller-side timeout expires first
            InvalidNonceError: If the nonce was already consumed
            NodeRejected: If the transaction was refused outright
        """
        result = self.call(
            "send_tx",
            {"signed_tx_base64": signed_tx_base64, "wait_until": wait_until},
            read_only=False,
        )
        broadcast = BroadcastResult.from_rpc(result or {})
        if broadcast.failed:
            logger.warning("Transaction %s failed: %s", broadcast.transaction_hash, broadcast.failure)
        return broadcast


# ============ Error classification ============


def _classify_error(method: str, params: Any, error: Any) -> RpcError:
    if not isinstance(error, dict):
        return NodeRejected(f"RPC error: {error}", method=method, data=error)

    name = error.get("name")
    cause = (error.get("cause") or {}).get("name") if isinstance(error.get("cause"), dict) else None
    text = json.dumps(error)
    message = f"RPC error: {error.get('message') or text}"
    request_type = params.get("request_type") if isinstance(params, dict) else None

    if cause == "UNKNOWN_ACCESS_KEY" or "UnknownAccessKey" in text or (
        request_type == "view_access_key" and "does not exist" in text
    ):
        return AccessKeyNotFound(message, method=method, data=error)
    if cause == "UNKNOWN_ACCOUNT" or "UnknownAccount" in text or (
        request_type == "view_account" and "does not exist" in text
    ):
        return AccountNotFound(message, method=method, data=error)
    if cause == "NO_CONTRACT_CODE" or "CodeDoesNotExist" in text:
        return ContractCodeNotFound(message, method=method, data=error)
    if "InvalidNonce" in text or "NonceTooLarge" in text:
        return InvalidNonceError(message, method=method, data=error)
    if name == "TIMEOUT_ERROR" or cause == "TIMEOUT_ERROR":
        return BroadcastTimeout(message, method=method, data=error)
    if name == "INTERNAL_ERROR":
        return TransportError(message, method=method, data=error)
    return NodeRejected(message, method=method, data=error)
