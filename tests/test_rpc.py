"""Unit tests for the JSON-RPC gateway and broadcast results."""

from __future__ import annotations

import json

import httpx
import pytest

from nearbox.errors import (
    AccessKeyNotFound,
    AccountNotFound,
    BroadcastTimeout,
    ContractCodeNotFound,
    ExecutionFailure,
    InvalidNonceError,
    NodeRejected,
    TransportError,
)
from nearbox.pneuma.rpc import BroadcastResult, RpcGateway, collect_logs
from nearbox.utils import b64encode_str


def _gateway(handler, **kwargs) -> RpcGateway:
    return RpcGateway("http://node.test", transport=httpx.MockTransport(handler), retry_delay=0, **kwargs)


def _error_response(error: dict):
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": error})

    return handler


class TestEnvelope:
    def test_payload_shape(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            seen.append(payload)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": {"chain_id": "sandbox"}})

        with _gateway(handler) as gateway:
            assert gateway.status() == {"chain_id": "sandbox"}
            gateway.status()

        assert seen[0]["jsonrpc"] == "2.0"
        assert seen[0]["method"] == "status"
        assert seen[0]["id"] != seen[1]["id"]

    def test_latest_block_hash(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            assert payload["params"] == {"finality": "final"}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"header": {"hash": "abc"}}})

        with _gateway(handler) as gateway:
            assert gateway.latest_block_hash() == "abc"

    def test_view_function_decodes_bytes(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            params = json.loads(request.content)["params"]
            assert params["request_type"] == "call_function"
            assert params["args_base64"] == b64encode_str(b'{"account_id":"bob"}')
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"result": list(b'"42"')}})

        with _gateway(handler) as gateway:
            assert gateway.view_function("ft.test.near", "ft_balance_of", {"account_id": "bob"}) == "42"

    def test_view_function_empty_and_text(self) -> None:
        results = iter([[], list(b"not json")])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"result": next(results)}})

        with _gateway(handler) as gateway:
            assert gateway.view_function("c", "m") is None
            assert gateway.view_function("c", "m") == "not json"

    def test_view_code_without_code(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"code_base64": ""}})

        with _gateway(handler) as gateway, pytest.raises(ContractCodeNotFound):
            gateway.view_code("empty.near")


class TestErrorClassification:
    @pytest.mark.parametrize(
        "cause, expected",
        [
            ("UNKNOWN_ACCESS_KEY", AccessKeyNotFound),
            ("UNKNOWN_ACCOUNT", AccountNotFound),
            ("NO_CONTRACT_CODE", ContractCodeNotFound),
            ("PARSE_ERROR", NodeRejected),
        ],
    )
    def test_handler_error_causes(self, cause: str, expected: type) -> None:
        error = {"name": "HANDLER_ERROR", "cause": {"name": cause, "info": {}}, "message": "Server error"}
        with _gateway(_error_response(error)) as gateway:
            with pytest.raises(expected) as excinfo:
                gateway.view_account("ghost.near")
        assert excinfo.value.data == error
        assert excinfo.value.method == "query"

    def test_invalid_nonce(self) -> None:
        error = {
            "name": "HANDLER_ERROR",
            "cause": {"name": "INVALID_TRANSACTION", "info": {}},
            "data": {"TxExecutionError": {"InvalidTxError": {"InvalidNonce": {"tx_nonce": 1, "ak_nonce": 5}}}},
        }
        with _gateway(_error_response(error)) as gateway, pytest.raises(InvalidNonceError):
            gateway.broadcast_and_await_finality("AAAA")

    def test_not_enough_balance_is_rejection(self) -> None:
        error = {
            "name": "HANDLER_ERROR",
            "cause": {"name": "INVALID_TRANSACTION", "info": {}},
            "data": {
                "TxExecutionError": {
                    "InvalidTxError": {"NotEnoughBalance": {"signer_id": "dao.near", "balance": "5", "cost": "6"}}
                }
            },
        }
        with _gateway(_error_response(error)) as gateway, pytest.raises(NodeRejected) as excinfo:
            gateway.broadcast_and_await_finality("AAAA")
        assert not isinstance(excinfo.value, (InvalidNonceError, BroadcastTimeout))
        assert excinfo.value.data == error

    def test_node_timeout_error(self) -> None:
        error = {"name": "HANDLER_ERROR", "cause": {"name": "TIMEOUT_ERROR"}}
        with _gateway(_error_response(error)) as gateway, pytest.raises(BroadcastTimeout):
            gateway.broadcast_and_await_finality("AAAA")

    def test_internal_error_is_transport(self) -> None:
        error = {"name": "INTERNAL_ERROR", "cause": {"name": "INTERNAL_ERROR"}}
        with _gateway(_error_response(error)) as gateway, pytest.raises(TransportError):
            gateway.status()

    def test_legacy_result_error_string(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "result": {"error": "access key ed25519:abc does not exist while viewing"}},
            )

        with _gateway(handler) as gateway, pytest.raises(AccessKeyNotFound):
            gateway.access_key_nonce("alice.near", "ed25519:abc")

    def test_http_500_is_transport(self) -> None:
        with _gateway(lambda request: httpx.Response(502, text="bad gateway")) as gateway:
            with pytest.raises(TransportError):
                gateway.status()

    def test_http_400_is_rejection(self) -> None:
        with _gateway(lambda request: httpx.Response(400, text="bad request")) as gateway:
            with pytest.raises(NodeRejected):
                gateway.status()


class TestRetries:
    def _flaky(self, failures: int, method_log: list[str]):
        state = {"left": failures}

        def handler(request: httpx.Request) -> httpx.Response:
            method_log.append(json.loads(request.content)["method"])
            if state["left"]:
                state["left"] -= 1
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"ok": True}})

        return handler

    def test_reads_retry(self) -> None:
        log: list[str] = []
        with _gateway(self._flaky(2, log), read_retries=2) as gateway:
            assert gateway.status() == {"ok": True}
        assert log == ["status"] * 3

    def test_reads_give_up(self) -> None:
        log: list[str] = []
        with _gateway(self._flaky(5, log), read_retries=1) as gateway, pytest.raises(TransportError):
            gateway.status()
        assert len(log) == 2

    def test_broadcast_never_retried(self) -> None:
        log: list[str] = []
        with _gateway(self._flaky(1, log), read_retries=3) as gateway, pytest.raises(TransportError):
            gateway.broadcast_and_await_finality("AAAA")
        assert log == ["send_tx"]

    def test_broadcast_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with _gateway(handler) as gateway, pytest.raises(BroadcastTimeout):
            gateway.broadcast_and_await_finality("AAAA")

    def test_read_timeout_is_plain_transport(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with _gateway(handler) as gateway, pytest.raises(TransportError) as excinfo:
            gateway.status()
        assert not isinstance(excinfo.value, BroadcastTimeout)


class TestBroadcastResult:
    OUTCOME = {
        "status": {"Failure": {"ActionError": {"index": 0}}},
        "transaction": {"hash": "tx-hash"},
        "transaction_outcome": {"id": "tx-hash", "outcome": {"logs": ["tx log"]}},
        "receipts_outcome": [
            {"outcome": {"logs": ["first"]}},
            {"outcome": {"logs": []}},
            {"outcome": {"logs": ["The lockup contract abc.lockup.near was successfully created."]}},
        ],
    }

    def test_collect_logs_all_receipts(self) -> None:
        assert collect_logs(self.OUTCOME) == (
            "tx log",
            "first",
            "The lockup contract abc.lockup.near was successfully created.",
        )

    def test_camel_case_receipts(self) -> None:
        outcome = {"receiptsOutcome": [{"outcome": {"logs": ["deep"]}}]}
        assert collect_logs(outcome) == ("deep",)

    def test_failure_is_data(self) -> None:
        result = BroadcastResult.from_rpc(self.OUTCOME)
        assert result.failed
        assert result.transaction_hash == "tx-hash"
        assert result.logs_contain("successfully created")
        with pytest.raises(ExecutionFailure) as excinfo:
            result.raise_for_failure("create failed")
        assert excinfo.value.failure == {"ActionError": {"index": 0}}
        assert "first" in excinfo.value.logs

    def test_success_value(self) -> None:
        result = BroadcastResult.from_rpc({"status": {"SuccessValue": b64encode_str(b'{"a":1}')}})
        assert not result.failed
        assert result.json() == {"a": 1}
        assert result.raise_for_failure() is result

    def test_empty_success_value(self) -> None:
        result = BroadcastResult.from_rpc({"status": {"SuccessValue": ""}})
        assert result.success_value == b""
        assert result.json() is None
