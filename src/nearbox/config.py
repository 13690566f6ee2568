"""
Sandbox client configuration.

Values come from the process environment, optionally seeded from a
dotenv file (default ``~/.nearbox/.env``). Explicit environment
variables win over the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import dotenv_values

from .pneuma.rpc import DEFAULT_MAINNET_RPC_URL, DEFAULT_SANDBOX_RPC_URL
from .sigil.keys import DEFAULT_SANDBOX_PRIVATE_KEY

NEARBOX_DIR = Path.home() / ".nearbox"
NEARBOX_ENV = NEARBOX_DIR / ".env"

_DEFAULTS: dict[str, str] = {
    "SANDBOX_RPC_URL": DEFAULT_SANDBOX_RPC_URL,
    "MAINNET_RPC_URL": DEFAULT_MAINNET_RPC_URL,
    "SANDBOX_ROOT_ACCOUNTS": "test.near,near,sandbox",
    "SANDBOX_PRIVATE_KEY": DEFAULT_SANDBOX_PRIVATE_KEY,
    "RPC_TIMEOUT": "30",
    "POST_BROADCAST_DELAY": "1.0",
    "READ_RETRIES": "0",
}


@dataclass(frozen=True)
class SandboxConfig:
    rpc_url: str = DEFAULT_SANDBOX_RPC_URL
    mainnet_rpc_url: str = DEFAULT_MAINNET_RPC_URL
    root_accounts: tuple[str, ...] = ("test.near", "near", "sandbox")
    root_private_key: str = DEFAULT_SANDBOX_PRIVATE_KEY
    timeout: float = 30.0
    post_broadcast_delay: float = 1.0
    read_retries: int = 0

    @classmethod
    def from_env(
        cls,
        env_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "SandboxConfig":
        """
        Resolve configuration from a dotenv file and the environment.

        Args:
            env_path: dotenv file to read (default: ~/.nearbox/.env, skipped if missing)
            environ: Environment mapping (default: os.environ)

        Raises:
            ValueError: If a numeric setting cannot be parsed
        """
        env_path = env_path or NEARBOX_ENV
        values: dict[str, str] = dict(_DEFAULTS)
        if env_path.exists():
            values.update({k: v for k, v in dotenv_values(env_path).items() if v is not None})
        source = os.environ if environ is None else environ
        values.update({k: source[k] for k in _DEFAULTS if k in source})

        roots = tuple(a.strip() for a in values["SANDBOX_ROOT_ACCOUNTS"].split(",") if a.strip())
        try:
            return cls(
                rpc_url=values["SANDBOX_RPC_URL"],
                mainnet_rpc_url=values["MAINNET_RPC_URL"],
                root_accounts=roots,
                root_private_key=values["SANDBOX_PRIVATE_KEY"],
                timeout=float(values["RPC_TIMEOUT"]),
                post_broadcast_delay=float(values["POST_BROADCAST_DELAY"]),
                read_retries=int(values["READ_RETRIES"]),
            )
        except ValueError as exc:
            raise ValueError(f"Invalid sandbox configuration: {exc}") from exc


def sandbox_genesis_records(public_key: str) -> list[dict[str, Any]]:
    """
    Additional genesis records for a sandbox node.

    Seeds ``test.near``, ``near`` and ``sandbox`` with balances and one
    full-access key each, so the client can fund everything else.
    """
    empty_code_hash = "11111111111111111111111111111111"
    accounts = [
        ("test.near", "1000000000000000000000000000000000", "50000000000000000000000000000000", 0),
        ("near", "1000000000000000000000000000000000", "0", 0),
        ("sandbox", "10000000000000000000000000000", "0", 182),
    ]
    records: list[dict[str, Any]] = []
    for account_id, amount, locked, storage_usage in accounts:
        records.append(
            {
                "Account": {
                    "account_id": account_id,
                    "account": {
                        "amount": amount,
                        "locked": locked,
                        "code_hash": empty_code_hash,
                        "storage_usage": storage_usage,
                        "version": "V1",
                    },
                }
            }
        )
        records.append(
            {
                "AccessKey": {
                    "account_id": account_id,
                    "public_key": public_key,
                    "access_key": {"nonce": 0, "permission": "FullAccess"},
                }
            }
        )
    return records
