"""Shared plumbing for CLI commands: building clients and reporting failures."""

from __future__ import annotations

import sys
from typing import NoReturn, Optional

import click

from ..config import SandboxConfig
from ..errors import ExecutionFailure, SandboxError
from ..pneuma.rpc import BroadcastResult, RpcGateway
from ..sandbox.accounts import Sandbox
from ..sigil.keys import KeyPair


def get_config(ctx: click.Context) -> SandboxConfig:
    return ctx.obj["config"]


def open_sandbox(ctx: click.Context, signer_id: Optional[str] = None, signer_key: Optional[str] = None) -> Sandbox:
    """Build a Sandbox from the CLI config, registering an extra signer key if given."""
    sandbox = Sandbox.from_config(get_config(ctx), transport=ctx.obj.get("transport"))
    if signer_id and signer_key:
        try:
            sandbox.keys.put(signer_id, KeyPair.from_string(signer_key))
        except ValueError as exc:
            sandbox.close()
            raise click.BadParameter(str(exc), param_hint="--signer-key") from exc
    return sandbox


def open_mainnet(ctx: click.Context) -> RpcGateway:
    config = get_config(ctx)
    return RpcGateway(
        config.mainnet_rpc_url,
        timeout=config.timeout,
        read_retries=config.read_retries,
        transport=ctx.obj.get("mainnet_transport"),
    )


def report_result(result: BroadcastResult) -> None:
    """Print a broadcast outcome; exits with the execution-failure code if it failed."""
    if result.failed:
        click.secho("FAILED: Transaction execution failed", fg="red")
    else:
        click.secho("SUCCESS: Transaction final", fg="green")
    if result.transaction_hash:
        click.echo(f"  TX: {result.transaction_hash}")
    for line in result.logs:
        click.echo(click.style("  log: ", dim=True) + line)
    if result.failed:
        sys.exit(ExecutionFailure.exit_code)


def fail(exc: SandboxError) -> NoReturn:
    click.secho(f"ERROR: {exc}", fg="red", err=True)
    if isinstance(exc, ExecutionFailure):
        for line in exc.logs:
            click.echo(f"  log: {line}", err=True)
    sys.exit(exc.exit_code)
