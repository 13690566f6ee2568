"""
Theurgy Accounts - create accounts, deploy code, call contracts.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click

from ..errors import SandboxError
from ..pneuma.amount import DEFAULT_FUNCTION_CALL_GAS, to_base_units
from ..sandbox.accounts import DEFAULT_ACCOUNT_BALANCE
from .context import fail, open_sandbox, report_result

_signer_key_option = click.option(
    "--signer-key",
    envvar="SIGNER_PRIVATE_KEY",
    default=None,
    help="ed25519:... secret key for the signer (root accounts use SANDBOX_PRIVATE_KEY)",
)


@click.command("create-account")
@click.argument("account_id")
@click.option("--balance", default=None, help="Initial balance in NEAR (default: 100)")
@click.option("--parent", "parent_id", default=None, help="Funding parent account")
@_signer_key_option
@click.pass_context
def create_account(
    ctx: click.Context,
    account_id: str,
    balance: Optional[str],
    parent_id: Optional[str],
    signer_key: Optional[str],
) -> None:
    """Create ACCOUNT_ID as a funded subaccount and print its new key."""
    try:
        initial_balance = to_base_units(balance) if balance else DEFAULT_ACCOUNT_BALANCE
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--balance") from exc
    parent = parent_id or account_id.partition(".")[2] or None
    try:
        with open_sandbox(ctx, parent, signer_key) as sandbox:
            sandbox.create_account(account_id, initial_balance, parent_id=parent_id)
            key_pair = sandbox.keys.get(account_id)
    except SandboxError as exc:
        fail(exc)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    click.secho(f"Created account: {account_id}", fg="green")
    click.echo(f"  Public key: {key_pair.public_key}")
    click.echo(f"  Secret key: {key_pair}")
    click.secho("  Store the secret key; it is not saved anywhere.", fg="yellow")


@click.command()
@click.argument("account_id")
@click.argument("wasm_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_signer_key_option
@click.pass_context
def deploy(ctx: click.Context, account_id: str, wasm_file: Path, signer_key: Optional[str]) -> None:
    """Deploy WASM_FILE to ACCOUNT_ID (signed by the account itself)."""
    code = wasm_file.read_bytes()
    try:
        with open_sandbox(ctx, account_id, signer_key) as sandbox:
            result = sandbox.deploy_contract(account_id, code)
    except SandboxError as exc:
        fail(exc)
    click.echo(f"Deployed {len(code)} bytes to {account_id}")
    report_result(result)


@click.command()
@click.argument("signer_id")
@click.argument("receiver_id")
@click.argument("method_name")
@click.option("--args", "args_json", default="{}", help="Method args as a JSON object")
@click.option("--gas", default=DEFAULT_FUNCTION_CALL_GAS, type=int, help="Gas units")
@click.option("--deposit", default="0", help="Attached deposit in NEAR")
@_signer_key_option
@click.pass_context
def call(
    ctx: click.Context,
    signer_id: str,
    receiver_id: str,
    method_name: str,
    args_json: str,
    gas: int,
    deposit: str,
    signer_key: Optional[str],
) -> None:
    """Call METHOD_NAME on RECEIVER_ID, signed by SIGNER_ID."""
    try:
        args = json.loads(args_json)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"Invalid args: {exc}", param_hint="--args") from exc
    try:
        deposit_units = to_base_units(deposit)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--deposit") from exc

    try:
        with open_sandbox(ctx, signer_id, signer_key) as sandbox:
            result = sandbox.function_call(
                signer_id, receiver_id, method_name, args, gas, deposit_units
            )
    except SandboxError as exc:
        fail(exc)

    report_result(result)
    value = result.success_value
    if value:
        click.echo(f"  Result: {value.decode('utf-8', errors='replace')}")
