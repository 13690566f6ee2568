"""
Theurgy Query - read-only commands that never sign anything.
"""

from __future__ import annotations

import json

import click

from ..config import sandbox_genesis_records
from ..errors import AmountError, SandboxError
from ..pneuma.amount import to_base_units
from ..sigil.keys import KeyPair
from .context import fail, get_config, open_mainnet, open_sandbox


@click.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Check that the sandbox node answers."""
    try:
        with open_sandbox(ctx) as sandbox:
            node = sandbox.connect()
    except SandboxError as exc:
        fail(exc)

    sync_info = node.get("sync_info") or {}
    click.echo(click.style("  RPC:      ", dim=True) + get_config(ctx).rpc_url)
    click.echo(click.style("  Chain ID: ", dim=True) + str(node.get("chain_id", "unknown")))
    click.echo(click.style("  Height:   ", dim=True) + str(sync_info.get("latest_block_height", "unknown")))


@click.command()
@click.argument("contract_id")
@click.argument("method_name")
@click.option("--args", "args_json", default="{}", help="Method args as a JSON object")
@click.option("--mainnet", is_flag=True, help="Query the production node instead")
@click.pass_context
def view(ctx: click.Context, contract_id: str, method_name: str, args_json: str, mainnet: bool) -> None:
    """Run a read-only METHOD_NAME on CONTRACT_ID and print the JSON result."""
    try:
        args = json.loads(args_json)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"Invalid args: {exc}", param_hint="--args") from exc

    try:
        if mainnet:
            with open_mainnet(ctx) as gateway:
                value = gateway.view_function(contract_id, method_name, args)
        else:
            with open_sandbox(ctx) as sandbox:
                value = sandbox.view_function(contract_id, method_name, args)
    except SandboxError as exc:
        fail(exc)

    click.echo(json.dumps(value, indent=2))


@click.command("to-base-units")
@click.argument("amount")
def to_base_units_cmd(amount: str) -> None:
    """Convert a NEAR AMOUNT (e.g. 1.5) to yoctoNEAR."""
    try:
        click.echo(to_base_units(amount))
    except AmountError as exc:
        raise click.BadParameter(str(exc), param_hint="AMOUNT") from exc


@click.command("genesis-records")
@click.pass_context
def genesis_records(ctx: click.Context) -> None:
    """Print the extra genesis records for a sandbox node as JSON."""
    public_key = KeyPair.from_string(get_config(ctx).root_private_key).public_key
    click.echo(json.dumps(sandbox_genesis_records(str(public_key)), indent=2))
