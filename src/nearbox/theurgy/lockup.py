"""
Theurgy Lockup - mirror mainnet contracts and provision lockups.
"""

from __future__ import annotations

from typing import Optional

import click

from ..errors import SandboxError
from ..sandbox.lockup import DEFAULT_LOCKUP_DURATION, LockupProvisioner
from ..sandbox.mirror import ContractMirror
from .context import fail, open_mainnet, open_sandbox


@click.command("import-contract")
@click.argument("local_id")
@click.option("--from", "remote_id", default=None, help="Mainnet contract to copy (default: LOCAL_ID)")
@click.pass_context
def import_contract(ctx: click.Context, local_id: str, remote_id: Optional[str]) -> None:
    """Create LOCAL_ID in the sandbox and deploy a mainnet contract's code to it."""
    try:
        with open_sandbox(ctx) as sandbox, open_mainnet(ctx) as mainnet:
            ContractMirror(sandbox, mainnet).import_mainnet_contract(local_id, remote_id)
            key_pair = sandbox.keys.get(local_id)
    except SandboxError as exc:
        fail(exc)

    click.secho(f"Imported {remote_id or local_id} into {local_id}", fg="green")
    click.echo(f"  Secret key: {key_pair}")


@click.command("setup-lockup")
@click.argument("owner_id")
@click.option("--creator", "creator_id", default="test.near", show_default=True, help="Account paying for setup")
@click.option("--duration", default=DEFAULT_LOCKUP_DURATION, show_default=True, help="Lockup duration (ns)")
@click.pass_context
def setup_lockup(ctx: click.Context, owner_id: str, creator_id: str, duration: str) -> None:
    """Provision whitelist, factory and pool contracts plus a lockup owned by OWNER_ID."""
    click.echo()
    click.echo(
        click.style("  ◆ ", fg="cyan")
        + click.style("Lockup", fg="bright_white", bold=True)
        + click.style(f" ─── owner {owner_id}", fg="cyan")
    )
    click.echo()

    provisioner: Optional[LockupProvisioner] = None
    try:
        with open_sandbox(ctx) as sandbox, open_mainnet(ctx) as mainnet:
            provisioner = LockupProvisioner(sandbox, ContractMirror(sandbox, mainnet), creator_id)
            lockup_id = provisioner.provision(owner_id, lockup_duration=duration)
    except SandboxError as exc:
        if provisioner is not None:
            click.secho(f"  Stopped at stage: {provisioner.stage.value}", fg="yellow", err=True)
        fail(exc)

    click.secho(f"  Lockup contract: {lockup_id}", fg="green", bold=True)
