"""
Nearbox CLI

Command-line access to the sandbox transaction client, for poking at a
running sandbox node outside of a test run.

Commands:
  status           - Check the node answers
  create-account   - Create and fund an account (prints its new key)
  deploy           - Deploy a contract file to an account
  call             - Call a contract method
  view             - Run a read-only contract method
  import-contract  - Mirror a mainnet contract into the sandbox
  setup-lockup     - Provision lockup + staking pool contracts
  to-base-units    - Convert a NEAR amount to yoctoNEAR
  genesis-records  - Print the genesis records a sandbox node needs
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .config import NEARBOX_ENV, SandboxConfig

# ============ Constants ============

VERSION = "0.3.0"


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=VERSION, prog_name="nearbox")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"dotenv file with sandbox settings (default: {NEARBOX_ENV})",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, env_file: Optional[Path]) -> None:
    """Nearbox - NEAR sandbox transaction client."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = SandboxConfig.from_env(env_file)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


# ============ Commands ============

from .theurgy.accounts import call, create_account, deploy
from .theurgy.lockup import import_contract, setup_lockup
from .theurgy.query import genesis_records, status, to_base_units_cmd, view

cli.add_command(status)
cli.add_command(create_account)
cli.add_command(deploy)
cli.add_command(call)
cli.add_command(view)
cli.add_command(import_contract)
cli.add_command(setup_lockup)
cli.add_command(to_base_units_cmd)
cli.add_command(genesis_records)


# ============ Entry Points ============


def main() -> None:
    """Nearbox CLI entry point."""
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass
    cli(obj={})


if __name__ == "__main__":
    main()
