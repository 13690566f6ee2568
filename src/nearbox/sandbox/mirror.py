"""
Contract mirroring - copy live mainnet contracts into the sandbox.

The sandbox node never talks to mainnet. The client bridges the two
endpoints: it reads code from a production gateway and redeploys the
bytes under a sandbox account.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..pneuma.rpc import RpcGateway
from .accounts import DEFAULT_ACCOUNT_BALANCE, Sandbox

logger = logging.getLogger(__name__)


class ContractMirror:
    def __init__(self, sandbox: Sandbox, mainnet: RpcGateway) -> None:
        self.sandbox = sandbox
        self.mainnet = mainnet

    def import_mainnet_contract(
        self,
        local_id: str,
        remote_id: Optional[str] = None,
        initial_balance: str | int = DEFAULT_ACCOUNT_BALANCE,
    ) -> str:
        """
        Create ``local_id`` in the sandbox and deploy ``remote_id``'s mainnet code to it.

        Args:
            local_id: Sandbox account to create
            remote_id: Mainnet contract to copy (defaults to local_id)
            initial_balance: Funding for the new account, in base units

        Returns:
            local_id

        Raises:
            ContractCodeNotFound: If the mainnet account has no contract
            ExecutionFailure: If creation or deployment fails in the sandbox
        """
        remote_id = remote_id or local_id
        self.sandbox.create_account(local_id, initial_balance)
        code = self.mainnet.view_code(remote_id)
        self.sandbox.deploy_contract(local_id, code)
        logger.info("Imported and deployed %s to %s", remote_id, local_id)
        return local_id

    def view_function_on_mainnet(self, remote_id: str, method_name: str, args: Any = None) -> Any:
        """Read-only call against mainnet; sandbox state is untouched."""
        return self.mainnet.view_function(remote_id, method_name, args)
