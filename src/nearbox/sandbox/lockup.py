"""
Lockup provisioning for staking tests.

Reproduces the mainnet lockup setup inside the sandbox:

1. Import + init lockup-whitelist.near
2. Import + init lockup.near (the lockup factory)
3. Import + init poolv1.near (the staking pool factory)
4. Check that the lockup owner exists
5. Call the factory's ``create`` with a deposit
6. Recover the new lockup address from the creation logs
7. Whitelist the astro-stakers pool
8. Top up the new lockup

Any failure aborts the run. Nothing is rolled back; tear the sandbox
down and start again for a clean retry.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..errors import AccountNotFound, AddressRecoveryFailure, OwnerAccountMissing
from ..pneuma.amount import MAX_GAS, to_base_units
from ..pneuma.rpc import BroadcastResult
from ..utils import sha256_hex
from .accounts import Sandbox
from .mirror import ContractMirror

logger = logging.getLogger(__name__)

ASTRO_STAKERS_POOL_ID = "astro-stakers.poolv1.near"
POOL_FACTORY_ID = "poolv1.near"
LOCKUP_WHITELIST_ID = "lockup-whitelist.near"
LOCKUP_FACTORY_ID = "lockup.near"

DEFAULT_LOCKUP_DURATION = "63036000000000000"  # 2 years in nanoseconds

_LOCKUP_CREATED_RE = re.compile(r"The lockup contract (.+?) was successfully created")


class LockupStage(enum.Enum):
    NOT_STARTED = "NotStarted"
    WHITELIST_READY = "WhitelistReady"
    FACTORY_READY = "FactoryReady"
    POOL_FACTORY_READY = "PoolFactoryReady"
    OWNER_VERIFIED = "OwnerVerified"
    CREATED = "Created"
    ADDRESS_RECOVERED = "AddressRecovered"
    FUNDED = "Funded"


def account_to_lockup(account_id: str, factory_id: str = LOCKUP_FACTORY_ID) -> str:
    """Lockup address the factory derives for an owner: sha256(owner)[:40] under the factory."""
    if not account_id:
        raise ValueError("account_id is required")
    return f"{sha256_hex(account_id.encode('utf-8'))[:40]}.{factory_id}"


def extract_lockup_contract_id(result: BroadcastResult) -> str:
    """
    Find the created lockup address in a factory ``create`` result.

    Scans every receipt's logs, since the success line is emitted by a
    child receipt rather than the top-level call.

    Raises:
        AddressRecoveryFailure: If no creation log is present
    """
    for line in result.logs:
        match = _LOCKUP_CREATED_RE.search(line)
        if match:
            return match.group(1)
    raise AddressRecoveryFailure(
        f"No lockup contract creation log found in {len(result.logs)} log line(s)."
    )


@dataclass
class LockupProvisioner:
    sandbox: Sandbox
    mirror: ContractMirror
    creator_id: str
    gas: int = MAX_GAS
    stage: LockupStage = LockupStage.NOT_STARTED
    lockup_contract_id: Optional[str] = None

    def provision(
        self,
        owner_id: str,
        lockup_duration: str = DEFAULT_LOCKUP_DURATION,
        create_deposit: str = "40",
        top_up: str = "10",
    ) -> str:
        """
        Run the whole lockup setup for ``owner_id``.

        Args:
            owner_id: Account that will own the lockup (must already exist)
            lockup_duration: Lockup duration in nanoseconds
            create_deposit: NEAR attached to the factory ``create`` call
            top_up: NEAR transferred into the lockup afterwards

        Returns:
            The new lockup contract id

        Raises:
            OwnerAccountMissing: If the owner account does not exist
            AddressRecoveryFailure: If the creation log cannot be found
            ExecutionFailure: If any step's transaction fails
        """
        logger.info("Setting up lockup contracts for %s", owner_id)

        self.mirror.import_mainnet_contract(LOCKUP_WHITELIST_ID)
        self._call(self.creator_id, LOCKUP_WHITELIST_ID, "new", {"foundation_account_id": POOL_FACTORY_ID})
        self._advance(LockupStage.WHITELIST_READY)

        self.mirror.import_mainnet_contract(LOCKUP_FACTORY_ID)
        self._call(
            self.creator_id,
            LOCKUP_FACTORY_ID,
            "new",
            {
                "whitelist_account_id": LOCKUP_WHITELIST_ID,
                "foundation_account_id": POOL_FACTORY_ID,
                "master_account_id": POOL_FACTORY_ID,
                "lockup_master_account_id": LOCKUP_FACTORY_ID,
            },
        )
        self._advance(LockupStage.FACTORY_READY)

        self.mirror.import_mainnet_contract(POOL_FACTORY_ID)
        self._call(
            self.creator_id,
            POOL_FACTORY_ID,
            "new",
            {"staking_pool_whitelist_account_id": LOCKUP_WHITELIST_ID},
        )
        self._advance(LockupStage.POOL_FACTORY_READY)

        try:
            self.sandbox.view_account(owner_id)
        except AccountNotFound as exc:
            raise OwnerAccountMissing(f"Lockup owner {owner_id} does not exist in the sandbox") from exc
        self._advance(LockupStage.OWNER_VERIFIED)

        created = self._call(
            self.creator_id,
            LOCKUP_FACTORY_ID,
            "create",
            {"owner_account_id": owner_id, "lockup_duration": lockup_duration},
            deposit=to_base_units(create_deposit),
        )
        self._advance(LockupStage.CREATED)

        self.lockup_contract_id = extract_lockup_contract_id(created)
        self._advance(LockupStage.ADDRESS_RECOVERED)

        self._call(
            POOL_FACTORY_ID,
            LOCKUP_WHITELIST_ID,
            "add_staking_pool",
            {"staking_pool_account_id": ASTRO_STAKERS_POOL_ID},
        )

        self.sandbox.transfer(
            self.creator_id, self.lockup_contract_id, to_base_units(top_up)
        ).raise_for_failure(f"Failed to fund lockup {self.lockup_contract_id}")
        self._advance(LockupStage.FUNDED)

        logger.info("Lockup contract %s ready for %s", self.lockup_contract_id, owner_id)
        return self.lockup_contract_id

    def _call(
        self,
        signer_id: str,
        receiver_id: str,
        method_name: str,
        args: dict,
        deposit: str | int = "0",
    ) -> BroadcastResult:
        result = self.sandbox.function_call(signer_id, receiver_id, method_name, args, self.gas, deposit)
        return result.raise_for_failure(f"{receiver_id}.{method_name} failed")

    def _advance(self, stage: LockupStage) -> None:
        self.stage = stage
        logger.info("Lockup setup reached %s", stage.value)


# ============ Staking through a lockup ============


def select_staking_pool(sandbox: Sandbox, lockup_contract_id: str, validator_pool_id: str, caller_id: str) -> BroadcastResult:
    return sandbox.function_call(
        caller_id,
        lockup_contract_id,
        "select_staking_pool",
        {"staking_pool_account_id": validator_pool_id},
        MAX_GAS,
    ).raise_for_failure(f"Selecting staking pool {validator_pool_id} failed")


def stake_through_lockup(sandbox: Sandbox, lockup_contract_id: str, amount: str, caller_id: str) -> BroadcastResult:
    return sandbox.function_call(
        caller_id, lockup_contract_id, "deposit_and_stake", {"amount": amount}, MAX_GAS
    ).raise_for_failure("deposit_and_stake failed")


def unstake_through_lockup(sandbox: Sandbox, lockup_contract_id: str, amount: str, caller_id: str) -> BroadcastResult:
    return sandbox.function_call(
        caller_id, lockup_contract_id, "unstake", {"amount": amount}, MAX_GAS
    ).raise_for_failure("unstake failed")


def withdraw_through_lockup(sandbox: Sandbox, lockup_contract_id: str, caller_id: str) -> BroadcastResult:
    return sandbox.function_call(
        caller_id, lockup_contract_id, "withdraw_all_from_staking_pool", {}, MAX_GAS
    ).raise_for_failure("withdraw_all_from_staking_pool failed")


def deploy_staking_pool(mirror: ContractMirror, creator_id: str, pool_name: str = "astro-stakers") -> str:
    """
    Import poolv1.near and create a validator pool under it.

    Returns:
        The staking pool account id
    """
    sandbox = mirror.sandbox
    if sandbox.get_key_pair(POOL_FACTORY_ID) is None:
        mirror.import_mainnet_contract(POOL_FACTORY_ID)
        sandbox.function_call(
            creator_id,
            POOL_FACTORY_ID,
            "new",
            {"staking_pool_whitelist_account_id": LOCKUP_WHITELIST_ID},
            MAX_GAS,
        ).raise_for_failure(f"Initializing {POOL_FACTORY_ID} failed")

    creator_key = sandbox.keys.get(creator_id)
    sandbox.function_call(
        creator_id,
        POOL_FACTORY_ID,
        "create_staking_pool",
        {
            "staking_pool_id": pool_name,
            "owner_id": creator_id,
            "stake_public_key": str(creator_key.public_key),
            "reward_fee_fraction": {"numerator": 10, "denominator": 100},
        },
        MAX_GAS,
        to_base_units("32"),
    ).raise_for_failure(f"Creating staking pool {pool_name} failed")

    pool_id = f"{pool_name}.{POOL_FACTORY_ID}"
    logger.info("Created staking pool %s", pool_id)
    return pool_id
