"""Shared fixtures: sandbox and mainnet clients wired to fake nodes."""

from __future__ import annotations

import pytest

from fake_node import (
    DAO_CODE,
    FT_CODE,
    LOCKUP_FACTORY_CODE,
    POOL_FACTORY_CODE,
    WHITELIST_CODE,
    FakeNode,
)
from nearbox.pneuma.amount import ONE_NEAR
from nearbox.pneuma.rpc import RpcGateway
from nearbox.sandbox.accounts import Sandbox
from nearbox.sandbox.mirror import ContractMirror
from nearbox.sigil.keys import KeyPair

ROOT_ACCOUNTS = ("test.near", "near")
ROOT_BALANCE = 10**9 * ONE_NEAR


# ============ Fixtures ============


@pytest.fixture()
def root_key() -> KeyPair:
    return KeyPair.from_random()


@pytest.fixture()
def node(root_key: KeyPair) -> FakeNode:
    fake = FakeNode()
    for account_id in ROOT_ACCOUNTS:
        fake.add_account(account_id, ROOT_BALANCE, str(root_key.public_key))
    return fake


@pytest.fixture()
def gateway(node: FakeNode) -> RpcGateway:
    with RpcGateway("http://sandbox.test", transport=node.transport()) as gw:
        yield gw


@pytest.fixture()
def sandbox(gateway: RpcGateway, root_key: KeyPair) -> Sandbox:
    client = Sandbox(gateway)
    client.register_accounts(ROOT_ACCOUNTS, root_key)
    return client


@pytest.fixture()
def mainnet_node() -> FakeNode:
    fake = FakeNode(chain_id="mainnet")
    fake.add_account("lockup-whitelist.near", ONE_NEAR, code=WHITELIST_CODE)
    fake.add_account("lockup.near", ONE_NEAR, code=LOCKUP_FACTORY_CODE)
    fake.add_account("poolv1.near", ONE_NEAR, code=POOL_FACTORY_CODE)
    fake.add_account("sputnik-dao.near", ONE_NEAR, code=DAO_CODE)
    fake.add_account("usdt.tether-token.near", ONE_NEAR, code=FT_CODE)
    fake.add_account("no-code.near", ONE_NEAR)
    fake.state["usdt.tether-token.near"] = {"balances": {}}
    return fake


@pytest.fixture()
def mainnet(mainnet_node: FakeNode) -> RpcGateway:
    with RpcGateway("http://mainnet.test", transport=mainnet_node.transport()) as gw:
        yield gw


@pytest.fixture()
def mirror(sandbox: Sandbox, mainnet: RpcGateway) -> ContractMirror:
    return ContractMirror(sandbox, mainnet)


