from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_utils import to_checksum_address

import joint_paths.adapters.provider_adapter.adapter as adapter_module
from joint_paths.adapters.provider_adapter.adapter import ProviderAdapter
from joint_paths.core.engine.ledger import ProviderInfo

PROVIDER = to_checksum_address("0x" + "a1" * 20)
WANT = to_checksum_address("0x" + "aa" * 20)
STRATEGIST = to_checksum_address("0x" + "a3" * 20)
VAULT = to_checksum_address("0x" + "a4" * 20)
GOVERNANCE = to_checksum_address("0x" + "a2" * 20)


def _view(value):
    return MagicMock(return_value=MagicMock(call=AsyncMock(return_value=value)))


@pytest.fixture
def contracts(monkeypatch):
    strategy = MagicMock()
    strategy.functions.want = _view(WANT.lower())
    strategy.functions.strategist = _view(STRATEGIST.lower())
    strategy.functions.vault = _view(VAULT.lower())
    vault = MagicMock()
    vault.functions.governance = _view(GOVERNANCE.lower())

    by_address = {PROVIDER: strategy, VAULT: vault}
    web3 = MagicMock()
    web3.eth.contract = MagicMock(side_effect=lambda address, abi: by_address[address])

    @asynccontextmanager
    async def web3_ctx(_chain_id):
        yield web3

    monkeypatch.setattr(adapter_module, "web3_from_chain_id", web3_ctx)
    return by_address


def test_adapter_type():
    assert ProviderAdapter(chain_id=1).adapter_type == "PROVIDER"


@pytest.mark.asyncio
async def test_describe_reads_strategy_and_vault(contracts):
    ok, info = await ProviderAdapter(chain_id=1).describe(PROVIDER.lower())

    assert ok is True
    assert info == ProviderInfo(
        address=PROVIDER,
        token=WANT,
        governance=GOVERNANCE,
        strategist=STRATEGIST,
    )


@pytest.mark.asyncio
async def test_describe_failure_is_reported(contracts):
    contracts[PROVIDER].functions.want = MagicMock(
        return_value=MagicMock(call=AsyncMock(side_effect=RuntimeError("execution reverted")))
    )
    ok, err = await ProviderAdapter(chain_id=1).describe(PROVIDER)
    assert ok is False
    assert "execution reverted" in err
