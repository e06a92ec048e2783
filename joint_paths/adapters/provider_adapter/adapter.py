import asyncio
from typing import Any

from eth_utils import to_checksum_address

from joint_paths.core.adapters.BaseAdapter import BaseAdapter
from joint_paths.core.adapters.decorators import status_tuple
from joint_paths.core.constants.base import ADAPTER_PROVIDER
from joint_paths.core.constants.provider_abi import PROVIDER_STRATEGY_ABI, VAULT_ABI
from joint_paths.core.engine.ledger import ProviderInfo
from joint_paths.core.utils.web3 import web3_from_chain_id


class ProviderAdapter(BaseAdapter):
    """Reads a capital provider's token, strategist and governance from chain."""

    adapter_type: str = ADAPTER_PROVIDER

    def __init__(self, config: dict[str, Any] | None = None, *, chain_id: int):
        super().__init__("provider_adapter", config, chain_id=chain_id)

    @status_tuple
    async def describe(self, provider: str) -> ProviderInfo:
        provider = to_checksum_address(provider)
        async with web3_from_chain_id(self.chain_id) as web3:
            strategy = web3.eth.contract(address=provider, abi=PROVIDER_STRATEGY_ABI)
            want, strategist, vault = await asyncio.gather(
                strategy.functions.want().call(),
                strategy.functions.strategist().call(),
                strategy.functions.vault().call(),
            )
            vault_contract = web3.eth.contract(
                address=to_checksum_address(vault), abi=VAULT_ABI
            )
            governance = await vault_contract.functions.governance().call()
        return ProviderInfo(
            address=provider,
            token=to_checksum_address(want),
            governance=to_checksum_address(governance),
            strategist=to_checksum_address(strategist),
        )
