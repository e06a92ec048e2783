from contextlib import asynccontextmanager

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.middleware import ExtraDataToPOAMiddleware

from joint_paths.core.config import get_rpc_urls
from joint_paths.core.constants.chains import POA_MIDDLEWARE_CHAIN_IDS


def _get_rpcs_for_chain_id(chain_id: int) -> list[str]:
    mapping = get_rpc_urls()
    rpcs = mapping.get(str(chain_id))
    if rpcs is None:
        rpcs = mapping.get(chain_id)  # allow int keys
    if rpcs is None:
        raise ValueError(f"No RPCs configured for chain ID {chain_id}")
    if isinstance(rpcs, str):
        return [rpcs]
    return list(rpcs)


def _get_web3(rpc: str, chain_id: int) -> AsyncWeb3:
    web3 = AsyncWeb3(
        AsyncHTTPProvider(
            rpc, request_kwargs={"headers": AsyncHTTPProvider.get_request_headers()}
        )
    )
    if chain_id in POA_MIDDLEWARE_CHAIN_IDS:
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return web3


def get_transaction_chain_id(transaction: dict) -> int:
    if "chainId" not in transaction:
        raise ValueError("Transaction does not contain chainId")
    return int(transaction["chainId"])


def get_web3s_from_chain_id(chain_id: int) -> list[AsyncWeb3]:
    return [_get_web3(rpc, chain_id) for rpc in _get_rpcs_for_chain_id(chain_id)]


@asynccontextmanager
async def web3s_from_chain_id(chain_id: int):
    web3s = get_web3s_from_chain_id(chain_id)
    try:
        yield web3s
    finally:
        for web3 in web3s:
            await web3.provider.disconnect()


@asynccontextmanager
async def web3_from_chain_id(chain_id: int):
    web3s = get_web3s_from_chain_id(chain_id)
    try:
        yield web3s[0]
    finally:
        for web3 in web3s:
            await web3.provider.disconnect()
