from typing import Any

from web3 import AsyncWeb3

from joint_paths.core.constants.base import MAX_UINT256
from joint_paths.core.constants.erc20_abi import ERC20_ABI
from joint_paths.core.utils.transaction import SignCallback, send_transaction
from joint_paths.core.utils.web3 import web3_from_chain_id


async def get_token_balance(
    token_address: str,
    chain_id: int,
    wallet_address: str,
    *,
    web3: AsyncWeb3 | None = None,
    block_identifier: str | int = "pending",
) -> int:
    async def _read(w3: AsyncWeb3) -> int:
        contract = w3.eth.contract(
            address=w3.to_checksum_address(token_address), abi=ERC20_ABI
        )
        balance = await contract.functions.balanceOf(
            w3.to_checksum_address(wallet_address)
        ).call(block_identifier=block_identifier)
        return int(balance)

    if web3 is None:
        async with web3_from_chain_id(chain_id) as w3:
            return await _read(w3)
    return await _read(web3)


async def get_token_decimals(token_address: str, chain_id: int) -> int:
    async with web3_from_chain_id(chain_id) as web3:
        contract = web3.eth.contract(
            address=web3.to_checksum_address(token_address), abi=ERC20_ABI
        )
        return int(await contract.functions.decimals().call())


async def get_token_symbol(token_address: str, chain_id: int) -> str:
    async with web3_from_chain_id(chain_id) as web3:
        contract = web3.eth.contract(
            address=web3.to_checksum_address(token_address), abi=ERC20_ABI
        )
        value = await contract.functions.symbol().call()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).rstrip(b"\x00").decode("utf-8", errors="ignore")
    return str(value)


async def get_token_allowance(
    token_address: str, chain_id: int, owner_address: str, spender_address: str
) -> int:
    async with web3_from_chain_id(chain_id) as web3:
        contract = web3.eth.contract(
            address=web3.to_checksum_address(token_address), abi=ERC20_ABI
        )
        allowance = await contract.functions.allowance(
            web3.to_checksum_address(owner_address),
            web3.to_checksum_address(spender_address),
        ).call(block_identifier="pending")
        return int(allowance)


async def build_erc20_transaction(
    *,
    fn_name: str,
    token_address: str,
    from_address: str,
    counterparty: str,
    amount: int,
    chain_id: int,
) -> dict[str, Any]:
    async with web3_from_chain_id(chain_id) as web3:
        token = web3.to_checksum_address(token_address)
        contract = web3.eth.contract(address=token, abi=ERC20_ABI)
        data = contract.encode_abi(
            fn_name, [web3.to_checksum_address(counterparty), int(amount)]
        )
        return {
            "to": token,
            "from": web3.to_checksum_address(from_address),
            "data": data,
            "chainId": int(chain_id),
        }


async def ensure_allowance(
    *,
    token_address: str,
    owner: str,
    spender: str,
    amount: int,
    chain_id: int,
    signing_callback: SignCallback | None,
    approval_amount: int = MAX_UINT256,
) -> str | None:
    """Approve ``spender`` when its allowance is below ``amount``.

    Returns the approval transaction hash, or None when no approval was needed.
    """
    allowance = await get_token_allowance(token_address, chain_id, owner, spender)
    if allowance >= amount:
        return None
    approve_tx = await build_erc20_transaction(
        fn_name="approve",
        token_address=token_address,
        from_address=owner,
        counterparty=spender,
        amount=approval_amount,
        chain_id=chain_id,
    )
    return await send_transaction(approve_tx, signing_callback)
