import asyncio
import math
from collections.abc import Awaitable, Callable
from typing import Any

from eth_account import Account
from loguru import logger
from web3 import AsyncWeb3

from joint_paths.core.constants.base import (
    DEFAULT_TRANSACTION_TIMEOUT,
    GAS_BUFFER_MULTIPLIER,
    MAX_BASE_FEE_GROWTH_MULTIPLIER,
    SUGGESTED_GAS_PRICE_MULTIPLIER,
    SUGGESTED_PRIORITY_FEE_MULTIPLIER,
)
from joint_paths.core.constants.chains import PRE_EIP_1559_CHAIN_IDS
from joint_paths.core.utils.web3 import (
    get_transaction_chain_id,
    web3_from_chain_id,
    web3s_from_chain_id,
)

SignCallback = Callable[[dict], Awaitable[bytes | str]]


class TransactionRevertedError(RuntimeError):
    def __init__(
        self,
        txn_hash: str,
        receipt: dict[str, Any] | None = None,
        message: str | None = None,
    ):
        self.txn_hash = txn_hash
        self.receipt = receipt or {}
        super().__init__(message or f"Transaction reverted: {txn_hash}")


def _normalize_hash(txn_hash: Any) -> str:
    value = txn_hash.hex() if hasattr(txn_hash, "hex") else str(txn_hash)
    return value if value.startswith("0x") else f"0x{value}"


async def _with_nonce(transaction: dict) -> dict:
    transaction = dict(transaction)
    sender = AsyncWeb3.to_checksum_address(transaction["from"])
    async with web3s_from_chain_id(get_transaction_chain_id(transaction)) as web3s:
        nonces = await asyncio.gather(
            *[
                w3.eth.get_transaction_count(sender, block_identifier="pending")
                for w3 in web3s
            ]
        )
    transaction["nonce"] = max(nonces)
    return transaction


async def _with_gas_price(transaction: dict) -> dict:
    transaction = dict(transaction)
    chain_id = get_transaction_chain_id(transaction)

    async def _priority_fee(w3: AsyncWeb3) -> int:
        history = await w3.eth.fee_history(10, "latest", [80])
        rewards = [r[0] for r in history.reward]
        return sum(rewards) // len(rewards) if rewards else 0

    async def _base_fee(w3: AsyncWeb3) -> int:
        block = await w3.eth.get_block("latest")
        return block.baseFeePerGas

    async with web3s_from_chain_id(chain_id) as web3s:
        if chain_id in PRE_EIP_1559_CHAIN_IDS:
            prices = await asyncio.gather(*[w3.eth.gas_price for w3 in web3s])
            transaction["gasPrice"] = int(max(prices) * SUGGESTED_GAS_PRICE_MULTIPLIER)
            return transaction

        base_fee = max(await asyncio.gather(*[_base_fee(w3) for w3 in web3s]))
        priority_fee = max(await asyncio.gather(*[_priority_fee(w3) for w3 in web3s]))
    transaction["maxFeePerGas"] = int(
        base_fee * MAX_BASE_FEE_GROWTH_MULTIPLIER
        + priority_fee * SUGGESTED_PRIORITY_FEE_MULTIPLIER
    )
    transaction["maxPriorityFeePerGas"] = int(
        priority_fee * SUGGESTED_PRIORITY_FEE_MULTIPLIER
    )
    return transaction


async def _with_gas_limit(transaction: dict) -> dict:
    transaction = dict(transaction)
    transaction.pop("gas", None)

    async def _estimate(w3: AsyncWeb3) -> int:
        try:
            return await w3.eth.estimate_gas(transaction, block_identifier="latest")
        except Exception as exc:
            logger.info(f"Gas estimation failed on {w3.provider.endpoint_uri}: {exc}")
            return 0

    async with web3s_from_chain_id(get_transaction_chain_id(transaction)) as web3s:
        gas_limit = max(await asyncio.gather(*[_estimate(w3) for w3 in web3s]))
    if gas_limit == 0:
        raise RuntimeError("Gas estimation failed on all RPCs")
    transaction["gas"] = int(math.ceil(gas_limit * GAS_BUFFER_MULTIPLIER))
    return transaction


async def wait_for_transaction_receipt(
    chain_id: int,
    txn_hash: str,
    poll_interval: float = 0.1,
    timeout: int = DEFAULT_TRANSACTION_TIMEOUT,
) -> dict:
    txn_hash = _normalize_hash(txn_hash)
    async with web3_from_chain_id(chain_id) as web3:
        receipt = await web3.eth.wait_for_transaction_receipt(
            txn_hash, poll_latency=poll_interval, timeout=timeout
        )
    receipt = dict(receipt)
    if receipt.get("status") == 0:
        raise TransactionRevertedError(txn_hash, receipt)
    return receipt


async def send_transaction(
    transaction: dict, sign_callback: SignCallback | None, wait_for_receipt=True
) -> str:
    if sign_callback is None:
        raise ValueError("sign_callback must be provided to send transaction")

    chain_id = get_transaction_chain_id(transaction)
    transaction = await _with_gas_limit(transaction)
    transaction = await _with_nonce(transaction)
    transaction = await _with_gas_price(transaction)
    signed = await sign_callback(transaction)
    if isinstance(signed, str):
        signed = bytes.fromhex(signed.removeprefix("0x"))

    async with web3_from_chain_id(chain_id) as web3:
        txn_hash = _normalize_hash(await web3.eth.send_raw_transaction(signed))
    logger.info(f"Transaction broadcasted: {txn_hash}")

    if wait_for_receipt:
        await wait_for_transaction_receipt(chain_id, txn_hash)
    return txn_hash


def private_key_signer(private_key: str) -> SignCallback:
    account = Account.from_key(private_key)

    async def sign(transaction: dict) -> bytes:
        return account.sign_transaction(transaction).raw_transaction

    return sign


async def encode_call(
    *,
    target: str,
    abi: list[dict[str, Any]],
    fn_name: str,
    args: list[Any],
    from_address: str,
    chain_id: int,
    value: int = 0,
) -> dict[str, Any]:
    async with web3_from_chain_id(chain_id) as web3:
        try:
            contract = web3.eth.contract(
                address=web3.to_checksum_address(target), abi=abi
            )
            data = contract.encode_abi(fn_name, args)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"Failed to encode {fn_name}: {exc}") from exc

    return {
        "chainId": int(chain_id),
        "from": AsyncWeb3.to_checksum_address(from_address),
        "to": AsyncWeb3.to_checksum_address(target),
        "data": data,
        "value": int(value),
    }
