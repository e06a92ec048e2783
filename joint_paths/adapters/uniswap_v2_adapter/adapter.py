from __future__ import annotations

import asyncio
import time
from typing import Any

from eth_utils import to_checksum_address

from joint_paths.core.adapters.BaseAdapter import BaseAdapter, require_wallet
from joint_paths.core.adapters.decorators import status_tuple
from joint_paths.core.adapters.models import LiquidityReceipt
from joint_paths.core.constants.base import (
    ADAPTER_UNISWAP_V2,
    DEFAULT_AMM_FEE_BPS,
    DEFAULT_DEADLINE_S,
    MAX_BPS,
)
from joint_paths.core.constants.uniswap_v2_abi import (
    UNISWAP_V2_PAIR_ABI,
    UNISWAP_V2_ROUTER_ABI,
)
from joint_paths.core.utils.tokens import ensure_allowance, get_token_balance
from joint_paths.core.utils.transaction import (
    SignCallback,
    encode_call,
    send_transaction,
)
from joint_paths.core.utils.valuation_math import get_amount_out
from joint_paths.core.utils.web3 import web3_from_chain_id


class UniswapV2Adapter(BaseAdapter):
    """Uniswap-V2 style router and pair for one joint's two legs.

    Results are measured from the wallet's balances around each transaction,
    so the receipt reflects what the router actually used or paid out.
    """

    adapter_type = ADAPTER_UNISWAP_V2

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        chain_id: int,
        router: str,
        pair: str,
        token_a: str,
        token_b: str,
        base_asset: str,
        wallet_address: str | None = None,
        sign_callback: SignCallback | None = None,
        fee_bps: int = DEFAULT_AMM_FEE_BPS,
        slippage_bps: int = 50,
    ) -> None:
        if not 0 <= int(slippage_bps) < MAX_BPS:
            raise ValueError("slippage_bps must be in [0, 10000)")
        super().__init__(
            "uniswap_v2_adapter",
            config,
            chain_id=chain_id,
            wallet_address=wallet_address,
            sign_callback=sign_callback,
        )
        self.router = to_checksum_address(router)
        self.pair = to_checksum_address(pair)
        self.token_a = to_checksum_address(token_a)
        self.token_b = to_checksum_address(token_b)
        self.base_asset = to_checksum_address(base_asset)
        self.wallet_address: str | None = (
            to_checksum_address(wallet_address) if wallet_address else None
        )
        self.sign_callback = sign_callback
        self.fee_bps = int(fee_bps)
        self.slippage_bps = int(slippage_bps)

    def _deadline(self) -> int:
        return int(time.time()) + DEFAULT_DEADLINE_S

    def _min_out(self, amount: int) -> int:
        return int(amount) * (MAX_BPS - self.slippage_bps) // MAX_BPS

    def token_out_path(self, token_in: str, token_out: str) -> list[str]:
        """Direct between the legs or when the base asset is an end, else via the base asset."""
        token_in = to_checksum_address(token_in)
        token_out = to_checksum_address(token_out)
        legs = {self.token_a, self.token_b}
        if {token_in, token_out} == legs or self.base_asset in (token_in, token_out):
            return [token_in, token_out]
        return [token_in, self.base_asset, token_out]

    async def _balance(self, token: str) -> int:
        return await get_token_balance(token, self.chain_id, self.wallet_address)

    async def _approve(self, token: str, amount: int) -> None:
        await ensure_allowance(
            token_address=token,
            owner=self.wallet_address,
            spender=self.router,
            amount=amount,
            chain_id=self.chain_id,
            signing_callback=self.sign_callback,
        )

    async def _send(self, fn_name: str, args: list[Any]) -> str:
        tx = await encode_call(
            target=self.router,
            abi=UNISWAP_V2_ROUTER_ABI,
            fn_name=fn_name,
            args=args,
            from_address=self.wallet_address,
            chain_id=self.chain_id,
        )
        return await send_transaction(tx, self.sign_callback)

    # -----------------------------
    # Reads
    # -----------------------------

    def quote_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        return get_amount_out(amount_in, reserve_in, reserve_out, self.fee_bps)

    async def _reserves(self) -> tuple[int, int, int]:
        async with web3_from_chain_id(self.chain_id) as web3:
            pair = web3.eth.contract(address=self.pair, abi=UNISWAP_V2_PAIR_ABI)
            (reserve0, reserve1, _), token0, supply = await asyncio.gather(
                pair.functions.getReserves().call(),
                pair.functions.token0().call(),
                pair.functions.totalSupply().call(),
            )
        if to_checksum_address(token0) == self.token_a:
            return int(reserve0), int(reserve1), int(supply)
        return int(reserve1), int(reserve0), int(supply)

    @status_tuple
    async def reserves(self) -> tuple[int, int]:
        reserve_a, reserve_b, _ = await self._reserves()
        return reserve_a, reserve_b

    @status_tuple
    async def total_supply(self) -> int:
        async with web3_from_chain_id(self.chain_id) as web3:
            pair = web3.eth.contract(address=self.pair, abi=UNISWAP_V2_PAIR_ABI)
            return int(await pair.functions.totalSupply().call())

    @require_wallet
    @status_tuple
    async def share_balance(self) -> int:
        return await self._balance(self.pair)

    @status_tuple
    async def quote_swap(self, token_in: str, token_out: str, amount_in: int) -> int:
        if int(amount_in) <= 0:
            return 0
        path = self.token_out_path(token_in, token_out)
        async with web3_from_chain_id(self.chain_id) as web3:
            router = web3.eth.contract(address=self.router, abi=UNISWAP_V2_ROUTER_ABI)
            amounts = await router.functions.getAmountsOut(int(amount_in), path).call()
        return int(amounts[-1])

    # -----------------------------
    # Writes
    # -----------------------------

    @require_wallet
    @status_tuple
    async def add_liquidity(
        self, token_a: str, token_b: str, amount_a: int, amount_b: int
    ) -> LiquidityReceipt:
        token_a = to_checksum_address(token_a)
        token_b = to_checksum_address(token_b)
        if {token_a, token_b} != {self.token_a, self.token_b}:
            raise ValueError(f"{token_a}/{token_b} is not this joint's pair")
        amount_a, amount_b = int(amount_a), int(amount_b)
        if amount_a <= 0 or amount_b <= 0:
            raise ValueError("amount_a and amount_b must be positive")

        await self._approve(token_a, amount_a)
        await self._approve(token_b, amount_b)

        before_a, before_b, before_shares = await asyncio.gather(
            self._balance(token_a), self._balance(token_b), self._balance(self.pair)
        )
        tx_hash = await self._send(
            "addLiquidity",
            [
                token_a,
                token_b,
                amount_a,
                amount_b,
                self._min_out(amount_a),
                self._min_out(amount_b),
                self.wallet_address,
                self._deadline(),
            ],
        )
        after_a, after_b, after_shares = await asyncio.gather(
            self._balance(token_a), self._balance(token_b), self._balance(self.pair)
        )
        self.logger.info(
            f"addLiquidity used {before_a - after_a}/{before_b - after_b}, "
            f"minted {after_shares - before_shares} ({tx_hash})"
        )
        return LiquidityReceipt(
            used_a=before_a - after_a,
            used_b=before_b - after_b,
            shares=after_shares - before_shares,
            adapter=self.adapter_type,
            transaction_hash=tx_hash,
            transaction_chain_id=self.chain_id,
        )

    @require_wallet
    @status_tuple
    async def remove_liquidity(self, shares: int) -> tuple[int, int]:
        shares = int(shares)
        if shares <= 0:
            raise ValueError("shares must be positive")

        reserve_a, reserve_b, supply = await self._reserves()
        expected_a = shares * reserve_a // supply if supply else 0
        expected_b = shares * reserve_b // supply if supply else 0

        await self._approve(self.pair, shares)
        before_a, before_b = await asyncio.gather(
            self._balance(self.token_a), self._balance(self.token_b)
        )
        tx_hash = await self._send(
            "removeLiquidity",
            [
                self.token_a,
                self.token_b,
                shares,
                self._min_out(expected_a),
                self._min_out(expected_b),
                self.wallet_address,
                self._deadline(),
            ],
        )
        after_a, after_b = await asyncio.gather(
            self._balance(self.token_a), self._balance(self.token_b)
        )
        self.logger.info(
            f"removeLiquidity burned {shares} for {after_a - before_a}/{after_b - before_b} ({tx_hash})"
        )
        return after_a - before_a, after_b - before_b

    @require_wallet
    @status_tuple
    async def swap(self, token_in: str, token_out: str, amount_in: int) -> int:
        amount_in = int(amount_in)
        if amount_in <= 0:
            raise ValueError("amount_in must be positive")
        path = self.token_out_path(token_in, token_out)

        async with web3_from_chain_id(self.chain_id) as web3:
            router = web3.eth.contract(address=self.router, abi=UNISWAP_V2_ROUTER_ABI)
            quoted = await router.functions.getAmountsOut(amount_in, path).call()

        await self._approve(path[0], amount_in)
        before = await self._balance(path[-1])
        tx_hash = await self._send(
            "swapExactTokensForTokens",
            [
                amount_in,
                self._min_out(int(quoted[-1])),
                path,
                self.wallet_address,
                self._deadline(),
            ],
        )
        received = await self._balance(path[-1]) - before
        self.logger.info(
            f"Swapped {amount_in} {path[0]} for {received} {path[-1]} via {len(path) - 1} hop(s) ({tx_hash})"
        )
        return received
