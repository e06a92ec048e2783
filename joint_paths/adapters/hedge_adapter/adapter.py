from __future__ import annotations

import asyncio
from typing import Any

from eth_utils import keccak, to_checksum_address

from joint_paths.core.adapters.BaseAdapter import BaseAdapter, require_wallet
from joint_paths.core.adapters.decorators import status_tuple
from joint_paths.core.constants.base import ADAPTER_HEDGE, MAX_BPS
from joint_paths.core.constants.hedge_abi import LP_HEDGER_ABI
from joint_paths.core.engine.ledger import HedgeIds
from joint_paths.core.utils.tokens import ensure_allowance, get_token_balance
from joint_paths.core.utils.transaction import (
    SignCallback,
    encode_call,
    send_transaction,
    wait_for_transaction_receipt,
)
from joint_paths.core.utils.web3 import web3_from_chain_id

TRANSFER_TOPIC0 = keccak(text="Transfer(address,address,uint256)").hex().lower()


def _topic_hex(topic: Any) -> str:
    value = topic.hex() if hasattr(topic, "hex") else str(topic)
    return str(value).lower().removeprefix("0x")


class HegicHedgeAdapter(BaseAdapter):
    """Call+put hedge of a pool-share position through an LP hedging contract.

    Premiums are paid from the wallet's leg balances. Option ids are the
    ERC721 tokens the options manager mints to the wallet, call first.
    """

    adapter_type = ADAPTER_HEDGE

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        chain_id: int,
        hedger: str,
        options_manager: str,
        lp_token: str,
        token_a: str,
        token_b: str,
        wallet_address: str | None = None,
        sign_callback: SignCallback | None = None,
    ) -> None:
        super().__init__(
            "hedge_adapter",
            config,
            chain_id=chain_id,
            wallet_address=wallet_address,
            sign_callback=sign_callback,
        )
        self.hedger = to_checksum_address(hedger)
        self.options_manager = to_checksum_address(options_manager)
        self.lp_token = to_checksum_address(lp_token)
        self.token_a = to_checksum_address(token_a)
        self.token_b = to_checksum_address(token_b)

    @staticmethod
    def parse_option_ids_from_receipt(
        receipt: dict[str, Any], *, manager: str, to_address: str
    ) -> list[int]:
        """ERC721 ids minted by ``manager`` to ``to_address``, in log order."""
        manager = to_checksum_address(manager).lower()
        to_address = to_checksum_address(to_address).lower()
        ids: list[int] = []
        for log in receipt.get("logs") or []:
            if str(log.get("address", "")).lower() != manager:
                continue
            topics = log.get("topics") or []
            if len(topics) < 4 or _topic_hex(topics[0]) != TRANSFER_TOPIC0:
                continue
            if int(_topic_hex(topics[1]) or "0", 16) != 0:
                continue
            if "0x" + _topic_hex(topics[2])[-40:] != to_address:
                continue
            ids.append(int(_topic_hex(topics[3]), 16))
        return ids

    async def _view(self, fn_name: str, *args: Any) -> Any:
        async with web3_from_chain_id(self.chain_id) as web3:
            contract = web3.eth.contract(address=self.hedger, abi=LP_HEDGER_ABI)
            return await getattr(contract.functions, fn_name)(*args).call()

    async def _leg_balances(self) -> tuple[int, int]:
        a, b = await asyncio.gather(
            get_token_balance(self.token_a, self.chain_id, self.wallet_address),
            get_token_balance(self.token_b, self.chain_id, self.wallet_address),
        )
        return int(a), int(b)

    @require_wallet
    @status_tuple
    async def open(self, pair_shares: int, moneyness_bps: int, period_s: int) -> HedgeIds:
        if int(pair_shares) <= 0:
            raise ValueError("pair_shares must be positive")
        if not 0 <= int(moneyness_bps) < MAX_BPS:
            raise ValueError("moneyness_bps must be in [0, 10000)")

        balance_a, balance_b = await self._leg_balances()
        for token, balance in ((self.token_a, balance_a), (self.token_b, balance_b)):
            if balance > 0:
                await ensure_allowance(
                    token_address=token,
                    owner=self.wallet_address,
                    spender=self.hedger,
                    amount=balance,
                    chain_id=self.chain_id,
                    signing_callback=self.sign_callback,
                )

        tx = await encode_call(
            target=self.hedger,
            abi=LP_HEDGER_ABI,
            fn_name="hedgeLPToken",
            args=[self.lp_token, int(pair_shares), int(moneyness_bps), int(period_s)],
            from_address=self.wallet_address,
            chain_id=self.chain_id,
        )
        tx_hash = await send_transaction(tx, self.sign_callback, wait_for_receipt=False)
        receipt = await wait_for_transaction_receipt(self.chain_id, tx_hash)
        ids = self.parse_option_ids_from_receipt(
            receipt, manager=self.options_manager, to_address=self.wallet_address
        )
        if len(ids) != 2:
            raise RuntimeError(f"expected 2 option mints in {tx_hash}, found {len(ids)}")
        hedge = HedgeIds(call_id=ids[0], put_id=ids[1])
        self.logger.info(f"Opened hedge call={hedge.call_id} put={hedge.put_id}")
        return hedge

    @require_wallet
    @status_tuple
    async def close(self, call_id: int, put_id: int) -> tuple[int, int]:
        call_active, put_active = await asyncio.gather(
            self._view("isOptionActive", int(call_id)),
            self._view("isOptionActive", int(put_id)),
        )
        if not call_active and not put_active:
            self.logger.info(f"Hedge {call_id}/{put_id} already closed")
            return 0, 0

        before_a, before_b = await self._leg_balances()
        tx = await encode_call(
            target=self.hedger,
            abi=LP_HEDGER_ABI,
            fn_name="closeHedge",
            args=[int(call_id), int(put_id)],
            from_address=self.wallet_address,
            chain_id=self.chain_id,
        )
        tx_hash = await send_transaction(tx, self.sign_callback)
        after_a, after_b = await self._leg_balances()
        self.logger.info(
            f"Closed hedge {call_id}/{put_id}: payout {after_a - before_a}/{after_b - before_b} ({tx_hash})"
        )
        return after_a - before_a, after_b - before_b

    @status_tuple
    async def unrealized_profit(self, call_id: int, put_id: int) -> tuple[int, int]:
        profit_a, profit_b = await self._view(
            "getOptionsProfit", int(call_id), int(put_id)
        )
        return int(profit_a), int(profit_b)
