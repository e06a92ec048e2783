from __future__ import annotations

from loguru import logger
from pydantic import BaseModel

from joint_paths.core.engine.ledger import PositionLedger
from joint_paths.core.engine.lifecycle import AdapterSet, expect
from joint_paths.core.storage.ledger_store import LedgerStore
from joint_paths.core.utils.valuation_math import (
    Side,
    apply_sell,
    checked_sub,
    mul_div,
    sell_amount_to_balance,
)


class ProjectedAssets(BaseModel):
    asset_a: int
    asset_b: int


class ValuationProjector:
    """Side-effect-free estimate of what ``harvest(return_funds=True)`` would pay out now.

    Only read and quote calls are made on the collaborators. The rebalance is
    simulated with the same solver the harvest uses, against the reserves the
    pool would have once this position's liquidity is withdrawn.
    """

    def __init__(self, store: LedgerStore, joint_id: str, adapters: AdapterSet) -> None:
        self.store = store
        self.joint_id = joint_id
        self.adapters = adapters
        self.logger = logger.bind(joint=joint_id)

    async def projected_assets(self) -> ProjectedAssets:
        ledger = self.store.load(self.joint_id)
        amm, staking, hedge, token = (
            self.adapters.amm,
            self.adapters.staking,
            self.adapters.hedge,
            self.adapters.token,
        )

        reserve_a, reserve_b = expect(await amm.reserves(), "reserves")
        supply = expect(await amm.total_supply(), "total_supply")
        shares = expect(await staking.staked_balance(), "staked_balance") + expect(
            await amm.share_balance(), "share_balance"
        )

        asset_a = expect(await token.balance_of(ledger.token_a), "balance_of A")
        asset_b = expect(await token.balance_of(ledger.token_b), "balance_of B")

        if shares > 0 and supply > 0:
            pooled_a = mul_div(shares, reserve_a, supply)
            pooled_b = mul_div(shares, reserve_b, supply)
            asset_a += pooled_a
            asset_b += pooled_b
            reserve_a = checked_sub(reserve_a, pooled_a)
            reserve_b = checked_sub(reserve_b, pooled_b)

        if ledger.active_hedge.is_open:
            ids = ledger.active_hedge
            profit_a, profit_b = expect(
                await hedge.unrealized_profit(ids.call_id, ids.put_id),
                "unrealized_profit",
            )
            asset_a += profit_a
            asset_b += profit_b

        asset_a, asset_b = await self._add_reward(ledger, asset_a, asset_b)

        decision = sell_amount_to_balance(
            asset_a,
            asset_b,
            ledger.contributed_a,
            ledger.contributed_b,
            reserve_a,
            reserve_b,
            precision_a=10 ** expect(await token.decimals(ledger.token_a), "decimals A"),
            precision_b=10 ** expect(await token.decimals(ledger.token_b), "decimals B"),
            quote_out=amm.quote_out,
            ratio_precision=ledger.ratio_precision,
        )
        if not decision.is_noop:
            if decision.side is Side.A:
                bought = amm.quote_out(decision.amount, reserve_a, reserve_b)
            else:
                bought = amm.quote_out(decision.amount, reserve_b, reserve_a)
            asset_a, asset_b = apply_sell(asset_a, asset_b, decision, bought)

        return ProjectedAssets(asset_a=asset_a, asset_b=asset_b)

    async def _add_reward(
        self, ledger: PositionLedger, asset_a: int, asset_b: int
    ) -> tuple[int, int]:
        amount = expect(await self.adapters.staking.pending_reward(), "pending_reward")
        # A reward that is also a leg is already counted in the loose balance.
        side = ledger.side_of(ledger.reward_token)
        if side is None:
            amount += expect(
                await self.adapters.token.balance_of(ledger.reward_token),
                "balance_of reward",
            )
            if amount == 0:
                return asset_a, asset_b
            target = ledger.find_swap_leg(ledger.reward_token)
            amount = expect(
                await self.adapters.amm.quote_swap(ledger.reward_token, target, amount),
                "quote reward swap",
            )
            side = ledger.side_of(target)

        if side is Side.A:
            return asset_a + amount, asset_b
        return asset_a, asset_b + amount

    async def estimated_total_assets_in_token(self, token: str) -> int:
        ledger = self.store.load(self.joint_id)
        side = ledger.side_of(token)
        if side is None:
            return 0
        projected = await self.projected_assets()
        return projected.asset_a if side is Side.A else projected.asset_b
