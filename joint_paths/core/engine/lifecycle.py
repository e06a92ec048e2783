from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel

from joint_paths.core.adapters.interfaces import (
    AmmAdapter,
    HedgeAdapter,
    ProviderAdapter,
    StakingAdapter,
    TokenAdapter,
)
from joint_paths.core.constants.base import MAX_BPS, MAX_HEDGE_PERIOD_S
from joint_paths.core.engine.access import (
    AccessControl,
    only_authorized,
    only_governance,
    only_providers,
)
from joint_paths.core.engine.atomic import AtomicOperation
from joint_paths.core.engine.ledger import (
    HedgeIds,
    JointState,
    PositionLedger,
    same_address,
)
from joint_paths.core.errors import (
    CollaboratorFailure,
    PreconditionViolation,
    check_invariant,
)
from joint_paths.core.storage.ledger_store import LedgerStore
from joint_paths.core.utils.valuation_math import (
    Side,
    apply_sell,
    ratios,
    sell_amount_to_balance,
)


T = TypeVar("T")


def expect(result: tuple[bool, T | str], step: str) -> T:
    """Unwrap an adapter status tuple, raising ``CollaboratorFailure`` on ``(False, ...)``."""
    ok, value = result
    if not ok:
        raise CollaboratorFailure(step, str(value))
    return value  # type: ignore[return-value]


@dataclass
class AdapterSet:
    amm: AmmAdapter
    staking: StakingAdapter
    hedge: HedgeAdapter
    token: TokenAdapter
    provider: ProviderAdapter | None = None


class InvestReport(BaseModel):
    joint_id: str
    cycle: int
    contributed_a: int
    contributed_b: int
    shares: int
    staked: int
    hedge: HedgeIds


class HarvestReport(BaseModel):
    joint_id: str
    skipped: bool = False
    ratio_before: tuple[int, int] | None = None
    ratio_after: tuple[int, int] | None = None
    sold_token: str | None = None
    sold_amount: int = 0
    bought_amount: int = 0
    reward_swapped: int = 0
    hedge_payout: tuple[int, int] = (0, 0)
    final_a: int = 0
    final_b: int = 0
    returned_funds: bool = False


class JointController:
    """Runs the invest/harvest lifecycle of one joint position.

    Public operations are serialized per instance and each one executes inside
    an :class:`AtomicOperation`.
    """

    def __init__(
        self,
        store: LedgerStore,
        joint_id: str,
        adapters: AdapterSet,
    ) -> None:
        self.store = store
        self.joint_id = joint_id
        self.adapters = adapters
        identity = store.load(joint_id)
        self.access = AccessControl.from_ledger(identity)
        self.logger = logger.bind(joint=joint_id)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def ledger(self) -> PositionLedger:
        return self.store.load(self.joint_id)

    def state(self) -> JointState:
        return self.ledger().state

    def find_swap_leg(self, token: str) -> str:
        return self.ledger().find_swap_leg(token)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @only_providers
    async def invest(self, *, caller: str | None = None) -> InvestReport:
        async with self._lock:
            async with AtomicOperation(self.store, self.joint_id, "invest") as op:
                report = await self._invest(op)
            self._record("invest", op, report)
            return report

    @only_providers
    async def harvest(
        self, *, return_funds: bool = False, caller: str | None = None
    ) -> HarvestReport:
        """Unwind, rebalance and commit; then pay the providers if asked.

        The payout runs after the commit. If a transfer fails the ledger keeps
        ``return_pending`` and the next harvest finishes the payout instead of
        rebalancing again.
        """
        async with self._lock:
            ledger = self.ledger()
            if ledger.state is JointState.INVESTED:
                async with AtomicOperation(self.store, self.joint_id, "harvest") as op:
                    report = await self._harvest(op, return_funds=return_funds)
                self._record("harvest", op, report)
            elif ledger.return_pending:
                self.logger.info("Resuming return of harvested funds")
                report = HarvestReport(joint_id=self.joint_id, returned_funds=True)
            else:
                self.logger.info("Harvest skipped: nothing invested")
                return HarvestReport(joint_id=self.joint_id, skipped=True)

            if report.returned_funds:
                report = await self._complete_return(report)
            return report

    async def _invest(self, op: AtomicOperation) -> InvestReport:
        ledger = op.ledger
        amm, staking, hedge, token = (
            self.adapters.amm,
            self.adapters.staking,
            self.adapters.hedge,
            self.adapters.token,
        )

        balance_a = expect(await token.balance_of(ledger.token_a), "balance_of A")
        balance_b = expect(await token.balance_of(ledger.token_b), "balance_of B")
        staked = expect(await staking.staked_balance(), "staked_balance")
        shares_held = expect(await amm.share_balance(), "share_balance")

        if ledger.contributed_a != 0 or ledger.contributed_b != 0:
            raise PreconditionViolation("joint is already invested")
        if ledger.return_pending:
            raise PreconditionViolation("harvested funds are still being returned")
        if staked != 0 or shares_held != 0:
            raise PreconditionViolation(
                f"pool shares already held (staked={staked}, unstaked={shares_held})"
            )
        if balance_a == 0 or balance_b == 0:
            raise PreconditionViolation(
                f"both legs must be funded (A={balance_a}, B={balance_b})"
            )

        budget = ledger.params.hedge_budget_bps
        amount_a = balance_a * (MAX_BPS - budget) // MAX_BPS
        amount_b = balance_b * (MAX_BPS - budget) // MAX_BPS
        if amount_a == 0 or amount_b == 0:
            raise PreconditionViolation("hedge budget leaves nothing to deploy")

        receipt = expect(
            await amm.add_liquidity(ledger.token_a, ledger.token_b, amount_a, amount_b),
            "add_liquidity",
        )
        minted = receipt.shares

        async def _remove_liquidity() -> None:
            expect(await amm.remove_liquidity(minted), "remove_liquidity")

        op.compensate("remove liquidity", _remove_liquidity)

        ledger.contributed_a = receipt.used_a
        ledger.contributed_b = receipt.used_b
        check_invariant(
            (ledger.contributed_a > 0) == (ledger.contributed_b > 0),
            f"one-sided contribution ({ledger.contributed_a}, {ledger.contributed_b})",
        )
        check_invariant(minted > 0, "add_liquidity minted no pool shares")

        if budget > 0:
            check_invariant(
                not ledger.active_hedge.is_open,
                f"hedge already active: {ledger.active_hedge}",
            )
            ids = expect(
                await hedge.open(
                    minted,
                    ledger.params.hedge_moneyness_bps,
                    ledger.params.hedge_period_s,
                ),
                "open_hedge",
            )
            check_invariant(ids.is_open, f"hedge opened with partial ids {ids}")

            async def _close_hedge() -> None:
                expect(await hedge.close(ids.call_id, ids.put_id), "close_hedge")

            op.compensate("close hedge", _close_hedge)
            ledger.active_hedge = ids

        to_stake = expect(await amm.share_balance(), "share_balance")
        expect(await staking.stake(to_stake), "stake")

        async def _unstake() -> None:
            expect(await staking.unstake(to_stake), "unstake")

        op.compensate("unstake", _unstake)

        ledger.cycle += 1
        ledger.invested_at = int(time.time())
        self.logger.info(
            f"Invested cycle {ledger.cycle}: A={ledger.contributed_a} B={ledger.contributed_b} "
            f"shares={minted} hedge={ledger.active_hedge.call_id}/{ledger.active_hedge.put_id}"
        )
        return InvestReport(
            joint_id=ledger.joint_id,
            cycle=ledger.cycle,
            contributed_a=ledger.contributed_a,
            contributed_b=ledger.contributed_b,
            shares=minted,
            staked=to_stake,
            hedge=ledger.active_hedge,
        )

    async def _unwind(self, ledger: PositionLedger) -> tuple[int, int]:
        """Unstake, close the hedge, and burn every held pool share.

        Each step is guarded by live state so a retried call resumes where a
        failed one stopped.
        """
        amm, staking, hedge = self.adapters.amm, self.adapters.staking, self.adapters.hedge

        staked = expect(await staking.staked_balance(), "staked_balance")
        if staked > 0:
            expect(await staking.unstake(staked), "unstake")

        payout = (0, 0)
        if ledger.active_hedge.is_open:
            ids = ledger.active_hedge
            payout = expect(await hedge.close(ids.call_id, ids.put_id), "close_hedge")
            ledger.active_hedge = HedgeIds()

        shares = expect(await amm.share_balance(), "share_balance")
        if shares > 0:
            expect(await amm.remove_liquidity(shares), "remove_liquidity")
        return payout

    async def _leg_balances(self, ledger: PositionLedger) -> tuple[int, int]:
        token = self.adapters.token
        return (
            expect(await token.balance_of(ledger.token_a), "balance_of A"),
            expect(await token.balance_of(ledger.token_b), "balance_of B"),
        )

    async def _precisions(self, ledger: PositionLedger) -> tuple[int, int]:
        token = self.adapters.token
        decimals_a = expect(await token.decimals(ledger.token_a), "decimals A")
        decimals_b = expect(await token.decimals(ledger.token_b), "decimals B")
        return 10**decimals_a, 10**decimals_b

    def _log_ratios(
        self, label: str, ledger: PositionLedger, current_a: int, current_b: int
    ) -> tuple[int, int]:
        ratio_a, ratio_b = ratios(
            current_a,
            current_b,
            ledger.contributed_a,
            ledger.contributed_b,
            ledger.ratio_precision,
        )
        self.logger.info(f"Ratios {label}: A={ratio_a} B={ratio_b}")
        return ratio_a, ratio_b

    async def _harvest(self, op: AtomicOperation, *, return_funds: bool) -> HarvestReport:
        ledger = op.ledger
        amm, token = self.adapters.amm, self.adapters.token
        payout = await self._unwind(ledger)

        reward_swapped = 0
        if not ledger.reward_is_leg():
            reward_balance = expect(
                await token.balance_of(ledger.reward_token), "balance_of reward"
            )
            if reward_balance > 0:
                target = ledger.find_swap_leg(ledger.reward_token)
                expect(
                    await amm.swap(ledger.reward_token, target, reward_balance),
                    "swap reward",
                )
                reward_swapped = reward_balance

        current_a, current_b = await self._leg_balances(ledger)
        ratio_before = self._log_ratios("before balance", ledger, current_a, current_b)

        reserve_a, reserve_b = expect(await amm.reserves(), "reserves")
        precision_a, precision_b = await self._precisions(ledger)
        decision = sell_amount_to_balance(
            current_a,
            current_b,
            ledger.contributed_a,
            ledger.contributed_b,
            reserve_a,
            reserve_b,
            precision_a=precision_a,
            precision_b=precision_b,
            quote_out=amm.quote_out,
            ratio_precision=ledger.ratio_precision,
        )

        sold_token: str | None = None
        bought = 0
        ratio_after = ratio_before
        if not decision.is_noop:
            sold_token = ledger.leg(decision.side).token
            bought_token = ledger.leg(decision.side.other).token
            bought = expect(
                await amm.swap(sold_token, bought_token, decision.amount),
                "swap to balance",
            )
            current_a, current_b = apply_sell(current_a, current_b, decision, bought)
            ratio_after = self._log_ratios("after balance", ledger, current_a, current_b)

        ledger.contributed_a = 0
        ledger.contributed_b = 0
        ledger.harvested_at = int(time.time())
        check_invariant(
            not ledger.active_hedge.is_open, "hedge still open after harvest"
        )

        ledger.return_pending = return_funds

        return HarvestReport(
            joint_id=ledger.joint_id,
            ratio_before=ratio_before,
            ratio_after=ratio_after,
            sold_token=sold_token,
            sold_amount=decision.amount,
            bought_amount=bought,
            reward_swapped=reward_swapped,
            hedge_payout=payout,
            final_a=current_a,
            final_b=current_b,
            returned_funds=return_funds,
        )

    async def _complete_return(self, report: HarvestReport) -> HarvestReport:
        returned_a, returned_b = await self._return_funds(self.ledger())
        async with AtomicOperation(self.store, self.joint_id, "return_funds") as op:
            op.ledger.return_pending = False
        report = report.model_copy(update={"final_a": returned_a, "final_b": returned_b})
        self._record("return_funds", op, report)
        return report

    async def _return_funds(self, ledger: PositionLedger) -> tuple[int, int]:
        token = self.adapters.token
        balance_a, balance_b = await self._leg_balances(ledger)
        for side, amount in ((Side.A, balance_a), (Side.B, balance_b)):
            leg = ledger.leg(side)
            if amount > 0:
                expect(
                    await token.transfer(leg.token, leg.provider.address, amount),
                    f"return {side} to provider",
                )
                self.logger.info(f"Returned {amount} of leg {side} to {leg.provider.address}")
        return balance_a, balance_b

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    @only_authorized
    async def liquidate(self, *, caller: str | None = None) -> tuple[int, int]:
        """Unwind the position without rebalancing.

        Contributions are kept so a following harvest still equalizes returns.
        """
        async with self._lock:
            async with AtomicOperation(self.store, self.joint_id, "liquidate") as op:
                await self._unwind(op.ledger)
                balances = await self._leg_balances(op.ledger)
            self.logger.info(f"Liquidated by {caller}: A={balances[0]} B={balances[1]}")
            return balances

    @only_authorized
    async def return_loose_to_providers(self, *, caller: str | None = None) -> tuple[int, int]:
        async with self._lock:
            return await self._return_funds(self.ledger())

    @only_governance
    async def sweep(self, token: str, *, caller: str | None = None) -> int:
        async with self._lock:
            ledger = self.ledger()
            if ledger.side_of(token) is not None or same_address(token, ledger.pair):
                raise PreconditionViolation(f"cannot sweep position token {token}")
            if ledger.state is JointState.INVESTED and same_address(
                token, ledger.reward_token
            ):
                raise PreconditionViolation("cannot sweep the reward while invested")
            amount = expect(await self.adapters.token.balance_of(token), "balance_of")
            if amount > 0:
                destination = ledger.leg_a.provider.governance
                expect(
                    await self.adapters.token.transfer(token, destination, amount),
                    "sweep transfer",
                )
                self.logger.info(f"Swept {amount} of {token} to {destination}")
            return amount

    @only_governance
    async def close_hedge_manually(self, *, caller: str | None = None) -> tuple[int, int]:
        async with self._lock:
            async with AtomicOperation(self.store, self.joint_id, "close_hedge") as op:
                ids = op.ledger.active_hedge
                if not ids.is_open:
                    raise PreconditionViolation("no active hedge")
                payout = expect(
                    await self.adapters.hedge.close(ids.call_id, ids.put_id),
                    "close_hedge",
                )
                op.ledger.active_hedge = HedgeIds()
            return payout

    @only_governance
    async def withdraw_stake_manually(self, *, caller: str | None = None) -> int:
        async with self._lock:
            staking = self.adapters.staking
            staked = expect(await staking.staked_balance(), "staked_balance")
            if staked > 0:
                expect(await staking.unstake(staked), "unstake")
            return staked

    async def _update_params(self, operation: str, **changes: Any) -> PositionLedger:
        async with self._lock:
            async with AtomicOperation(self.store, self.joint_id, operation) as op:
                op.ledger.params = op.ledger.params.model_copy(update=changes)
            self.logger.info(f"{operation}: {changes}")
            return op.committed

    @only_authorized
    async def set_hedge_budget(self, bps: int, *, caller: str | None = None) -> PositionLedger:
        if not 0 <= bps <= MAX_BPS:
            raise PreconditionViolation(f"hedge budget must be within 0..{MAX_BPS}")
        return await self._update_params("set_hedge_budget", hedge_budget_bps=int(bps))

    @only_authorized
    async def set_hedge_period(
        self, seconds: int, *, caller: str | None = None
    ) -> PositionLedger:
        if not 0 < seconds < MAX_HEDGE_PERIOD_S:
            raise PreconditionViolation("hedge period must be positive and under 90 days")
        return await self._update_params("set_hedge_period", hedge_period_s=int(seconds))

    @only_authorized
    async def set_hedge_moneyness(
        self, bps: int, *, caller: str | None = None
    ) -> PositionLedger:
        if not 0 <= bps < MAX_BPS:
            raise PreconditionViolation(f"protection range must be below {MAX_BPS}")
        return await self._update_params("set_hedge_moneyness", hedge_moneyness_bps=int(bps))

    def _record(self, operation: str, op: AtomicOperation, report: BaseModel) -> None:
        self.store.record_event(
            self.joint_id,
            operation,
            version=op.committed.version,
            payload=report.model_dump(mode="json"),
        )
