"""Joint LP strategy.

Two capital providers each supply one token of a Uniswap-V2 pair. The joint
deposits both sides, farms the pool share on a MasterChef, hedges the position
with a call+put pair and, on harvest, rebalances so both providers earn the
same proportional return.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from joint_paths.adapters.hedge_adapter.adapter import HegicHedgeAdapter
from joint_paths.adapters.masterchef_adapter.adapter import MASTERCHEF_VARIANTS
from joint_paths.adapters.provider_adapter.adapter import ProviderAdapter
from joint_paths.adapters.token_adapter.adapter import TokenAdapter
from joint_paths.adapters.uniswap_v2_adapter.adapter import UniswapV2Adapter
from joint_paths.core.adapters.interfaces import ProviderAdapter as ProviderSource
from joint_paths.core.config import get_joint_defaults, get_ledger_db_path
from joint_paths.core.engine.factory import AdapterBuilder, JointFactory, JointInit
from joint_paths.core.engine.ledger import JointParameters, PositionLedger
from joint_paths.core.engine.lifecycle import AdapterSet, JointController, expect
from joint_paths.core.engine.projector import ValuationProjector
from joint_paths.core.errors import JointError, PreconditionViolation
from joint_paths.core.storage.ledger_store import LedgerStore
from joint_paths.core.strategies.Strategy import StatusDict, StatusTuple, Strategy

from .constants import (
    DEFAULT_CHAIN_ID,
    DEFAULT_PROTOCOL,
    DEFAULT_SLIPPAGE_BPS,
    PARAMETER_KEYS,
    REQUIRED_ADAPTER_KEYS,
    REQUIRED_INIT_KEYS,
)


def joint_name(protocol_name: str, symbol_a: str, symbol_b: str) -> str:
    return f"{protocol_name}Joint({symbol_a}-{symbol_b})"


def onchain_adapter_builder(
    joint_config: dict[str, Any],
    *,
    sign_callback: Callable[[dict], Awaitable[str]] | None,
) -> AdapterBuilder:
    """Build the live adapters for a ledger from the ``joint`` config section."""
    missing = [k for k in REQUIRED_ADAPTER_KEYS if not joint_config.get(k)]
    if missing:
        raise ValueError(f"joint config is missing {', '.join(missing)}")
    protocol = str(joint_config.get("protocol", DEFAULT_PROTOCOL)).lower()
    if protocol not in MASTERCHEF_VARIANTS:
        raise ValueError(
            f"Unknown staking protocol '{protocol}'. Available: {sorted(MASTERCHEF_VARIANTS)}"
        )
    staking_cls = MASTERCHEF_VARIANTS[protocol]
    slippage_bps = int(joint_config.get("slippage_bps", DEFAULT_SLIPPAGE_BPS))

    def build(ledger: PositionLedger) -> AdapterSet:
        common = {
            "chain_id": ledger.chain_id,
            "wallet_address": ledger.wallet,
            "sign_callback": sign_callback,
        }
        return AdapterSet(
            amm=UniswapV2Adapter(
                router=ledger.router,
                pair=ledger.pair,
                token_a=ledger.token_a,
                token_b=ledger.token_b,
                base_asset=ledger.base_asset,
                slippage_bps=slippage_bps,
                **common,
            ),
            staking=staking_cls(
                masterchef=joint_config["masterchef"],
                pool_id=ledger.staking_pool_id,
                lp_token=ledger.pair,
                **common,
            ),
            hedge=HegicHedgeAdapter(
                hedger=joint_config["hedger"],
                options_manager=joint_config["options_manager"],
                lp_token=ledger.pair,
                token_a=ledger.token_a,
                token_b=ledger.token_b,
                **common,
            ),
            token=TokenAdapter(**common),
            provider=ProviderAdapter(chain_id=ledger.chain_id),
        )

    return build


class JointLpStrategy(Strategy):
    name = "Joint LP"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        strategy_wallet: dict[str, Any] | None = None,
        strategy_wallet_signing_callback: Callable[[dict], Awaitable[str]]
        | None = None,
        store: LedgerStore | None = None,
        adapter_builder: AdapterBuilder | None = None,
        provider_adapter: ProviderSource | None = None,
        **kwargs: Any,
    ):
        super().__init__(
            strategy_wallet_signing_callback=strategy_wallet_signing_callback,
        )
        merged_config: dict[str, Any] = dict(config or {})
        if strategy_wallet is not None:
            merged_config["strategy_wallet"] = strategy_wallet
        self.config = merged_config
        self.joint_config: dict[str, Any] = dict(merged_config.get("joint") or {})

        chain_id = int(self.joint_config.get("chain_id", DEFAULT_CHAIN_ID))
        self.store = store or LedgerStore(get_ledger_db_path())
        self.factory = JointFactory(
            self.store,
            adapter_builder
            or onchain_adapter_builder(
                self.joint_config, sign_callback=self.strategy_wallet_signing_callback
            ),
            provider_adapter or ProviderAdapter(chain_id=chain_id),
        )
        self.controller: JointController | None = None
        self.projector: ValuationProjector | None = None

    # ── setup ────────────────────────────────────────────────────────────────

    def _joint_parameters(self) -> JointParameters:
        values = get_joint_defaults()
        values.update(
            {k: int(self.joint_config[k]) for k in PARAMETER_KEYS if k in self.joint_config}
        )
        return JointParameters(**values)

    def _joint_init(self) -> JointInit:
        missing = [k for k in REQUIRED_INIT_KEYS if self.joint_config.get(k) is None]
        if missing:
            raise ValueError(f"joint config is missing {', '.join(missing)}")
        fields: dict[str, Any] = {
            "chain_id": int(self.joint_config.get("chain_id", DEFAULT_CHAIN_ID)),
            "wallet": self._get_strategy_wallet_address(),
            "provider_a": self.joint_config["provider_a"],
            "provider_b": self.joint_config["provider_b"],
            "router": self.joint_config["router"],
            "pair": self.joint_config["pair"],
            "staking_pool_id": int(self.joint_config["staking_pool_id"]),
            "reward_token": self.joint_config["reward_token"],
            "base_asset": self.joint_config.get("base_asset"),
            "params": self._joint_parameters(),
        }
        if self.joint_config.get("joint_id"):
            fields["joint_id"] = str(self.joint_config["joint_id"])
        return JointInit(**fields)

    async def setup(self) -> None:
        joint_id = self.joint_config.get("joint_id")
        if joint_id and joint_id in self.store.list_ids():
            self.controller = self.factory.open(joint_id)
            self.logger.info(f"Opened joint {joint_id}")
        else:
            self.controller = await self.factory.initialize(self._joint_init())
        self.projector = self.factory.projector(self.controller)

    async def _joint(self) -> JointController:
        if self.controller is None:
            await self.setup()
        return self.controller

    def _caller(self, ledger: PositionLedger) -> str:
        """Provider identity used for invest and harvest."""
        return str(self.joint_config.get("caller") or ledger.leg_a.provider.address)

    def _operator(self, ledger: PositionLedger) -> str:
        """Strategist or governance identity used for administration."""
        return str(self.joint_config.get("operator") or ledger.leg_a.provider.strategist)

    async def display_name(self) -> str:
        joint = await self._joint()
        ledger = joint.ledger()
        token = joint.adapters.token
        symbol_a = expect(await token.symbol(ledger.token_a), "symbol A")
        symbol_b = expect(await token.symbol(ledger.token_b), "symbol B")
        return joint_name(joint.adapters.staking.protocol_name, symbol_a, symbol_b)

    # ── verbs ────────────────────────────────────────────────────────────────

    async def deposit(self, **kwargs) -> StatusTuple:
        try:
            joint = await self._joint()
            report = await joint.invest(caller=self._caller(joint.ledger()))
        except JointError as exc:
            return False, str(exc)
        return (
            True,
            f"Invested cycle {report.cycle}: A={report.contributed_a} B={report.contributed_b} "
            f"shares={report.shares}",
        )

    async def update(self, **kwargs) -> StatusTuple:
        try:
            joint = await self._joint()
            caller = self._caller(joint.ledger())
            harvest = await joint.harvest(caller=caller)
            if harvest.skipped:
                return True, "No active position to update"
            try:
                report = await joint.invest(caller=caller)
            except PreconditionViolation as exc:
                return True, f"Harvested without reinvesting: {exc}"
        except JointError as exc:
            return False, str(exc)
        return (
            True,
            f"Harvested and reinvested cycle {report.cycle}: "
            f"A={report.contributed_a} B={report.contributed_b}",
        )

    async def withdraw(self, **kwargs) -> StatusTuple:
        try:
            joint = await self._joint()
            report = await joint.harvest(
                return_funds=True, caller=self._caller(joint.ledger())
            )
        except JointError as exc:
            return False, str(exc)
        if report.skipped:
            return True, "No active position to withdraw"
        return (
            True,
            f"Harvested and returned A={report.final_a} B={report.final_b} to providers",
        )

    async def exit(self, **kwargs) -> StatusTuple:
        try:
            joint = await self._joint()
            amount_a, amount_b = await joint.return_loose_to_providers(
                caller=self._operator(joint.ledger())
            )
        except JointError as exc:
            return False, str(exc)
        if amount_a == 0 and amount_b == 0:
            return True, "No loose funds to return"
        return True, f"Returned A={amount_a} B={amount_b} to providers"

    async def _status(self) -> StatusDict:
        joint = await self._joint()
        ledger = joint.ledger()
        projected = await self.projector.projected_assets()
        return StatusDict(
            state=str(ledger.state),
            projected_a=projected.asset_a,
            projected_b=projected.asset_b,
            contributed_a=ledger.contributed_a,
            contributed_b=ledger.contributed_b,
            strategy_status={
                "name": await self.display_name(),
                "protocol": joint.adapters.staking.protocol_name,
                "joint_id": ledger.joint_id,
                "cycle": ledger.cycle,
                "version": ledger.version,
                "hedge": ledger.active_hedge.model_dump(),
                "params": ledger.params.model_dump(),
            },
        )
