from __future__ import annotations

import uuid
from collections.abc import Callable

from loguru import logger
from pydantic import BaseModel, Field

from joint_paths.core.adapters.interfaces import ProviderAdapter
from joint_paths.core.constants.chains import WRAPPED_NATIVE
from joint_paths.core.engine.ledger import (
    JointParameters,
    Leg,
    PositionLedger,
    ProviderInfo,
)
from joint_paths.core.engine.lifecycle import AdapterSet, JointController, expect
from joint_paths.core.engine.projector import ValuationProjector
from joint_paths.core.errors import PreconditionViolation
from joint_paths.core.storage.ledger_store import LedgerStore

AdapterBuilder = Callable[[PositionLedger], AdapterSet]


class JointInit(BaseModel):
    chain_id: int
    wallet: str
    provider_a: str
    provider_b: str
    router: str
    pair: str
    staking_pool_id: int
    reward_token: str
    base_asset: str | None = None
    joint_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    params: JointParameters = Field(default_factory=JointParameters)


class JointFactory:
    """Creates joint instances that share code and storage but not state."""

    def __init__(
        self,
        store: LedgerStore,
        adapter_builder: AdapterBuilder,
        provider_adapter: ProviderAdapter,
    ) -> None:
        self.store = store
        self.adapter_builder = adapter_builder
        self.provider_adapter = provider_adapter

    async def _describe(self, provider: str) -> ProviderInfo:
        return expect(await self.provider_adapter.describe(provider), "describe provider")

    async def initialize(self, init: JointInit) -> JointController:
        info_a = await self._describe(init.provider_a)
        info_b = await self._describe(init.provider_b)
        base_asset = init.base_asset or WRAPPED_NATIVE.get(init.chain_id)
        if not base_asset:
            raise PreconditionViolation(f"no base asset known for chain {init.chain_id}")

        ledger = PositionLedger(
            joint_id=init.joint_id,
            chain_id=init.chain_id,
            wallet=init.wallet,
            leg_a=Leg(token=info_a.token, provider=info_a),
            leg_b=Leg(token=info_b.token, provider=info_b),
            router=init.router,
            pair=init.pair,
            staking_pool_id=init.staking_pool_id,
            reward_token=init.reward_token,
            base_asset=base_asset,
            params=init.params,
        )
        self.store.create(ledger)
        logger.info(
            f"Initialized joint {ledger.joint_id} for {info_a.token}/{info_b.token} "
            f"on chain {ledger.chain_id}"
        )
        return self.open(ledger.joint_id)

    async def clone(self, prototype: JointController, init: JointInit) -> JointController:
        """Create a new instance from ``prototype``'s logic with fresh, isolated state.

        The clone shares the factory's store and adapter builder. Parameters not
        given in ``init`` are copied from the prototype; balances, contributions
        and hedge start empty.
        """
        if init.joint_id == prototype.joint_id:
            raise PreconditionViolation("a clone needs its own joint_id")
        if "params" not in init.model_fields_set:
            init = init.model_copy(update={"params": prototype.ledger().params})
        controller = await self.initialize(init)
        logger.info(f"Cloned joint {controller.joint_id} from {prototype.joint_id}")
        return controller

    def open(self, joint_id: str) -> JointController:
        ledger = self.store.load(joint_id)
        return JointController(self.store, joint_id, self.adapter_builder(ledger))

    def projector(self, controller: JointController) -> ValuationProjector:
        return ValuationProjector(self.store, controller.joint_id, controller.adapters)
