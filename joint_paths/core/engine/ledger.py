from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator

from joint_paths.core.constants.base import (
    DEFAULT_HEDGE_BUDGET_BPS,
    DEFAULT_HEDGE_MONEYNESS_BPS,
    DEFAULT_HEDGE_PERIOD_S,
    MAX_BPS,
    MAX_HEDGE_PERIOD_S,
    RATIO_PRECISION,
)
from joint_paths.core.errors import UnsupportedSwapTarget
from joint_paths.core.utils.valuation_math import Side


def same_address(a: str | None, b: str | None) -> bool:
    return bool(a) and bool(b) and str(a).lower() == str(b).lower()


class JointState(StrEnum):
    IDLE = "IDLE"
    INVESTED = "INVESTED"


class ProviderInfo(BaseModel):
    address: str
    token: str
    governance: str
    strategist: str


class Leg(BaseModel):
    token: str
    provider: ProviderInfo

    @model_validator(mode="after")
    def _provider_owns_token(self) -> Leg:
        if not same_address(self.token, self.provider.token):
            raise ValueError(
                f"provider {self.provider.address} supplies {self.provider.token}, not {self.token}"
            )
        return self


class HedgeIds(BaseModel):
    call_id: int = 0
    put_id: int = 0

    @model_validator(mode="after")
    def _opened_as_pair(self) -> HedgeIds:
        if (self.call_id == 0) != (self.put_id == 0):
            raise ValueError(
                f"hedge ids must be set together (call={self.call_id}, put={self.put_id})"
            )
        return self

    @property
    def is_open(self) -> bool:
        return self.call_id != 0 and self.put_id != 0


class JointParameters(BaseModel):
    hedge_budget_bps: int = Field(default=DEFAULT_HEDGE_BUDGET_BPS, ge=0, le=MAX_BPS)
    hedge_moneyness_bps: int = Field(
        default=DEFAULT_HEDGE_MONEYNESS_BPS, ge=0, lt=MAX_BPS
    )
    hedge_period_s: int = Field(
        default=DEFAULT_HEDGE_PERIOD_S, gt=0, lt=MAX_HEDGE_PERIOD_S
    )


class PositionLedger(BaseModel):
    joint_id: str
    chain_id: int
    wallet: str
    leg_a: Leg
    leg_b: Leg
    router: str
    pair: str
    staking_pool_id: int
    reward_token: str
    base_asset: str

    params: JointParameters = Field(default_factory=JointParameters)
    ratio_precision: int = RATIO_PRECISION

    contributed_a: int = Field(default=0, ge=0)
    contributed_b: int = Field(default=0, ge=0)
    active_hedge: HedgeIds = Field(default_factory=HedgeIds)
    # Set by a committed harvest whose balances still have to reach the providers.
    return_pending: bool = False

    cycle: int = 0
    version: int = 0
    invested_at: int | None = None
    harvested_at: int | None = None

    @field_validator("ratio_precision")
    @classmethod
    def _fixed_precision(cls, value: int) -> int:
        if value != RATIO_PRECISION:
            raise ValueError(f"ratio_precision is fixed at {RATIO_PRECISION}")
        return value

    @model_validator(mode="after")
    def _distinct_legs(self) -> PositionLedger:
        if same_address(self.leg_a.token, self.leg_b.token):
            raise ValueError("leg A and leg B must be different tokens")
        return self

    @property
    def state(self) -> JointState:
        if self.contributed_a == 0 and self.contributed_b == 0:
            return JointState.IDLE
        return JointState.INVESTED

    @property
    def token_a(self) -> str:
        return self.leg_a.token

    @property
    def token_b(self) -> str:
        return self.leg_b.token

    def leg(self, side: Side) -> Leg:
        return self.leg_a if side is Side.A else self.leg_b

    def side_of(self, token: str) -> Side | None:
        if same_address(token, self.token_a):
            return Side.A
        if same_address(token, self.token_b):
            return Side.B
        return None

    def reward_is_leg(self) -> bool:
        return self.side_of(self.reward_token) is not None

    def find_swap_leg(self, token: str) -> str:
        """Token that ``token`` should be swapped into.

        A leg swaps into the other leg. The reward goes to the base-liquidity
        asset when one of the legs is that asset, otherwise to leg A.
        """
        side = self.side_of(token)
        if side is not None:
            return self.leg(side.other).token
        if same_address(token, self.reward_token):
            if self.side_of(self.base_asset) is not None:
                return self.leg(self.side_of(self.base_asset)).token
            return self.token_a
        raise UnsupportedSwapTarget(token)
