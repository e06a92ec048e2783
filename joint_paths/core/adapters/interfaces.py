"""Collaborator surfaces consumed by the joint engine.

Every coroutine follows the adapter convention and resolves to
``(True, result)`` or ``(False, error_message)``.
"""

from __future__ import annotations

from typing import Any, Protocol, TypeAlias, TypeVar, runtime_checkable

from joint_paths.core.adapters.models import LiquidityReceipt
from joint_paths.core.engine.ledger import HedgeIds, ProviderInfo

T = TypeVar("T")

Status: TypeAlias = tuple[bool, T | str]


@runtime_checkable
class AmmAdapter(Protocol):
    async def add_liquidity(
        self, token_a: str, token_b: str, amount_a: int, amount_b: int
    ) -> Status[LiquidityReceipt]: ...

    async def remove_liquidity(self, shares: int) -> Status[tuple[int, int]]: ...

    async def swap(
        self, token_in: str, token_out: str, amount_in: int
    ) -> Status[int]: ...

    async def quote_swap(
        self, token_in: str, token_out: str, amount_in: int
    ) -> Status[int]: ...

    def quote_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int: ...

    async def reserves(self) -> Status[tuple[int, int]]: ...

    async def share_balance(self) -> Status[int]: ...

    async def total_supply(self) -> Status[int]: ...


@runtime_checkable
class StakingAdapter(Protocol):
    protocol_name: str

    async def stake(self, amount: int) -> Status[Any]: ...

    async def unstake(self, amount: int) -> Status[Any]: ...

    async def staked_balance(self) -> Status[int]: ...

    async def pending_reward(self) -> Status[int]: ...


@runtime_checkable
class HedgeAdapter(Protocol):
    async def open(
        self, pair_shares: int, moneyness_bps: int, period_s: int
    ) -> Status[HedgeIds]: ...

    async def close(self, call_id: int, put_id: int) -> Status[tuple[int, int]]: ...

    async def unrealized_profit(
        self, call_id: int, put_id: int
    ) -> Status[tuple[int, int]]: ...


@runtime_checkable
class TokenAdapter(Protocol):
    async def balance_of(self, token: str) -> Status[int]: ...

    async def decimals(self, token: str) -> Status[int]: ...

    async def symbol(self, token: str) -> Status[str]: ...

    async def transfer(self, token: str, to: str, amount: int) -> Status[Any]: ...


@runtime_checkable
class ProviderAdapter(Protocol):
    async def describe(self, provider: str) -> Status[ProviderInfo]: ...
