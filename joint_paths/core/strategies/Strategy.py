from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypedDict

from loguru import logger


class StatusDict(TypedDict):
    state: str
    projected_a: int
    projected_b: int
    contributed_a: int
    contributed_b: int
    strategy_status: Any


StatusTuple = tuple[bool, str]


class WalletConfig(TypedDict, total=False):
    address: str
    private_key: str | None
    private_key_hex: str | None
    label: str | None


class StrategyConfig(TypedDict, total=False):
    strategy_wallet: WalletConfig | None
    joint: dict[str, Any] | None


class Strategy(ABC):
    name: str | None = None

    def __init__(
        self,
        config: StrategyConfig | dict[str, Any] | None = None,
        *,
        strategy_wallet_signing_callback: Callable[[dict], Awaitable[str]]
        | None = None,
        **kwargs: Any,
    ):
        self.logger = logger.bind(strategy=self.__class__.__name__)
        self.config: StrategyConfig | dict[str, Any] = config or {}
        self.strategy_wallet_signing_callback = strategy_wallet_signing_callback

    async def setup(self) -> None:
        pass

    def _get_strategy_wallet_address(self) -> str:
        strategy_wallet = self.config.get("strategy_wallet")
        if not strategy_wallet or not isinstance(strategy_wallet, dict):
            raise ValueError("strategy_wallet not configured in strategy config")
        address = strategy_wallet.get("address")
        if not address:
            raise ValueError("strategy_wallet address not found in config")
        return str(address)

    @abstractmethod
    async def deposit(self, **kwargs) -> StatusTuple:
        pass

    async def withdraw(self, **kwargs) -> StatusTuple:
        return (True, "Withdrawal complete")

    @abstractmethod
    async def update(self, **kwargs) -> StatusTuple:
        pass

    @abstractmethod
    async def exit(self, **kwargs) -> StatusTuple:
        pass

    @abstractmethod
    async def _status(self) -> StatusDict:
        pass

    async def status(self) -> StatusDict:
        status = await self._status()
        self.logger.info(
            f"Status {status['state']}: projected {status['projected_a']}/{status['projected_b']}"
        )
        return status
