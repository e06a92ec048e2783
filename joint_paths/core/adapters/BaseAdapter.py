from __future__ import annotations

import functools
from abc import ABC
from collections.abc import Callable
from typing import Any

from eth_utils import to_checksum_address
from loguru import logger

from joint_paths.core.utils.transaction import SignCallback


def require_wallet(fn: Callable) -> Callable:
    """Return ``(False, ...)`` early if the joint's wallet is not configured."""

    @functools.wraps(fn)
    async def wrapper(self: BaseAdapter, *args: Any, **kwargs: Any) -> Any:
        if not getattr(self, "wallet_address", None):
            return False, "wallet address not configured"
        return await fn(self, *args, **kwargs)

    return wrapper


class BaseAdapter(ABC):
    """Shared setup for the joint's collaborators.

    Every adapter acts for one wallet on one chain. Read-only adapters leave
    ``wallet_address`` and ``sign_callback`` unset; ``require_wallet`` guards
    the methods that send transactions.
    """

    adapter_type: str | None = None

    def __init__(
        self,
        name: str,
        config: dict[str, Any] | None = None,
        *,
        chain_id: int | None = None,
        wallet_address: str | None = None,
        sign_callback: SignCallback | None = None,
    ):
        self.name = name
        self.config = config or {}
        self.chain_id = int(chain_id) if chain_id is not None else None
        self.wallet_address: str | None = (
            to_checksum_address(wallet_address) if wallet_address else None
        )
        self.sign_callback = sign_callback
        self.logger = logger.bind(adapter=self.__class__.__name__)

    async def close(self) -> None:
        pass
