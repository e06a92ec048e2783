from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address

from joint_paths.core.adapters.BaseAdapter import BaseAdapter, require_wallet
from joint_paths.core.adapters.decorators import status_tuple
from joint_paths.core.constants.base import ADAPTER_MASTERCHEF
from joint_paths.core.constants.masterchef_abi import MASTERCHEF_ABI
from joint_paths.core.utils.tokens import ensure_allowance
from joint_paths.core.utils.transaction import (
    SignCallback,
    encode_call,
    send_transaction,
)
from joint_paths.core.utils.web3 import web3_from_chain_id


class MasterChefAdapter(BaseAdapter):
    """Stakes pool shares in a MasterChef-style farm under a fixed pool id.

    Farms differ only in the name of their pending-reward view; each protocol
    family is a subclass that sets ``protocol_name`` and ``pending_reward_fn``.
    """

    adapter_type = ADAPTER_MASTERCHEF
    protocol_name: str = "MasterChef"
    pending_reward_fn: str | None = None

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        chain_id: int,
        masterchef: str,
        pool_id: int,
        lp_token: str,
        wallet_address: str | None = None,
        sign_callback: SignCallback | None = None,
    ) -> None:
        super().__init__(
            "masterchef_adapter",
            config,
            chain_id=chain_id,
            wallet_address=wallet_address,
            sign_callback=sign_callback,
        )
        self.masterchef = to_checksum_address(masterchef)
        self.pool_id = int(pool_id)
        self.lp_token = to_checksum_address(lp_token)

    async def _call(self, fn_name: str, *args: Any) -> Any:
        async with web3_from_chain_id(self.chain_id) as web3:
            contract = web3.eth.contract(address=self.masterchef, abi=MASTERCHEF_ABI)
            return await getattr(contract.functions, fn_name)(*args).call()

    async def _send(self, fn_name: str, amount: int) -> str:
        tx = await encode_call(
            target=self.masterchef,
            abi=MASTERCHEF_ABI,
            fn_name=fn_name,
            args=[self.pool_id, int(amount)],
            from_address=self.wallet_address,
            chain_id=self.chain_id,
        )
        return await send_transaction(tx, self.sign_callback)

    @status_tuple
    async def verify_pool(self) -> str:
        """Check that ``pool_id`` farms this adapter's pool share."""
        info = await self._call("poolInfo", self.pool_id)
        lp_token = to_checksum_address(info[0])
        if lp_token != self.lp_token:
            raise ValueError(
                f"pool {self.pool_id} farms {lp_token}, expected {self.lp_token}"
            )
        return lp_token

    @require_wallet
    @status_tuple
    async def staked_balance(self) -> int:
        amount, _reward_debt = await self._call(
            "userInfo", self.pool_id, self.wallet_address
        )
        return int(amount)

    @require_wallet
    @status_tuple
    async def pending_reward(self) -> int:
        if not self.pending_reward_fn:
            raise NotImplementedError(
                f"{self.__class__.__name__} does not define a pending-reward view"
            )
        return int(
            await self._call(self.pending_reward_fn, self.pool_id, self.wallet_address)
        )

    @require_wallet
    @status_tuple
    async def stake(self, amount: int) -> str:
        amount = int(amount)
        if amount <= 0:
            raise ValueError("amount must be positive")
        await ensure_allowance(
            token_address=self.lp_token,
            owner=self.wallet_address,
            spender=self.masterchef,
            amount=amount,
            chain_id=self.chain_id,
            signing_callback=self.sign_callback,
        )
        tx_hash = await self._send("deposit", amount)
        self.logger.info(f"Staked {amount} in {self.protocol_name} pool {self.pool_id}")
        return tx_hash

    @require_wallet
    @status_tuple
    async def unstake(self, amount: int) -> str:
        amount = int(amount)
        if amount <= 0:
            raise ValueError("amount must be positive")
        tx_hash = await self._send("withdraw", amount)
        self.logger.info(f"Unstaked {amount} from {self.protocol_name} pool {self.pool_id}")
        return tx_hash


class SushiMasterChefAdapter(MasterChefAdapter):
    protocol_name = "Sushi"
    pending_reward_fn = "pendingSushi"


class SpookyMasterChefAdapter(MasterChefAdapter):
    protocol_name = "Spooky"
    pending_reward_fn = "pendingBOO"


class SpiritMasterChefAdapter(MasterChefAdapter):
    protocol_name = "Spirit"
    pending_reward_fn = "pendingSpirit"


MASTERCHEF_VARIANTS: dict[str, type[MasterChefAdapter]] = {
    "sushi": SushiMasterChefAdapter,
    "spooky": SpookyMasterChefAdapter,
    "spirit": SpiritMasterChefAdapter,
}
