from typing import Any

from eth_utils import to_checksum_address

from joint_paths.core.adapters.BaseAdapter import BaseAdapter, require_wallet
from joint_paths.core.adapters.decorators import status_tuple
from joint_paths.core.constants.base import ADAPTER_TOKEN
from joint_paths.core.utils.tokens import (
    build_erc20_transaction,
    get_token_balance,
    get_token_decimals,
    get_token_symbol,
)
from joint_paths.core.utils.transaction import SignCallback, send_transaction


class TokenAdapter(BaseAdapter):
    adapter_type: str = ADAPTER_TOKEN

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        chain_id: int,
        wallet_address: str | None = None,
        sign_callback: SignCallback | None = None,
    ):
        super().__init__(
            "token_adapter",
            config,
            chain_id=chain_id,
            wallet_address=wallet_address,
            sign_callback=sign_callback,
        )
        self._decimals_cache: dict[str, int] = {}
        self._symbol_cache: dict[str, str] = {}

    @require_wallet
    @status_tuple
    async def balance_of(self, token: str) -> int:
        return await get_token_balance(token, self.chain_id, self.wallet_address)

    @status_tuple
    async def decimals(self, token: str) -> int:
        key = to_checksum_address(token)
        if key not in self._decimals_cache:
            self._decimals_cache[key] = await get_token_decimals(key, self.chain_id)
        return self._decimals_cache[key]

    @status_tuple
    async def symbol(self, token: str) -> str:
        key = to_checksum_address(token)
        if key not in self._symbol_cache:
            self._symbol_cache[key] = await get_token_symbol(key, self.chain_id)
        return self._symbol_cache[key]

    @require_wallet
    @status_tuple
    async def transfer(self, token: str, to: str, amount: int) -> str:
        amount = int(amount)
        if amount <= 0:
            raise ValueError("amount must be positive")
        tx = await build_erc20_transaction(
            fn_name="transfer",
            token_address=token,
            from_address=self.wallet_address,
            counterparty=to,
            amount=amount,
            chain_id=self.chain_id,
        )
        tx_hash = await send_transaction(tx, self.sign_callback)
        self.logger.info(f"Transferred {amount} of {token} to {to} ({tx_hash})")
        return tx_hash
