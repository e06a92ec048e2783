from unittest.mock import AsyncMock

import pytest
from eth_utils import to_checksum_address

import joint_paths.adapters.token_adapter.adapter as adapter_module
from joint_paths.adapters.token_adapter.adapter import TokenAdapter

WALLET = to_checksum_address("0x" + "11" * 20)
TOKEN = to_checksum_address("0x" + "aa" * 20)
RECIPIENT = to_checksum_address("0x" + "a1" * 20)


class TestTokenAdapter:
    @pytest.fixture
    def adapter(self):
        return TokenAdapter(chain_id=1, wallet_address=WALLET, sign_callback=AsyncMock())

    def test_adapter_type(self, adapter):
        assert adapter.adapter_type == "TOKEN"
        assert adapter.wallet_address == WALLET

    @pytest.mark.asyncio
    async def test_balance_of(self, adapter, monkeypatch):
        get_balance = AsyncMock(return_value=1_234)
        monkeypatch.setattr(adapter_module, "get_token_balance", get_balance)

        assert await adapter.balance_of(TOKEN) == (True, 1_234)
        get_balance.assert_awaited_once_with(TOKEN, 1, WALLET)

    @pytest.mark.asyncio
    async def test_decimals_and_symbol_are_cached(self, adapter, monkeypatch):
        get_decimals = AsyncMock(return_value=6)
        get_symbol = AsyncMock(return_value="USDC")
        monkeypatch.setattr(adapter_module, "get_token_decimals", get_decimals)
        monkeypatch.setattr(adapter_module, "get_token_symbol", get_symbol)

        assert await adapter.decimals(TOKEN) == (True, 6)
        assert await adapter.decimals(TOKEN.lower()) == (True, 6)
        assert await adapter.symbol(TOKEN) == (True, "USDC")
        assert await adapter.symbol(TOKEN) == (True, "USDC")

        assert get_decimals.await_count == 1
        assert get_symbol.await_count == 1

    @pytest.mark.asyncio
    async def test_transfer(self, adapter, monkeypatch):
        build = AsyncMock(return_value={"chainId": 1})
        send = AsyncMock(return_value="0xhash")
        monkeypatch.setattr(adapter_module, "build_erc20_transaction", build)
        monkeypatch.setattr(adapter_module, "send_transaction", send)

        assert await adapter.transfer(TOKEN, RECIPIENT, 500) == (True, "0xhash")

        kwargs = build.await_args.kwargs
        assert kwargs["fn_name"] == "transfer"
        assert kwargs["counterparty"] == RECIPIENT
        assert kwargs["amount"] == 500
        assert kwargs["from_address"] == WALLET
        send.assert_awaited_once_with({"chainId": 1}, adapter.sign_callback)

    @pytest.mark.asyncio
    async def test_transfer_rejects_zero(self, adapter):
        ok, err = await adapter.transfer(TOKEN, RECIPIENT, 0)
        assert ok is False
        assert "amount must be positive" in err

    @pytest.mark.asyncio
    async def test_requires_wallet(self):
        adapter = TokenAdapter(chain_id=1)
        assert await adapter.balance_of(TOKEN) == (False, "wallet address not configured")
