from __future__ import annotations

import copy

import pytest

import joint_paths.core.config as config
from joint_paths import run_strategy
from joint_paths.strategies.joint_lp_strategy import strategy as joint_lp_module
from joint_paths.strategies.joint_lp_strategy.strategy import JointLpStrategy

ADDRESS = "0x" + "12" * 20
OTHER = "0x" + "34" * 20
PRIVATE_KEY = "0x" + "11" * 32


@pytest.fixture
def wallets_config():
    original = copy.deepcopy(config.CONFIG)
    config.set_config(
        {
            "strategy": {"rpc_urls": {"1": "https://example.invalid"}},
            "joint": {"joint_id": "j", "hedge_budget_bps": 25},
            "wallets": [
                {"label": "joint", "address": ADDRESS, "private_key_hex": PRIVATE_KEY},
                {"label": "ops", "address": OTHER},
            ],
        }
    )
    yield
    config.set_config(original)


def test_strategy_config_uses_default_wallet_label(wallets_config):
    cfg = run_strategy.get_strategy_config("joint_lp_strategy")

    assert cfg["strategy_wallet"] == {"address": ADDRESS, "private_key_hex": PRIVATE_KEY}
    assert cfg["joint"] == {"joint_id": "j", "hedge_budget_bps": 25}
    assert cfg["rpc_urls"] == {"1": "https://example.invalid"}


def test_strategy_config_wallet_label_override(wallets_config):
    cfg = run_strategy.get_strategy_config("joint_lp_strategy", wallet_label="ops")
    assert cfg["strategy_wallet"] == {"address": OTHER}
    assert run_strategy.create_signing_callback(cfg) is None


def test_signing_callback_from_private_key(wallets_config):
    cfg = run_strategy.get_strategy_config("joint_lp_strategy")
    assert callable(run_strategy.create_signing_callback(cfg))


def test_find_strategy_class():
    assert run_strategy.find_strategy_class(joint_lp_module) is JointLpStrategy

    with pytest.raises(ValueError, match="No Strategy subclass"):
        run_strategy.find_strategy_class(config)
