from pathlib import Path
from typing import Any

import pytest

from joint_paths.strategies.joint_lp_strategy.strategy import (
    JointLpStrategy,
    joint_name,
    onchain_adapter_builder,
)
from joint_paths.testing.simulated import (
    E18,
    PAIR,
    PROVIDER_A,
    PROVIDER_B,
    REWARD,
    ROUTER,
    TOKEN_A,
    TOKEN_B,
    WALLET,
    SimulatedJoint,
)
from joint_paths.tests.test_utils import (
    assert_status_dict,
    assert_status_tuple,
    example_amount,
    load_strategy_examples,
)

JOINT_ID = "strategy-joint"


def make_config(**joint_overrides: Any) -> dict[str, Any]:
    joint = {
        "joint_id": JOINT_ID,
        "chain_id": 1,
        "protocol": "sushi",
        "provider_a": PROVIDER_A.address,
        "provider_b": PROVIDER_B.address,
        "router": ROUTER,
        "pair": PAIR,
        "staking_pool_id": 0,
        "reward_token": REWARD,
        "base_asset": TOKEN_A,
        "hedge_budget_bps": 50,
        "hedge_moneyness_bps": 1000,
        "hedge_period_s": 86400,
    }
    joint.update(joint_overrides)
    return {"strategy_wallet": {"address": WALLET}, "joint": joint}


def make_strategy(sim: SimulatedJoint, config: dict[str, Any]) -> JointLpStrategy:
    return JointLpStrategy(
        config,
        store=sim.store,
        adapter_builder=sim.adapters_for_ledger,
        provider_adapter=sim.provider_adapter,
    )


@pytest.fixture
def strategy(sim: SimulatedJoint) -> JointLpStrategy:
    return make_strategy(sim, make_config())


@pytest.mark.asyncio
@pytest.mark.smoke
async def test_smoke(strategy, sim):
    examples = load_strategy_examples(Path(__file__))
    smoke = examples["smoke"]

    st = await strategy.status()
    assert_status_dict(st)
    assert st["state"] == "IDLE"

    sim.fund(example_amount(smoke, "fund", "amount_a"), example_amount(smoke, "fund", "amount_b"))

    ok, msg = assert_status_tuple(await strategy.deposit(**smoke.get("deposit", {})))
    assert ok, msg

    ok, msg = assert_status_tuple(await strategy.update())
    assert ok, msg

    ok, msg = assert_status_tuple(await strategy.withdraw())
    assert ok, msg

    ok, msg = assert_status_tuple(await strategy.exit())
    assert ok, msg


@pytest.mark.asyncio
async def test_setup_initializes_then_reopens(strategy, sim):
    await strategy.setup()
    assert strategy.controller.joint_id == JOINT_ID
    ledger = strategy.controller.ledger()
    assert ledger.leg_a.provider == PROVIDER_A
    assert ledger.leg_b.token == TOKEN_B
    assert ledger.wallet == WALLET

    again = make_strategy(sim, make_config())
    await again.setup()
    assert again.controller.ledger().version == ledger.version
    assert sim.store.list_ids() == [JOINT_ID]


@pytest.mark.asyncio
async def test_parameters_come_from_joint_config(sim):
    strategy = make_strategy(sim, make_config(hedge_budget_bps=75, hedge_period_s="3600"))
    await strategy.setup()
    params = strategy.controller.ledger().params
    assert params.hedge_budget_bps == 75
    assert params.hedge_period_s == 3600


@pytest.mark.asyncio
async def test_new_joint_requires_strategy_wallet(sim):
    config = make_config()
    del config["strategy_wallet"]
    strategy = make_strategy(sim, config)
    with pytest.raises(ValueError, match="strategy_wallet"):
        await strategy.setup()


@pytest.mark.asyncio
async def test_new_joint_requires_deployment_keys(sim):
    config = make_config()
    del config["joint"]["pair"]
    strategy = make_strategy(sim, config)
    with pytest.raises(ValueError, match="pair"):
        await strategy.setup()


@pytest.mark.asyncio
async def test_deposit_without_funds_reports_failure(strategy):
    examples = load_strategy_examples(Path(__file__))
    example = examples["no_funds"]

    ok, msg = assert_status_tuple(await strategy.deposit(**example["deposit"]))
    assert ok is example["expect"]["success"]
    assert "both legs must be funded" in msg


@pytest.mark.asyncio
async def test_unhedged_deposit_contributes_everything(sim):
    examples = load_strategy_examples(Path(__file__))
    example = examples["unhedged"]
    strategy = make_strategy(sim, make_config(**example["joint"]))
    sim.fund(
        example_amount(example, "fund", "amount_a"),
        example_amount(example, "fund", "amount_b"),
    )

    ok, msg = assert_status_tuple(await strategy.deposit())
    assert ok, msg

    st = assert_status_dict(await strategy.status())
    assert st["contributed_a"] == example_amount(example, "expect", "contributed_a")
    assert st["contributed_b"] == example_amount(example, "expect", "contributed_b")
    assert st["strategy_status"]["hedge"] == {"call_id": 0, "put_id": 0}


@pytest.mark.asyncio
async def test_status_reports_position(strategy, sim):
    sim.fund(1000 * E18, 1000 * E18)
    ok, _ = await strategy.deposit()
    assert ok

    st = assert_status_dict(await strategy.status())
    assert st["state"] == "INVESTED"
    assert st["contributed_a"] == 995 * E18
    assert st["contributed_b"] == 995 * E18
    assert abs(st["projected_a"] - 1000 * E18) <= 10
    assert abs(st["projected_b"] - 1000 * E18) <= 10

    details = st["strategy_status"]
    assert details["name"] == "SushiJoint(WETH-USDX)"
    assert details["protocol"] == "Sushi"
    assert details["joint_id"] == JOINT_ID
    assert details["cycle"] == 1
    assert details["hedge"] == {"call_id": 1, "put_id": 2}
    assert details["params"]["hedge_budget_bps"] == 50


@pytest.mark.asyncio
async def test_second_deposit_is_rejected(strategy, sim):
    sim.fund(1000 * E18, 1000 * E18)
    assert (await strategy.deposit())[0]

    ok, msg = await strategy.deposit()
    assert ok is False
    assert "already invested" in msg


@pytest.mark.asyncio
async def test_update_harvests_and_reinvests(strategy, sim):
    sim.fund(1000 * E18, 1000 * E18)
    assert (await strategy.deposit())[0]

    ok, msg = await strategy.update()
    assert ok, msg
    assert "cycle 2" in msg

    ledger = strategy.controller.ledger()
    assert ledger.cycle == 2
    assert ledger.active_hedge.call_id == 3


@pytest.mark.asyncio
async def test_update_when_idle_is_noop(strategy):
    ok, msg = await strategy.update()
    assert ok
    assert msg == "No active position to update"


@pytest.mark.asyncio
async def test_withdraw_returns_funds_to_providers(strategy, sim):
    sim.fund(1000 * E18, 1000 * E18)
    assert (await strategy.deposit())[0]

    ok, msg = await strategy.withdraw()
    assert ok, msg
    assert "returned" in msg

    assert strategy.controller.ledger().contributed_a == 0
    assert abs(sim.balance(TOKEN_A, PROVIDER_A.address) - 1000 * E18) <= 10
    assert abs(sim.balance(TOKEN_B, PROVIDER_B.address) - 1000 * E18) <= 10
    assert sim.balance(TOKEN_A) == 0
    assert sim.balance(TOKEN_B) == 0

    st = await strategy.status()
    assert st["state"] == "IDLE"
    assert st["projected_a"] == 0


@pytest.mark.asyncio
async def test_withdraw_when_idle(strategy):
    ok, msg = await strategy.withdraw()
    assert ok
    assert msg == "No active position to withdraw"


@pytest.mark.asyncio
async def test_exit_returns_loose_balances(strategy, sim):
    sim.fund(10 * E18, 20 * E18)

    ok, msg = await strategy.exit()
    assert ok, msg
    assert sim.balance(TOKEN_A, PROVIDER_A.address) == 10 * E18
    assert sim.balance(TOKEN_B, PROVIDER_B.address) == 20 * E18

    ok, msg = await strategy.exit()
    assert ok
    assert msg == "No loose funds to return"


@pytest.mark.asyncio
async def test_unauthorized_caller_is_reported(sim):
    strategy = make_strategy(sim, make_config(caller=PROVIDER_A.governance))
    sim.fund(1000 * E18, 1000 * E18)

    ok, msg = await strategy.deposit()
    assert ok is False
    assert "providers" in msg


def test_joint_name():
    assert joint_name("Spooky", "WFTM", "USDC") == "SpookyJoint(WFTM-USDC)"


def test_onchain_builder_validates_config():
    with pytest.raises(ValueError, match="masterchef"):
        onchain_adapter_builder({"hedger": "0x1", "options_manager": "0x2"}, sign_callback=None)

    with pytest.raises(ValueError, match="Unknown staking protocol"):
        onchain_adapter_builder(
            {
                "masterchef": "0x1",
                "hedger": "0x2",
                "options_manager": "0x3",
                "protocol": "pancake",
            },
            sign_callback=None,
        )


def test_onchain_builder_wires_ledger_into_adapters():
    from joint_paths.adapters.masterchef_adapter.adapter import SpookyMasterChefAdapter
    from joint_paths.tests.test_utils import make_ledger

    masterchef = "0x" + "9a" * 20
    hedger = "0x" + "9b" * 20
    manager = "0x" + "9c" * 20
    build = onchain_adapter_builder(
        {
            "masterchef": masterchef,
            "hedger": hedger,
            "options_manager": manager,
            "protocol": "Spooky",
            "slippage_bps": 30,
        },
        sign_callback=None,
    )
    adapters = build(make_ledger())

    assert isinstance(adapters.staking, SpookyMasterChefAdapter)
    assert adapters.staking.pool_id == 3
    assert adapters.staking.masterchef.lower() == masterchef
    assert adapters.amm.slippage_bps == 30
    assert adapters.amm.pair.lower() == PAIR
    assert adapters.hedge.lp_token.lower() == PAIR
    assert adapters.token.wallet_address.lower() == WALLET
