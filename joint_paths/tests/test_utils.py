import json
from pathlib import Path
from typing import Any

from joint_paths.core.engine.ledger import Leg, PositionLedger
from joint_paths.testing.simulated import (
    PAIR,
    PROVIDER_A,
    PROVIDER_B,
    REWARD,
    ROUTER,
    TOKEN_A,
    TOKEN_B,
    WALLET,
)


def assert_status_tuple(value: Any) -> tuple[bool, str]:
    assert isinstance(value, tuple), (
        f"Expected StatusTuple (tuple[bool, str]), got {type(value).__name__}: {value!r}"
    )
    assert len(value) == 2, (
        f"Expected StatusTuple length 2, got {len(value)}: {value!r}"
    )

    ok, msg = value
    assert isinstance(ok, bool), (
        f"Expected bool success, got {type(ok).__name__}: {ok!r}"
    )
    assert isinstance(msg, str), (
        f"Expected str message, got {type(msg).__name__}: {msg!r}"
    )

    return ok, msg


def assert_status_dict(value: Any) -> dict[str, Any]:
    assert isinstance(value, dict), (
        f"Expected StatusDict (dict), got {type(value).__name__}: {value!r}"
    )

    for key in (
        "state",
        "projected_a",
        "projected_b",
        "contributed_a",
        "contributed_b",
        "strategy_status",
    ):
        assert key in value, f"Missing required status key '{key}': {value!r}"

    assert value["state"] in ("IDLE", "INVESTED"), (
        f"state must be IDLE or INVESTED, got {value['state']!r}"
    )

    for key in ("projected_a", "projected_b", "contributed_a", "contributed_b"):
        amount = value[key]
        assert isinstance(amount, int) and not isinstance(amount, bool), (
            f"{key} must be an int, got {type(amount).__name__}: {amount!r}"
        )
        assert amount >= 0, f"{key} must be non-negative, got {amount!r}"

    return value


def make_ledger(**overrides: Any) -> PositionLedger:
    fields: dict[str, Any] = {
        "joint_id": "j1",
        "chain_id": 1,
        "wallet": WALLET,
        "leg_a": Leg(token=TOKEN_A, provider=PROVIDER_A),
        "leg_b": Leg(token=TOKEN_B, provider=PROVIDER_B),
        "router": ROUTER,
        "pair": PAIR,
        "staking_pool_id": 3,
        "reward_token": REWARD,
        "base_asset": TOKEN_A,
    }
    fields.update(overrides)
    return PositionLedger(**fields)


def load_strategy_examples(strategy_test_file: Path) -> dict[str, Any]:
    examples_path = strategy_test_file.parent / "examples.json"

    if not examples_path.exists():
        raise FileNotFoundError(
            f"examples.json is required for strategy tests. Create it at: {examples_path}"
        )

    with open(examples_path) as f:
        return json.load(f)


def example_amount(example: dict[str, Any], section: str, key: str) -> int:
    """Read a base-unit amount stored as a decimal string."""
    return int(example.get(section, {}).get(key, 0))
