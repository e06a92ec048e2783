"""Verify all strategies conform to expected interface."""

import inspect
from importlib import import_module
from pathlib import Path

import pytest

from joint_paths.core.strategies import Strategy

VERBS = ("deposit", "update", "withdraw", "exit")


def get_all_strategy_classes():
    """Discover all Strategy subclasses in joint_paths/strategies/."""
    strategies_dir = Path(__file__).parent.parent / "strategies"
    strategy_classes = []

    for strategy_dir in strategies_dir.iterdir():
        if not strategy_dir.is_dir() or strategy_dir.name.startswith("_"):
            continue
        strategy_file = strategy_dir / "strategy.py"
        if not strategy_file.exists():
            continue

        module = import_module(f"joint_paths.strategies.{strategy_dir.name}.strategy")
        for _name, obj in inspect.getmembers(module, inspect.isclass):
            if issubclass(obj, Strategy) and obj is not Strategy:
                strategy_classes.append((strategy_dir.name, obj))

    return strategy_classes


def test_strategies_are_discovered():
    names = [name for name, _cls in get_all_strategy_classes()]
    assert "joint_lp_strategy" in names


@pytest.mark.parametrize("strategy_name,strategy_class", get_all_strategy_classes())
@pytest.mark.parametrize("verb", VERBS)
def test_verbs_accept_run_strategy_kwargs(strategy_name, strategy_class, verb):
    """run_strategy.py forwards extra CLI options as kwargs to every verb."""
    params = inspect.signature(getattr(strategy_class, verb)).parameters
    assert any(p.kind == inspect.Parameter.VAR_KEYWORD for p in params.values()), (
        f"{strategy_class.__name__}.{verb}() must accept **kwargs"
    )


@pytest.mark.parametrize("strategy_name,strategy_class", get_all_strategy_classes())
def test_strategy_is_concrete_and_named(strategy_name, strategy_class):
    assert not inspect.isabstract(strategy_class)
    assert strategy_class.name
    for verb in (*VERBS, "status", "setup"):
        assert inspect.iscoroutinefunction(getattr(strategy_class, verb))
