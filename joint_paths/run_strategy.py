#!/usr/bin/env python3

# Allow running as a script: `python joint_paths/run_strategy.py ...`
if __name__ == "__main__" and __package__ is None:
    import sys
    from pathlib import Path

    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse
import asyncio
import importlib
import inspect
import json
import sys
from typing import Any

from loguru import logger

from joint_paths.core.config import CONFIG, get_joint_config, load_config
from joint_paths.core.strategies.Strategy import Strategy
from joint_paths.core.utils.transaction import SignCallback, private_key_signer

DEFAULT_WALLET_LABEL = "joint"


def get_strategy_config(
    strategy_name: str, *, wallet_label: str | None = None
) -> dict[str, Any]:
    config = dict(CONFIG.get("strategy", {}))
    config["joint"] = get_joint_config()
    wallets = {w["label"]: w for w in CONFIG.get("wallets", [])}

    label = str(wallet_label).strip() if wallet_label else None
    for candidate in (label, strategy_name, DEFAULT_WALLET_LABEL):
        if candidate and candidate in wallets and "strategy_wallet" not in config:
            config["strategy_wallet"] = {"address": wallets[candidate]["address"]}

    by_addr = {w["address"].lower(): w for w in CONFIG.get("wallets", [])}
    if wallet := config.get("strategy_wallet"):
        if entry := by_addr.get(wallet.get("address", "").lower()):
            if pk := entry.get("private_key") or entry.get("private_key_hex"):
                wallet["private_key_hex"] = pk
    return config


def create_signing_callback(config: dict[str, Any]) -> SignCallback | None:
    wallet = config.get("strategy_wallet") or {}
    if pk := wallet.get("private_key_hex"):
        return private_key_signer(pk)
    return None


def find_strategy_class(module) -> type[Strategy]:
    for _, obj in inspect.getmembers(module, inspect.isclass):
        if issubclass(obj, Strategy) and obj is not Strategy:
            return obj
    raise ValueError(f"No Strategy subclass found in {module.__name__}")


async def run_strategy(strategy_name: str, action: str = "status", **kw):
    config = get_strategy_config(strategy_name, wallet_label=kw.pop("wallet_label", None))
    module = importlib.import_module(f"joint_paths.strategies.{strategy_name}.strategy")
    strategy_cls = find_strategy_class(module)

    strategy = strategy_cls(
        config,
        strategy_wallet_signing_callback=create_signing_callback(config),
    )
    await strategy.setup()

    if action == "status":
        result: Any = await strategy.status()
    elif action == "deposit":
        result = await strategy.deposit()
    elif action == "withdraw":
        result = await strategy.withdraw()
    elif action == "update":
        result = await strategy.update()
    elif action == "exit":
        result = await strategy.exit()
    elif action == "run":
        while True:
            try:
                result = await strategy.update()
                logger.info(f"Update: {result}")
                await asyncio.sleep(kw.get("interval", 3600))
            except asyncio.CancelledError:
                result = (True, "stopped")
                break
    else:
        raise ValueError(f"Unknown action: {action}")

    print(
        json.dumps(result, indent=2)
        if isinstance(result, dict)
        else f"{action}: {result}"
    )
    return result


def main():
    p = argparse.ArgumentParser()
    p.add_argument(
        "strategy_pos",
        nargs="?",
        help="Strategy name (positional; or use --strategy)",
    )
    p.add_argument(
        "--strategy",
        dest="strategy",
        default=None,
        help="Strategy name (preferred over positional)",
    )
    p.add_argument(
        "--action",
        default="status",
        choices=["run", "deposit", "withdraw", "status", "update", "exit"],
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to config JSON (default: config.json at the project root)",
    )
    p.add_argument(
        "--interval",
        type=int,
        default=3600,
        help="Seconds between harvests for the run action",
    )
    p.add_argument(
        "--wallet-label",
        dest="wallet_label",
        default=None,
        help="Wallet label to use as the joint's wallet (default: strategy name, then 'joint')",
    )
    p.add_argument("--debug", action="store_true")
    args = p.parse_args()

    strategy_name = args.strategy or args.strategy_pos
    if not strategy_name:
        raise SystemExit("strategy is required (positional or via --strategy)")

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.debug else "INFO")

    try:
        load_config(args.config, require_exists=bool(args.config))
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc

    asyncio.run(
        run_strategy(
            str(strategy_name),
            args.action,
            interval=args.interval,
            wallet_label=args.wallet_label,
        )
    )


if __name__ == "__main__":
    main()
