import json
import os
from pathlib import Path
from typing import Any

from joint_paths.core.constants.base import (
    DEFAULT_HEDGE_BUDGET_BPS,
    DEFAULT_HEDGE_MONEYNESS_BPS,
    DEFAULT_HEDGE_PERIOD_S,
)

_CONFIG_ENV_KEYS = ("JOINT_CONFIG_PATH", "JOINT_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"
_DEFAULT_LEDGER_DB_PATH = ".joint/ledger.sqlite3"


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _project_root() -> Path | None:
    return _find_project_root(Path.cwd()) or _find_project_root(Path(__file__).parent)


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = _project_root()
        return (root / p) if root else p

    root = _project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        return json.loads(cfg_path.read_text())
    except json.JSONDecodeError:
        return {}


CONFIG: dict[str, Any] = load_config_json()


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    Modules that imported CONFIG at import time see the new values.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    """Load config from disk into the global CONFIG dict."""
    set_config(load_config_json(path, require_exists=require_exists))


def set_rpc_urls(rpc_urls: dict[str, Any]) -> None:
    CONFIG.setdefault("strategy", {})["rpc_urls"] = rpc_urls


def get_rpc_urls() -> dict[str, Any]:
    return CONFIG.get("strategy", {}).get("rpc_urls", {})


def get_ledger_db_path() -> Path:
    system = CONFIG.get("system", {})
    raw = system.get("ledger_db_path")
    if raw:
        return Path(str(raw).strip()).expanduser()
    root = _project_root()
    return (root / _DEFAULT_LEDGER_DB_PATH) if root else Path(_DEFAULT_LEDGER_DB_PATH)


def get_joint_config() -> dict[str, Any]:
    return dict(CONFIG.get("joint", {}))


def get_joint_defaults() -> dict[str, int]:
    joint = CONFIG.get("joint", {})
    return {
        "hedge_budget_bps": int(joint.get("hedge_budget_bps", DEFAULT_HEDGE_BUDGET_BPS)),
        "hedge_moneyness_bps": int(
            joint.get("hedge_moneyness_bps", DEFAULT_HEDGE_MONEYNESS_BPS)
        ),
        "hedge_period_s": int(joint.get("hedge_period_s", DEFAULT_HEDGE_PERIOD_S)),
    }
