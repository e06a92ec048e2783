from joint_paths.core.constants.chains import CHAIN_ID_ETHEREUM

# ─────────────────────────────────────────────────────────────────────────────
# DEPLOYMENT DEFAULTS
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_CHAIN_ID = CHAIN_ID_ETHEREUM
DEFAULT_PROTOCOL = "sushi"
DEFAULT_SLIPPAGE_BPS = 50

# Keys of the ``joint`` config section needed to create a new joint.
REQUIRED_INIT_KEYS = (
    "provider_a",
    "provider_b",
    "router",
    "pair",
    "staking_pool_id",
    "reward_token",
)

# Keys needed to build the on-chain adapters beyond what the ledger records.
REQUIRED_ADAPTER_KEYS = ("masterchef", "hedger", "options_manager")

PARAMETER_KEYS = ("hedge_budget_bps", "hedge_moneyness_bps", "hedge_period_s")
