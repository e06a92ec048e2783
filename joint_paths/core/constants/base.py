GAS_BUFFER_MULTIPLIER = 1.1
SUGGESTED_PRIORITY_FEE_MULTIPLIER = 1.5
SUGGESTED_GAS_PRICE_MULTIPLIER = 1.5
MAX_BASE_FEE_GROWTH_MULTIPLIER = 2

DEFAULT_TRANSACTION_TIMEOUT = 180  # seconds
DEFAULT_DEADLINE_S = 300

MAX_UINT256 = 2**256 - 1

# Fixed-point scale for proportional-return comparisons and basis points.
RATIO_PRECISION = 10_000
MAX_BPS = 10_000

# Uniswap-V2 style pools charge 0.3% on input.
DEFAULT_AMM_FEE_BPS = 30

DEFAULT_HEDGE_BUDGET_BPS = 50  # 0.5% of each leg funds the hedge
DEFAULT_HEDGE_MONEYNESS_BPS = 1_000  # 10% protection range
DEFAULT_HEDGE_PERIOD_S = 24 * 60 * 60
MAX_HEDGE_PERIOD_S = 90 * 24 * 60 * 60

ADAPTER_UNISWAP_V2 = "UNISWAP_V2"
ADAPTER_MASTERCHEF = "MASTERCHEF"
ADAPTER_HEDGE = "HEDGE"
ADAPTER_TOKEN = "TOKEN"
ADAPTER_PROVIDER = "PROVIDER"
