CHAIN_ID_ETHEREUM = 1
CHAIN_ID_BSC = 56
CHAIN_ID_POLYGON = 137
CHAIN_ID_FANTOM = 250
CHAIN_ID_BASE = 8453
CHAIN_ID_ARBITRUM = 42161

POA_MIDDLEWARE_CHAIN_IDS: set[int] = {
    CHAIN_ID_BSC,
    CHAIN_ID_POLYGON,
}

PRE_EIP_1559_CHAIN_IDS: set[int] = {
    CHAIN_ID_BSC,
    CHAIN_ID_FANTOM,
    CHAIN_ID_ARBITRUM,
}

# Wrapped native token per chain: the base-liquidity asset swaps route through.
WRAPPED_NATIVE: dict[int, str] = {
    CHAIN_ID_ETHEREUM: "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    CHAIN_ID_BSC: "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c",
    CHAIN_ID_POLYGON: "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270",
    CHAIN_ID_FANTOM: "0x21be370D5312f44cB42ce377BC9b8a0cEF1A4C83",
    CHAIN_ID_BASE: "0x4200000000000000000000000000000000000006",
    CHAIN_ID_ARBITRUM: "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
}
