LP_HEDGER_ABI = [
    {
        "name": "hedgeLPToken",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "lpToken", "type": "address"},
            {"name": "lpAmount", "type": "uint256"},
            {"name": "protectionRange", "type": "uint256"},
            {"name": "period", "type": "uint256"},
        ],
        "outputs": [
            {"name": "callId", "type": "uint256"},
            {"name": "putId", "type": "uint256"},
        ],
    },
    {
        "name": "closeHedge",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "callId", "type": "uint256"},
            {"name": "putId", "type": "uint256"},
        ],
        "outputs": [
            {"name": "payoutA", "type": "uint256"},
            {"name": "payoutB", "type": "uint256"},
        ],
    },
    {
        "name": "getOptionsProfit",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "callId", "type": "uint256"},
            {"name": "putId", "type": "uint256"},
        ],
        "outputs": [
            {"name": "profitA", "type": "uint256"},
            {"name": "profitB", "type": "uint256"},
        ],
    },
    {
        "name": "isOptionActive",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "optionId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
]
