def _pending_fn(name: str) -> dict:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "_pid", "type": "uint256"},
            {"name": "_user", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    }


MASTERCHEF_ABI = [
    {
        "name": "deposit",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_pid", "type": "uint256"},
            {"name": "_amount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "name": "withdraw",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_pid", "type": "uint256"},
            {"name": "_amount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "name": "userInfo",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "", "type": "uint256"},
            {"name": "", "type": "address"},
        ],
        "outputs": [
            {"name": "amount", "type": "uint256"},
            {"name": "rewardDebt", "type": "uint256"},
        ],
    },
    {
        "name": "poolInfo",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "uint256"}],
        "outputs": [
            {"name": "lpToken", "type": "address"},
            {"name": "allocPoint", "type": "uint256"},
            {"name": "lastRewardBlock", "type": "uint256"},
            {"name": "accRewardPerShare", "type": "uint256"},
        ],
    },
    _pending_fn("pendingSushi"),
    _pending_fn("pendingBOO"),
    _pending_fn("pendingSpirit"),
]
