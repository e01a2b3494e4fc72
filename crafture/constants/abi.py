USDFC_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "name",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "nonces",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [],
        "name": "version",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function"
    }
]

FILECOIN_PAY_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "token", "type": "address"},
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"},
            {"internalType": "uint256", "name": "deadline", "type": "uint256"},
            {"internalType": "uint8", "name": "v", "type": "uint8"},
            {"internalType": "bytes32", "name": "r", "type": "bytes32"},
            {"internalType": "bytes32", "name": "s", "type": "bytes32"}
        ],
        "name": "depositWithPermit",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "token", "type": "address"},
            {"internalType": "address", "name": "operator", "type": "address"},
            {"internalType": "bool", "name": "approved", "type": "bool"},
            {"internalType": "uint256", "name": "rateAllowance", "type": "uint256"},
            {"internalType": "uint256", "name": "lockupAllowance", "type": "uint256"},
            {"internalType": "uint256", "name": "maxLockupPeriod", "type": "uint256"}
        ],
        "name": "setOperatorApproval",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "token", "type": "address"},
            {"internalType": "address", "name": "owner", "type": "address"}
        ],
        "name": "accounts",
        "outputs": [
            {"internalType": "uint256", "name": "funds", "type": "uint256"},
            {"internalType": "uint256", "name": "lockupCurrent", "type": "uint256"},
            {"internalType": "uint256", "name": "lockupRate", "type": "uint256"},
            {"internalType": "uint256", "name": "lockupLastSettledAt", "type": "uint256"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "token", "type": "address"},
            {"internalType": "address", "name": "client", "type": "address"},
            {"internalType": "address", "name": "operator", "type": "address"}
        ],
        "name": "operatorApprovals",
        "outputs": [
            {"internalType": "bool", "name": "isApproved", "type": "bool"},
            {"internalType": "uint256", "name": "rateAllowance", "type": "uint256"},
            {"internalType": "uint256", "name": "lockupAllowance", "type": "uint256"},
            {"internalType": "uint256", "name": "rateUsage", "type": "uint256"},
            {"internalType": "uint256", "name": "lockupUsage", "type": "uint256"},
            {"internalType": "uint256", "name": "maxLockupPeriod", "type": "uint256"}
        ],
        "stateMutability": "view",
        "type": "function"
    }
]
