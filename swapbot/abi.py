# swapbot/abi.py
"""
Contract ABIs and calldata encoding through web3 contract objects
"""

from typing import Any, Dict, List, Sequence

from web3 import Web3

# encoding only, never connects
_W3 = Web3()

# =============================================================================
# ERC-20
# =============================================================================

ERC20_ABI = [
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
]

# =============================================================================
# AAVE V3 POOL ABI (Flash Loan)
# =============================================================================

AAVE_POOL_ABI = [
    {
        "name": "flashLoan",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "receiverAddress", "type": "address"},
            {"name": "assets", "type": "address[]"},
            {"name": "amounts", "type": "uint256[]"},
            {"name": "interestRateModes", "type": "uint256[]"},
            {"name": "onBehalfOf", "type": "address"},
            {"name": "params", "type": "bytes"},
            {"name": "referralCode", "type": "uint16"},
        ],
        "outputs": [],
    },
]

# =============================================================================
# ARBITRAGE RECEIVER ABI (payload decoded inside executeOperation)
# =============================================================================

ARBITRAGE_EXECUTOR_ABI = [
    {
        "name": "executeArbitrage",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "targets", "type": "address[]"},
            {"name": "payloads", "type": "bytes[]"},
            {"name": "values", "type": "uint256[]"},
        ],
        "outputs": [],
    },
]


def encode_function(abi: List[Dict[str, Any]], fn_name: str, args: Sequence) -> str:
    """Selector + ABI-encoded args, as 0x-hex"""
    return _W3.eth.contract(abi=abi).encode_abi(fn_name, args=list(args))


def encode_approve(spender: str, amount: int) -> str:
    return encode_function(ERC20_ABI, "approve", [Web3.to_checksum_address(spender), amount])
