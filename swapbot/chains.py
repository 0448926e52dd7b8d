# swapbot/chains.py
"""
Chain & Token Registry
Per-chain RPC, lending pool, RFQ slug and private relay settings
"""

from web3 import Web3
from dataclasses import dataclass
from typing import Dict, List, Optional

# =============================================================================
# CHAIN METADATA
# =============================================================================

@dataclass(frozen=True)
class ChainConfig:
    name: str
    chain_id: int
    rpc_url: str
    native_symbol: str
    aave_pool: Optional[str] = None     # Aave V3 Pool
    bebop_slug: Optional[str] = None    # RFQ API path segment
    relay_url: Optional[str] = None     # private bundle relay
    poa: bool = False                   # needs extraData middleware
    explorer_url: str = ""


FLASHBOTS_RELAY = "https://relay.flashbots.net"

AAVE_V3_POOL_MAINNET = Web3.to_checksum_address("0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2")
AAVE_V3_POOL_L2 = Web3.to_checksum_address("0x794a61358D6845594F94dc1DB02A252b5b4814aD")
AAVE_V3_POOL_BASE = Web3.to_checksum_address("0xA238Dd80C259a72e81d7e4664a9801593F98d1c5")

CHAINS: Dict[str, ChainConfig] = {
    "mainnet": ChainConfig(
        name="mainnet",
        chain_id=1,
        rpc_url="https://eth.llamarpc.com",
        native_symbol="ETH",
        aave_pool=AAVE_V3_POOL_MAINNET,
        bebop_slug="ethereum",
        relay_url=FLASHBOTS_RELAY,
        explorer_url="https://etherscan.io",
    ),
    "polygon": ChainConfig(
        name="polygon",
        chain_id=137,
        rpc_url="https://polygon-rpc.com",
        native_symbol="POL",
        aave_pool=AAVE_V3_POOL_L2,
        bebop_slug="polygon",
        poa=True,
        explorer_url="https://polygonscan.com",
    ),
    "arbitrum": ChainConfig(
        name="arbitrum",
        chain_id=42161,
        rpc_url="https://arb1.arbitrum.io/rpc",
        native_symbol="ETH",
        aave_pool=AAVE_V3_POOL_L2,
        bebop_slug="arbitrum",
        explorer_url="https://arbiscan.io",
    ),
    "optimism": ChainConfig(
        name="optimism",
        chain_id=10,
        rpc_url="https://mainnet.optimism.io",
        native_symbol="ETH",
        aave_pool=AAVE_V3_POOL_L2,
        bebop_slug="optimism",
        explorer_url="https://optimistic.etherscan.io",
    ),
    "base": ChainConfig(
        name="base",
        chain_id=8453,
        rpc_url="https://mainnet.base.org",
        native_symbol="ETH",
        aave_pool=AAVE_V3_POOL_BASE,
        bebop_slug="base",
        explorer_url="https://basescan.org",
    ),
    "sepolia": ChainConfig(
        name="sepolia",
        chain_id=11155111,
        rpc_url="https://rpc.sepolia.org",
        native_symbol="ETH",
    ),
}

# =============================================================================
# WELL-KNOWN TOKENS (log labels only, decimals are always read on-chain)
# =============================================================================

NATIVE_TOKEN_ADDRESSES = {
    "0x0000000000000000000000000000000000000000",
    "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
}

TOKEN_SYMBOLS: Dict[str, str] = {
    Web3.to_checksum_address("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"): "WETH",
    Web3.to_checksum_address("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"): "USDC",
    Web3.to_checksum_address("0xdAC17F958D2ee523a2206206994597C13D831ec7"): "USDT",
    Web3.to_checksum_address("0x6B175474E89094C44Da98b954EedeAC495271d0F"): "DAI",
    Web3.to_checksum_address("0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"): "WBTC",
    Web3.to_checksum_address("0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270"): "WMATIC",
    Web3.to_checksum_address("0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359"): "USDC",
    Web3.to_checksum_address("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"): "USDC",
    Web3.to_checksum_address("0x4200000000000000000000000000000000000006"): "WETH",
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_chain(name: str) -> Optional[ChainConfig]:
    """Get chain config by name (case-insensitive)"""
    return CHAINS.get(name.lower()) if name else None


def get_chain_by_id(chain_id: int) -> Optional[ChainConfig]:
    for chain in CHAINS.values():
        if chain.chain_id == chain_id:
            return chain
    return None


def get_all_chain_names() -> List[str]:
    return list(CHAINS.keys())


def is_native_token(address: str) -> bool:
    return address.lower() in NATIVE_TOKEN_ADDRESSES


def get_symbol(address: str) -> str:
    """Get token symbol, falling back to a shortened address"""
    try:
        return TOKEN_SYMBOLS.get(Web3.to_checksum_address(address), address[:10])
    except ValueError:
        return address
