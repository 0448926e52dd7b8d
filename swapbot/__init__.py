# swapbot/__init__.py
"""
Same-chain Swap Bot
Best-price token swaps across a routing aggregator and an RFQ venue

Modules:
- config: Configuration and environment
- chains: Chain and token registry
- wallet: Signer, contract reads and token decimals
- lifi / bebop: Venue API clients
- quote_engine: Parallel quote aggregation and arbitrage detection
- preparer: Quote to unsigned call
- flash_loan: Aave V3 flash loan bundler
- relay: Private bundle relay (simulate, submit, wait)
- executor: Swap orchestration
- action: Agent-facing swap action
- main: Entry point
"""

__version__ = "0.1.0"
__author__ = "TradeBot"

from swapbot.errors import (
    ExecutionFailed,
    NoRouteFound,
    SignerMisconfigured,
    SwapError,
)
from swapbot.types import SwapRequest, Transaction

__all__ = [
    "ExecutionFailed",
    "NoRouteFound",
    "SignerMisconfigured",
    "SwapError",
    "SwapRequest",
    "Transaction",
]
