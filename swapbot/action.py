# swapbot/action.py
"""
Swap action handler for an upstream agent.
Takes a parsed (chain, tokens, amount, slippage) tuple, runs the swap and
reports back through an optional callback.
"""

import logging
from typing import Any, Callable, Dict, Optional

from swapbot.config import Settings
from swapbot.errors import SwapError
from swapbot.types import DEFAULT_SLIPPAGE_BPS, SwapRequest

logger = logging.getLogger(__name__)

Callback = Callable[[Dict[str, Any]], None]

SIMILES = ["TOKEN_SWAP", "EXCHANGE_TOKENS", "TRADE_TOKENS"]


def validate(settings: Settings) -> bool:
    """A swap can only run with a 0x-prefixed private key configured"""
    key = settings.private_key
    return isinstance(key, str) and key.startswith("0x")


def build_request(content: Dict[str, Any]) -> SwapRequest:
    """Map upstream intent fields onto a SwapRequest"""
    slippage = content.get("slippage")
    deadline = content.get("deadlineBlock")
    return SwapRequest(
        chain=content["chain"],
        from_token=content["inputToken"],
        to_token=content["outputToken"],
        amount=str(content["amount"]),
        slippage_bps=int(slippage) if slippage not in (None, "") else DEFAULT_SLIPPAGE_BPS,
        deadline_block=int(deadline) if deadline not in (None, "") else None,
    )


def handle(executor, request: SwapRequest, callback: Optional[Callback] = None) -> bool:
    logger.info("Swap action handler called")
    try:
        tx = executor.swap(request)
    except SwapError as e:
        logger.error(f"Error in swap handler: {e}")
        if callback:
            callback({"text": f"Error: {e}"})
        return False

    if callback:
        callback({
            "text": (
                f"Successfully swap {request.amount} {request.from_token} tokens to {request.to_token}\n"
                f"Transaction Hash: {tx.hash}"
            ),
            "content": {
                "success": True,
                "hash": tx.hash,
                "recipient": tx.to,
                "chain": request.chain,
            },
        })
    return True
