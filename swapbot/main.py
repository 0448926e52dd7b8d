# swapbot/main.py
"""
Swap Bot CLI
Runs one swap from the command line - Run with: python -m swapbot.main

    swapbot --chain mainnet --from 0xA0b8... --to 0xC02a... --amount 1500 --slippage 50
"""

import sys
import logging
from datetime import datetime

from swapbot.action import handle, validate
from swapbot.chains import get_all_chain_names
from swapbot.config import LOG_DIR, LOG_LEVEL, Settings
from swapbot.errors import SwapError
from swapbot.executor import SwapExecutor
from swapbot.types import SwapRequest

logger = logging.getLogger(__name__)


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(level: str = LOG_LEVEL):
    LOG_DIR.mkdir(exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s | %(levelname)-8s | %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(LOG_DIR / f"swap_{datetime.now().strftime('%Y%m%d')}.log"),
        ]
    )


# =============================================================================
# ENTRY POINT
# =============================================================================

def build_parser():
    import argparse

    parser = argparse.ArgumentParser(description="Same-chain token swap across LI.FI and Bebop")
    parser.add_argument("--chain", required=True, choices=get_all_chain_names(), help="Chain name")
    parser.add_argument("--from", dest="from_token", required=True, help="Input token address")
    parser.add_argument("--to", dest="to_token", required=True, help="Output token address")
    parser.add_argument("--amount", required=True, help="Amount of input token, e.g. 1.5")
    parser.add_argument(
        "--slippage",
        type=int,
        default=None,
        help="Slippage in basis points (default: SWAP_DEFAULT_SLIPPAGE_BPS or 50)"
    )
    parser.add_argument(
        "--deadline-block",
        type=int,
        default=None,
        help="Fail instead of executing after this block number"
    )
    return parser


def print_result(response: dict):
    print(response["text"])


def main(argv=None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    setup_logging()

    settings = Settings.from_env()
    if not validate(settings):
        logger.error("❌ EVM_PRIVATE_KEY missing or not 0x-prefixed")
        return 1

    request = SwapRequest(
        chain=args.chain,
        from_token=args.from_token,
        to_token=args.to_token,
        amount=args.amount,
        slippage_bps=args.slippage if args.slippage is not None else settings.default_slippage_bps,
        deadline_block=args.deadline_block,
    )

    try:
        executor = SwapExecutor.from_settings(settings)
    except SwapError as e:
        logger.error(f"❌ {e}")
        return 1

    ok = handle(executor, request, callback=print_result)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
