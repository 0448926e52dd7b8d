# swapbot/flash_loan.py
"""
Aave V3 Flash Loan Bundler
Wraps an ordered arbitrage bundle inside a single flashLoan() call.

The pool calls back into the receiver contract within the same transaction,
so the borrow, the bundle and the repayment are atomic on-chain. This module
only builds and sends that one top-level transaction.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence

from web3 import Web3

from swapbot.abi import AAVE_POOL_ABI, ARBITRAGE_EXECUTOR_ABI, encode_function
from swapbot.config import (
    AAVE_FLASH_FEE_BPS,
    FLASH_LOAN_REFERRAL_CODE,
    GAS_LIMIT_FLASH_LOAN,
    INTEREST_RATE_MODE_NONE,
)
from swapbot.errors import FlashLoanFailure, RelayNotIncluded, SimulationRejected
from swapbot.types import ArbitrageBundle, FlashLoanRequest, PreparedCall

logger = logging.getLogger(__name__)

# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class FlashLoanCallbackContext:
    """What the callback-params builder gets to see"""
    assets: List[str]
    amounts: List[int]
    premiums: List[int]
    initiator: str


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def calculate_premium(amount: int, fee_bps: int = AAVE_FLASH_FEE_BPS) -> int:
    """Pool premium, truncated: 1_000_000 -> 900 at 9 bps"""
    return amount * fee_bps // 10000


def calculate_total_repayment(amount: int, fee_bps: int = AAVE_FLASH_FEE_BPS) -> int:
    return amount + calculate_premium(amount, fee_bps)


def encode_arbitrage_params(bundle: ArbitrageBundle) -> bytes:
    """
    executeArbitrage(targets, payloads, values) calldata, preserving the
    bundle's order exactly.
    """
    calldata = encode_function(
        ARBITRAGE_EXECUTOR_ABI,
        "executeArbitrage",
        [
            [Web3.to_checksum_address(t) for t in bundle.targets],
            [Web3.to_bytes(hexstr=d) for d in bundle.payloads],
            bundle.values,
        ],
    )
    return Web3.to_bytes(hexstr=calldata)


# =============================================================================
# FLASH LOAN BUNDLER
# =============================================================================

class FlashLoanBundler:
    """
    Builds flashLoan() calls against one Aave V3 pool with a fixed receiver
    contract acting as both receiver and onBehalfOf.

    With a relay, the transaction goes through simulate-then-submit; without
    one it is signed and sent directly.
    """

    def __init__(
        self,
        signer,
        pool_address: str,
        receiver_address: str,
        relay=None,
        fee_bps: int = AAVE_FLASH_FEE_BPS,
    ):
        self.signer = signer
        self.pool = Web3.to_checksum_address(pool_address)
        self.receiver = Web3.to_checksum_address(receiver_address)
        self.relay = relay
        self.fee_bps = fee_bps

    def compute_premiums(self, amounts: Sequence[int]) -> List[int]:
        return [calculate_premium(a, self.fee_bps) for a in amounts]

    def build_request(self, assets: Sequence[str], amounts: Sequence[int], params: bytes) -> FlashLoanRequest:
        return FlashLoanRequest(
            assets=tuple(Web3.to_checksum_address(a) for a in assets),
            amounts=tuple(int(a) for a in amounts),
            premiums=tuple(self.compute_premiums(amounts)),
            initiator=self.receiver,
            params=params,
        )

    def encode_flash_loan(self, request: FlashLoanRequest) -> PreparedCall:
        data = encode_function(
            AAVE_POOL_ABI,
            "flashLoan",
            [
                self.receiver,
                list(request.assets),
                list(request.amounts),
                [INTEREST_RATE_MODE_NONE] * len(request.assets),
                self.receiver,
                request.params,
                FLASH_LOAN_REFERRAL_CODE,
            ],
        )
        return PreparedCall(to=self.pool, data=data, value=0)

    def execute_flash_loan(
        self,
        assets: Sequence[str],
        amounts: Sequence[int],
        build_callback_params: Callable[[FlashLoanCallbackContext], bytes],
    ) -> str:
        """
        Build, sign and send the flash loan. Returns the tx hash.
        Every failure propagates; nothing is retried.
        """
        # validates non-empty / matching lengths / positive amounts
        probe = self.build_request(assets, amounts, b"")

        context = FlashLoanCallbackContext(
            assets=list(probe.assets),
            amounts=list(probe.amounts),
            premiums=list(probe.premiums),
            initiator=self.receiver,
        )
        params = build_callback_params(context)
        request = self.build_request(probe.assets, probe.amounts, params)
        call = self.encode_flash_loan(request)

        logger.info(
            f"Flash loan: {list(request.amounts)} of {list(request.assets)} "
            f"(premiums {list(request.premiums)}) via {self.pool}"
        )

        try:
            if self.relay is not None:
                return self.relay.execute([call], gas_limit=GAS_LIMIT_FLASH_LOAN)[0]
            return self.signer.sign_and_send(call, gas_limit=GAS_LIMIT_FLASH_LOAN)
        except (SimulationRejected, RelayNotIncluded):
            raise
        except Exception as e:
            raise FlashLoanFailure(f"Flash loan send failed: {e}")
