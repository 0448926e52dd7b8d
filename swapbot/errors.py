# swapbot/errors.py
"""
Error taxonomy for the swap pipeline.

AdapterFailure, PreparationFailure, SimulationRejected, RelayNotIncluded and
FlashLoanFailure are stopped at the orchestrator and turned into a skip or a
fallback. NoRouteFound, SignerMisconfigured and ExecutionFailed reach the caller.
"""


class SwapError(Exception):
    """Base class for every swap pipeline error"""


class AdapterFailure(SwapError):
    """One quote source could not produce a quote"""


class PreparationFailure(SwapError):
    """A quote could not be turned into an on-chain call"""


class FlashLoanFailure(SwapError):
    """Flash loan transaction could not be signed or sent"""


class SimulationRejected(SwapError):
    """Bundle simulation reported a reverting call"""

    def __init__(self, message: str, first_revert: dict = None):
        super().__init__(message)
        self.first_revert = first_revert


class RelayNotIncluded(SwapError):
    """Bundle was not mined in its target block"""

    def __init__(self, message: str, target_block: int = 0):
        super().__init__(message)
        self.target_block = target_block


class NoRouteFound(SwapError):
    """No venue returned a quote"""


class SignerMisconfigured(SwapError):
    """Signing credentials are missing or invalid"""


class ExecutionFailed(SwapError):
    """Every ranked quote failed to execute"""
