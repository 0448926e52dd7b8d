# swapbot/types.py
"""
Data model shared by the quote, preparation, flash loan and relay layers.

All on-chain amounts are plain ints in the token's smallest unit. Decimal
strings only exist on the SwapRequest, before the adapters scale them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


DEFAULT_SLIPPAGE_BPS = 50


# =============================================================================
# REQUEST
# =============================================================================

@dataclass(frozen=True)
class SwapRequest:
    """A single same-chain swap intent"""
    chain: str
    from_token: str
    to_token: str
    amount: str  # human decimal string, e.g. "1.5"
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    deadline_block: Optional[int] = None  # last block a quote may execute in

    @property
    def slippage_fraction(self) -> float:
        return (self.slippage_bps or DEFAULT_SLIPPAGE_BPS) / 10000


# =============================================================================
# QUOTES
# =============================================================================

class Venue(Enum):
    ROUTE_AGGREGATOR = "lifi"
    RFQ = "bebop"


@dataclass(frozen=True)
class AggregatorRoute:
    """Route returned by the routing aggregator"""
    route_id: str
    from_chain_id: int
    from_amount: int
    to_amount_min: int
    approval_address: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class RfqOrder:
    """Firm quote returned by the RFQ venue"""
    buy_amount: int
    sell_amount: int
    to: str
    data: str
    value: int
    from_address: str
    approval_target: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


VenuePayload = Union[AggregatorRoute, RfqOrder]


@dataclass(frozen=True)
class Quote:
    """
    One venue's answer to a SwapRequest.
    Quotes compare only on min_output_amount (destination smallest unit).
    """
    venue: Venue
    min_output_amount: int
    payload: VenuePayload
    amount_in: int

    @property
    def route(self) -> Dict[str, Any]:
        return self.payload.raw


# =============================================================================
# CALLS & BUNDLES
# =============================================================================

class CallKind(Enum):
    SWAP = "swap"
    APPROVAL = "approval"


@dataclass(frozen=True)
class PreparedCall:
    """Unsigned call: target, calldata and native value"""
    to: str
    data: str
    value: int = 0
    kind: CallKind = CallKind.SWAP

    @property
    def is_approval(self) -> bool:
        return self.kind == CallKind.APPROVAL

    def __post_init__(self):
        if self.value < 0:
            raise ValueError(f"Negative call value: {self.value}")


@dataclass(frozen=True)
class ArbitrageBundle:
    """Ordered calls executed inside the flash loan callback"""
    calls: Tuple[PreparedCall, ...]

    @classmethod
    def of(cls, calls: List[PreparedCall]) -> "ArbitrageBundle":
        return cls(calls=tuple(calls))

    def __len__(self) -> int:
        return len(self.calls)

    def __iter__(self):
        return iter(self.calls)

    @property
    def targets(self) -> List[str]:
        return [c.to for c in self.calls]

    @property
    def payloads(self) -> List[str]:
        return [c.data for c in self.calls]

    @property
    def values(self) -> List[int]:
        return [c.value for c in self.calls]


@dataclass(frozen=True)
class FlashLoanRequest:
    assets: Tuple[str, ...]
    amounts: Tuple[int, ...]
    premiums: Tuple[int, ...]
    initiator: str
    params: bytes = b""

    def __post_init__(self):
        if not self.assets:
            raise ValueError("Flash loan needs at least one asset")
        if len(self.assets) != len(self.amounts):
            raise ValueError(
                f"Assets/amounts length mismatch: {len(self.assets)} != {len(self.amounts)}"
            )
        if any(a <= 0 for a in self.amounts):
            raise ValueError("Flash loan amounts must be strictly positive")


@dataclass
class BundleSubmission:
    """Transient: lives for one relay attempt"""
    target_block: int
    signed_transactions: List[str]
    relay_url: str
    bundle_hash: Optional[str] = None


# =============================================================================
# RESULT
# =============================================================================

@dataclass(frozen=True)
class Transaction:
    hash: str
    from_address: str
    to: str
    value: int
    chain_id: int
