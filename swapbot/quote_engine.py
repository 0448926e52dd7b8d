# swapbot/quote_engine.py
"""
Multi-Venue Quote Engine
Fetches quotes from the routing aggregator and the RFQ venue in parallel,
ranks them by guaranteed output and flags cross-venue arbitrage
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from decimal import Context, Decimal, InvalidOperation
from typing import List, Optional, Sequence

from web3 import Web3

from swapbot.bebop import BebopClient
from swapbot.chains import ChainConfig
from swapbot.config import ARBITRAGE_THRESHOLD_DEN, ARBITRAGE_THRESHOLD_NUM
from swapbot.errors import AdapterFailure
from swapbot.lifi import LifiClient
from swapbot.types import AggregatorRoute, Quote, RfqOrder, SwapRequest, Venue

logger = logging.getLogger(__name__)

# thread pool workers do not inherit the caller's decimal context
_EXACT = Context(prec=100)


# =============================================================================
# AMOUNT PARSING
# =============================================================================

def parse_units(amount: str, decimals: int) -> int:
    """
    Exact decimal string -> smallest unit.
    Rejects non-positive amounts and more fractional digits than decimals.
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise AdapterFailure(f"Invalid amount: {amount!r}")

    if not value.is_finite() or value <= 0:
        raise AdapterFailure(f"Amount must be positive: {amount!r}")

    scaled = value.scaleb(decimals, context=_EXACT)
    if scaled != scaled.to_integral_value():
        raise AdapterFailure(f"Amount {amount} has more than {decimals} decimals")
    return int(scaled)


# =============================================================================
# QUOTE SOURCES
# =============================================================================

class QuoteSource:
    """Base adapter: one external venue, never raises out of get_quote"""

    venue: Venue = None

    def __init__(self, decimals_oracle):
        self.decimals = decimals_oracle

    def get_quote(self, request: SwapRequest, taker: str, chain: ChainConfig) -> Optional[Quote]:
        try:
            return self._fetch_quote(request, taker, chain)
        except Exception as e:
            logger.error(f"Failed to get {self.venue.value} quote: {e}")
            return None

    def _amount_in(self, request: SwapRequest) -> int:
        decimals = self.decimals.get_decimals(request.from_token, request.chain)
        return parse_units(request.amount, decimals)

    def _fetch_quote(self, request: SwapRequest, taker: str, chain: ChainConfig) -> Optional[Quote]:
        raise NotImplementedError


class LifiQuoteSource(QuoteSource):
    venue = Venue.ROUTE_AGGREGATOR

    def __init__(self, client: LifiClient, decimals_oracle):
        super().__init__(decimals_oracle)
        self.client = client

    def _fetch_quote(self, request: SwapRequest, taker: str, chain: ChainConfig) -> Optional[Quote]:
        amount_in = self._amount_in(request)
        routes = self.client.get_routes(
            chain_id=chain.chain_id,
            from_token=request.from_token,
            to_token=request.to_token,
            from_amount=amount_in,
            from_address=taker,
            slippage=request.slippage_fraction,
        )
        if not routes:
            logger.info(f"LI.FI: no route for {request.from_token} -> {request.to_token}")
            return None

        best = routes[0]
        first_step = (best.get("steps") or [{}])[0]
        approval = first_step.get("estimate", {}).get("approvalAddress")
        route = AggregatorRoute(
            route_id=str(best.get("id", "")),
            from_chain_id=int(best.get("fromChainId", chain.chain_id)),
            from_amount=int(best.get("fromAmount", amount_in)),
            to_amount_min=int(best["toAmountMin"]),
            approval_address=Web3.to_checksum_address(approval) if approval else None,
            raw=best,
        )
        return Quote(
            venue=self.venue,
            min_output_amount=route.to_amount_min,
            payload=route,
            amount_in=amount_in,
        )


class BebopQuoteSource(QuoteSource):
    venue = Venue.RFQ

    def __init__(self, client: BebopClient, decimals_oracle):
        super().__init__(decimals_oracle)
        self.client = client

    def _fetch_quote(self, request: SwapRequest, taker: str, chain: ChainConfig) -> Optional[Quote]:
        if not chain.bebop_slug:
            logger.info(f"Bebop: chain {chain.name} not supported")
            return None

        amount_in = self._amount_in(request)
        data = self.client.get_quote(
            chain_slug=chain.bebop_slug,
            sell_token=request.from_token,
            sell_amount=amount_in,
            buy_token=request.to_token,
            taker=taker,
        )
        order = RfqOrder(
            buy_amount=int(data["buyAmount"]),
            sell_amount=int(data["sellAmount"]),
            to=Web3.to_checksum_address(data["to"]),
            data=data["data"],
            value=int(data.get("value") or 0),
            from_address=Web3.to_checksum_address(data.get("from") or taker),
            approval_target=Web3.to_checksum_address(data["approvalTarget"]),
            raw=data,
        )
        return Quote(
            venue=self.venue,
            min_output_amount=order.buy_amount,
            payload=order,
            amount_in=amount_in,
        )


# =============================================================================
# RANKING
# =============================================================================

def rank_quotes(quotes: Sequence[Quote]) -> List[Quote]:
    """Descending by guaranteed output; equal outputs keep arrival order"""
    return sorted(quotes, key=lambda q: q.min_output_amount, reverse=True)


def price_difference_bps(ranked: Sequence[Quote]) -> int:
    """Best vs second-best gap in bps, truncated (0 when not comparable)"""
    if len(ranked) < 2 or ranked[0].min_output_amount <= 0:
        return 0
    best = ranked[0].min_output_amount
    second = ranked[1].min_output_amount
    return (best - second) * 10000 // best


def is_arbitrage_opportunity(ranked: Sequence[Quote]) -> bool:
    """
    True iff (best - second) / best > 0.5%, in exact integer arithmetic.
    """
    if len(ranked) < 2:
        return False
    best = ranked[0].min_output_amount
    second = ranked[1].min_output_amount
    if best <= 0:
        return False
    return (best - second) * ARBITRAGE_THRESHOLD_DEN > best * ARBITRAGE_THRESHOLD_NUM


# =============================================================================
# QUOTE ENGINE
# =============================================================================

@dataclass
class AggregatedQuotes:
    """Ranked quotes from every venue that answered"""
    request: SwapRequest
    quotes: List[Quote] = field(default_factory=list)
    spread_bps: int = 0
    timestamp: float = 0

    @property
    def best_quote(self) -> Optional[Quote]:
        return self.quotes[0] if self.quotes else None

    @property
    def is_arbitrage(self) -> bool:
        return is_arbitrage_opportunity(self.quotes)


class QuoteEngine:
    """
    Fans out to every source at once and joins all of them.
    A failing source only drops its own quote.
    """

    def __init__(self, sources: Sequence[QuoteSource]):
        self.sources = list(sources)

    def aggregate_quotes(self, request: SwapRequest, taker: str, chain: ChainConfig) -> AggregatedQuotes:
        timestamp = time.time()
        arrived: List[Quote] = []

        if self.sources:
            with ThreadPoolExecutor(max_workers=len(self.sources)) as executor:
                future_to_source = {
                    executor.submit(source.get_quote, request, taker, chain): source
                    for source in self.sources
                }
                for future in as_completed(future_to_source):
                    source = future_to_source[future]
                    try:
                        quote = future.result()
                    except Exception as e:
                        logger.error(f"{type(source).__name__} crashed: {e}")
                        continue
                    if quote is not None:
                        arrived.append(quote)

        ranked = rank_quotes(arrived)
        for q in ranked:
            logger.info(f"Quote {q.venue.value}: min out {q.min_output_amount}")

        return AggregatedQuotes(
            request=request,
            quotes=ranked,
            spread_bps=price_difference_bps(ranked),
            timestamp=timestamp,
        )

    def get_sorted_quotes(self, request: SwapRequest, taker: str, chain: ChainConfig) -> List[Quote]:
        return self.aggregate_quotes(request, taker, chain).quotes
