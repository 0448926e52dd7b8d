# swapbot/executor.py
"""
Swap Orchestrator
Quotes every venue, then takes exactly one execution path per request:

    QUOTING -> ARBITRAGE_PATH (flash loan bundle via private relay)
            -> DIRECT_PATH (best quote first, next quote on failure)
            -> DONE | FAILED

A failed arbitrage attempt always falls back to the direct path and never
becomes the final error.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from swapbot.bebop import BebopClient
from swapbot.chains import ChainConfig, get_symbol, is_native_token
from swapbot.config import GAS_LIMIT_APPROVAL, Settings
from swapbot.errors import (
    ExecutionFailed,
    NoRouteFound,
    PreparationFailure,
    RelayNotIncluded,
    SimulationRejected,
)
from swapbot.flash_loan import FlashLoanBundler, encode_arbitrage_params
from swapbot.lifi import LifiClient
from swapbot.preparer import TransactionPreparer
from swapbot.quote_engine import (
    BebopQuoteSource,
    LifiQuoteSource,
    QuoteEngine,
    is_arbitrage_opportunity,
    price_difference_bps,
)
from swapbot.relay import PrivateBundleRelay
from swapbot.types import (
    AggregatorRoute,
    ArbitrageBundle,
    Quote,
    RfqOrder,
    SwapRequest,
    Transaction,
)
from swapbot.wallet import TokenDecimals, WalletProvider

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS & DATA CLASSES
# =============================================================================

class ExecutionPath(Enum):
    ARBITRAGE = "arbitrage"
    DIRECT = "direct"


class ExecutionStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    SIMULATION_REJECTED = "simulation_rejected"
    NOT_INCLUDED = "not_included"


@dataclass
class StageResult:
    """Outcome of one execution path"""
    path: ExecutionPath
    status: ExecutionStatus
    transaction: Optional[Transaction] = None
    error: str = ""
    execution_time_ms: float = 0

    @property
    def ok(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS and self.transaction is not None


BundlerFactory = Callable[[object, ChainConfig], Optional[FlashLoanBundler]]


def default_bundler_factory(settings: Settings) -> BundlerFactory:
    """
    Flash loans only where the chain has a lending pool, a private relay,
    and a receiver contract is configured.
    """
    def factory(signer, chain: ChainConfig) -> Optional[FlashLoanBundler]:
        if not settings.arbitrage_executor or not chain.aave_pool or not chain.relay_url:
            return None
        relay = PrivateBundleRelay(
            signer,
            relay_url=settings.relay_url or chain.relay_url,
            auth_key=settings.relay_auth_key,
            timeout=settings.http_timeout,
        )
        return FlashLoanBundler(
            signer,
            pool_address=chain.aave_pool,
            receiver_address=settings.arbitrage_executor,
            relay=relay,
        )
    return factory


# =============================================================================
# SWAP EXECUTOR
# =============================================================================

class SwapExecutor:

    def __init__(
        self,
        wallet: WalletProvider,
        quote_engine: QuoteEngine,
        preparer: TransactionPreparer,
        lifi_client: LifiClient,
        bundler_factory: Optional[BundlerFactory] = None,
    ):
        self.wallet = wallet
        self.quote_engine = quote_engine
        self.preparer = preparer
        self.lifi = lifi_client
        self.bundler_factory = bundler_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> "SwapExecutor":
        wallet = WalletProvider(settings)
        decimals = TokenDecimals(wallet)
        lifi = LifiClient(
            api_url=settings.lifi_api_url,
            integrator=settings.lifi_integrator,
            api_key=settings.lifi_api_key,
            timeout=settings.http_timeout,
        )
        bebop = BebopClient(api_url=settings.bebop_api_url, timeout=settings.http_timeout)
        engine = QuoteEngine([
            LifiQuoteSource(lifi, decimals),
            BebopQuoteSource(bebop, decimals),
        ])
        return cls(
            wallet=wallet,
            quote_engine=engine,
            preparer=TransactionPreparer(lifi),
            lifi_client=lifi,
            bundler_factory=default_bundler_factory(settings),
        )

    # -------------------------------------------------------------------------
    # entry point
    # -------------------------------------------------------------------------

    def swap(self, params: SwapRequest) -> Transaction:
        chain = self.wallet.get_chain_config(params.chain)
        signer = self.wallet.get_signer(params.chain)
        taker = signer.get_address()

        logger.info(
            f"Swap {params.amount} {get_symbol(params.from_token)} -> "
            f"{get_symbol(params.to_token)} on {chain.name} (slippage {params.slippage_bps} bps)"
        )

        ranked = self.quote_engine.get_sorted_quotes(params, taker, chain)
        if not ranked:
            raise NoRouteFound(
                f"No route found for {params.from_token} -> {params.to_token} on {chain.name}"
            )

        if is_arbitrage_opportunity(ranked):
            logger.info(f"Arbitrage opportunity: {price_difference_bps(ranked)} bps between top quotes")
            result = self.execute_arbitrage(ranked, params, signer, chain)
            if result.ok:
                return result.transaction
            logger.error(f"Flash loan execution failed, falling back to normal swap: {result.error}")

        result = self.execute_direct(ranked, params, signer, chain)
        if result.ok:
            return result.transaction
        raise ExecutionFailed("Execution failed")

    # -------------------------------------------------------------------------
    # arbitrage path
    # -------------------------------------------------------------------------

    def execute_arbitrage(
        self,
        ranked: List[Quote],
        params: SwapRequest,
        signer,
        chain: ChainConfig,
    ) -> StageResult:
        start_time = time.time()

        def result(status: ExecutionStatus, transaction=None, error="") -> StageResult:
            return StageResult(
                path=ExecutionPath.ARBITRAGE,
                status=status,
                transaction=transaction,
                error=error,
                execution_time_ms=(time.time() - start_time) * 1000,
            )

        if is_native_token(params.from_token):
            return result(ExecutionStatus.SKIPPED, error="Native token cannot be flash borrowed")

        try:
            bundler = self.bundler_factory(signer, chain) if self.bundler_factory else None
        except Exception as e:
            return result(ExecutionStatus.FAILED, error=f"Flash loan setup failed: {e}")
        if bundler is None:
            return result(ExecutionStatus.SKIPPED, error=f"Flash loans not configured on {chain.name}")

        try:
            self.check_deadline(params, signer)
            bundle = ArbitrageBundle.of([
                self.preparer.prepare(quote, params, signer) for quote in ranked
            ])
            tx_hash = bundler.execute_flash_loan(
                [params.from_token],
                [ranked[0].amount_in],
                lambda _context: encode_arbitrage_params(bundle),
            )
        except SimulationRejected as e:
            return result(ExecutionStatus.SIMULATION_REJECTED, error=str(e))
        except RelayNotIncluded as e:
            return result(ExecutionStatus.NOT_INCLUDED, error=str(e))
        except Exception as e:
            return result(ExecutionStatus.FAILED, error=str(e))

        logger.info(f"✅ Flash loan arbitrage executed: {tx_hash}")
        return result(
            ExecutionStatus.SUCCESS,
            transaction=Transaction(
                hash=tx_hash,
                from_address=signer.get_address(),
                to=bundler.pool,
                value=0,
                chain_id=chain.chain_id,
            ),
        )

    # -------------------------------------------------------------------------
    # direct path
    # -------------------------------------------------------------------------

    def execute_direct(
        self,
        ranked: List[Quote],
        params: SwapRequest,
        signer,
        chain: ChainConfig,
    ) -> StageResult:
        start_time = time.time()
        errors = []

        for quote in ranked:
            try:
                self.check_deadline(params, signer)
                tx = self.execute_quote(quote, params, signer, chain)
            except Exception as e:
                logger.error(f"Failed to execute {quote.venue.value} quote: {e}")
                errors.append(f"{quote.venue.value}: {e}")
                continue
            if tx is not None:
                logger.info(f"✅ Swap executed via {quote.venue.value}: {tx.hash}")
                return StageResult(
                    path=ExecutionPath.DIRECT,
                    status=ExecutionStatus.SUCCESS,
                    transaction=tx,
                    execution_time_ms=(time.time() - start_time) * 1000,
                )

        return StageResult(
            path=ExecutionPath.DIRECT,
            status=ExecutionStatus.FAILED,
            error="; ".join(errors) or "no quote produced a transaction",
            execution_time_ms=(time.time() - start_time) * 1000,
        )

    def check_deadline(self, params: SwapRequest, signer) -> None:
        if params.deadline_block is None:
            return
        head = signer.block_number()
        if head > params.deadline_block:
            raise PreparationFailure(
                f"Quote expired: head {head} is past deadline block {params.deadline_block}"
            )

    def execute_quote(self, quote: Quote, params: SwapRequest, signer, chain: ChainConfig) -> Optional[Transaction]:
        payload = quote.payload
        if isinstance(payload, RfqOrder):
            return self._execute_rfq(quote, payload, params, signer, chain)
        if isinstance(payload, AggregatorRoute):
            return self._execute_route(payload, signer, chain)
        raise PreparationFailure(f"Unsupported quote payload: {type(payload).__name__}")

    def _execute_rfq(
        self,
        quote: Quote,
        order: RfqOrder,
        params: SwapRequest,
        signer,
        chain: ChainConfig,
    ) -> Transaction:
        call = self.preparer.prepare(quote, params, signer)
        if call.is_approval:
            approval_hash = signer.sign_and_send(call, gas_limit=GAS_LIMIT_APPROVAL)
            signer.wait_for_receipt(approval_hash)
            call = self.preparer.prepare(quote, params, signer)
            if call.is_approval:
                raise PreparationFailure("Allowance still short after approval was mined")

        tx_hash = signer.sign_and_send(call)
        return Transaction(
            hash=tx_hash,
            from_address=order.from_address,
            to=order.to,
            value=order.value,
            chain_id=chain.chain_id,
        )

    def _execute_route(self, route: AggregatorRoute, signer, chain: ChainConfig) -> Transaction:
        execution = self.lifi.execute_route(route.raw, signer, send=True)
        tx_hash = execution.last_tx_hash
        if not tx_hash:
            raise PreparationFailure(f"LI.FI route {route.route_id} sent no transaction")

        last = execution.processes[-1]
        return Transaction(
            hash=tx_hash,
            from_address=signer.get_address(),
            to=last.to,
            value=last.value,
            chain_id=route.from_chain_id or chain.chain_id,
        )
