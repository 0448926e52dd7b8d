# swapbot/preparer.py
"""
Transaction Preparer
Turns a ranked quote into one unsigned call.

RFQ quotes are a two-step protocol: while the allowance is short, prepare()
returns the approval call; the caller sends it, waits for it to be mined and
calls prepare() again to get the swap. The two are never merged.
"""

import logging

from swapbot.abi import ERC20_ABI, encode_approve
from swapbot.chains import is_native_token
from swapbot.errors import PreparationFailure
from swapbot.lifi import LifiClient
from swapbot.types import AggregatorRoute, CallKind, PreparedCall, Quote, RfqOrder, SwapRequest

logger = logging.getLogger(__name__)


class TransactionPreparer:

    def __init__(self, lifi_client: LifiClient):
        self.lifi = lifi_client

    def prepare(self, quote: Quote, request: SwapRequest, signer) -> PreparedCall:
        payload = quote.payload
        if isinstance(payload, RfqOrder):
            return self._prepare_rfq(payload, request, signer)
        if isinstance(payload, AggregatorRoute):
            return self._prepare_route(payload, signer)
        raise PreparationFailure(f"Unsupported quote payload: {type(payload).__name__}")

    # -------------------------------------------------------------------------
    # RFQ
    # -------------------------------------------------------------------------

    def allowance_shortfall(self, order: RfqOrder, request: SwapRequest, signer) -> bool:
        if is_native_token(request.from_token):
            return False
        try:
            allowance = signer.read_contract(
                request.from_token, ERC20_ABI, "allowance",
                [order.from_address, order.approval_target],
            )
        except Exception as e:
            raise PreparationFailure(f"Allowance read failed for {request.from_token}: {e}")
        return int(allowance) < order.sell_amount

    def _prepare_rfq(self, order: RfqOrder, request: SwapRequest, signer) -> PreparedCall:
        if self.allowance_shortfall(order, request, signer):
            logger.info(
                f"Allowance short for {order.approval_target}, preparing approval of {order.sell_amount}"
            )
            return PreparedCall(
                to=request.from_token,
                data=encode_approve(order.approval_target, order.sell_amount),
                value=0,
                kind=CallKind.APPROVAL,
            )
        return PreparedCall(to=order.to, data=order.data, value=order.value)

    # -------------------------------------------------------------------------
    # Routing aggregator
    # -------------------------------------------------------------------------

    def _prepare_route(self, route: AggregatorRoute, signer) -> PreparedCall:
        try:
            execution = self.lifi.execute_route(route.raw, signer, send=False)
        except PreparationFailure:
            raise
        except Exception as e:
            raise PreparationFailure(f"Failed to prepare LI.FI route {route.route_id}: {e}")

        pending = execution.processes
        if not pending or not pending[0].data:
            raise PreparationFailure(f"LI.FI route {route.route_id} produced no call")
        return pending[0].call
