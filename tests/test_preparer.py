"""
Tests for turning quotes into unsigned calls
"""

from unittest.mock import Mock

import pytest
from eth_abi import decode
from web3 import Web3

from conftest import (
    BEBOP_APPROVAL,
    BEBOP_SETTLEMENT,
    LIFI_DIAMOND,
    NATIVE,
    USDC,
    WETH,
    make_rfq_quote,
    make_route_execution,
    make_route_quote,
    swap_process,
)
from swapbot.abi import encode_approve
from swapbot.errors import PreparationFailure
from swapbot.lifi import RouteProcess
from swapbot.preparer import TransactionPreparer
from swapbot.types import CallKind, SwapRequest


class TestRfqPreparation:

    def setup_method(self):
        self.preparer = TransactionPreparer(Mock())

    def test_short_allowance_returns_approval(self, signer, usdc_to_weth):
        signer.allowance = 0
        quote = make_rfq_quote(1000, sell_amount=1_500_000_000)

        call = self.preparer.prepare(quote, usdc_to_weth, signer)

        assert call.to == USDC
        assert call.value == 0
        assert call.kind == CallKind.APPROVAL
        assert Web3.to_bytes(hexstr=call.data)[:4] == Web3.keccak(text="approve(address,uint256)")[:4]
        spender, amount = decode(["address", "uint256"], Web3.to_bytes(hexstr=call.data)[4:])
        assert spender.lower() == BEBOP_APPROVAL.lower()
        assert amount == 1_500_000_000

    def test_sufficient_allowance_returns_swap(self, signer, usdc_to_weth):
        signer.allowance = 1_500_000_000
        quote = make_rfq_quote(1000, sell_amount=1_500_000_000)

        call = self.preparer.prepare(quote, usdc_to_weth, signer)

        assert call.to == BEBOP_SETTLEMENT
        assert call.data == quote.payload.data
        assert call.kind == CallKind.SWAP

    def test_native_input_never_needs_approval(self, signer):
        signer.allowance = 0
        request = SwapRequest(chain="mainnet", from_token=NATIVE, to_token=WETH, amount="1")
        quote = make_rfq_quote(1000, value=10 ** 18)

        call = self.preparer.prepare(quote, request, signer)

        assert call.to == BEBOP_SETTLEMENT
        assert call.value == 10 ** 18

    def test_allowance_read_failure(self, signer, usdc_to_weth):
        signer.read_contract = Mock(side_effect=ConnectionError("rpc down"))
        with pytest.raises(PreparationFailure):
            self.preparer.prepare(make_rfq_quote(1000), usdc_to_weth, signer)


class TestRoutePreparation:

    def test_first_pending_process_is_returned(self, signer, usdc_to_weth):
        lifi = Mock()
        approval = RouteProcess(type="TOKEN_ALLOWANCE", to=USDC, data=encode_approve(LIFI_DIAMOND, 1))
        lifi.execute_route.return_value = make_route_execution([approval, swap_process()])
        quote = make_route_quote(990)

        call = TransactionPreparer(lifi).prepare(quote, usdc_to_weth, signer)

        assert call.to == USDC
        assert call.is_approval
        lifi.execute_route.assert_called_once_with(quote.route, signer, send=False)
        assert signer.sent == []

    def test_swap_process_when_no_allowance_needed(self, signer, usdc_to_weth):
        lifi = Mock()
        lifi.execute_route.return_value = make_route_execution([swap_process()])

        call = TransactionPreparer(lifi).prepare(make_route_quote(990), usdc_to_weth, signer)

        assert call.to == LIFI_DIAMOND
        assert not call.is_approval

    def test_route_errors_become_preparation_failure(self, signer, usdc_to_weth):
        lifi = Mock()
        lifi.execute_route.side_effect = RuntimeError("step transaction unavailable")
        with pytest.raises(PreparationFailure):
            TransactionPreparer(lifi).prepare(make_route_quote(990), usdc_to_weth, signer)

    def test_empty_execution_rejected(self, signer, usdc_to_weth):
        lifi = Mock()
        lifi.execute_route.return_value = make_route_execution([])
        with pytest.raises(PreparationFailure):
            TransactionPreparer(lifi).prepare(make_route_quote(990), usdc_to_weth, signer)


def test_unknown_payload_rejected(signer, usdc_to_weth):
    quote = Mock()
    quote.payload = object()
    with pytest.raises(PreparationFailure):
        TransactionPreparer(Mock()).prepare(quote, usdc_to_weth, signer)
