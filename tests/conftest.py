"""
Shared fixtures: an in-memory signer and quote builders.
"""

from unittest.mock import Mock

import pytest
from eth_account import Account
from web3 import Web3

from swapbot.lifi import RouteExecution, RouteProcess, StepExecution
from swapbot.types import AggregatorRoute, Quote, RfqOrder, SwapRequest, Venue

TEST_KEY = "0x" + "11" * 32

USDC = Web3.to_checksum_address("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48")
WETH = Web3.to_checksum_address("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2")
NATIVE = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"

BEBOP_SETTLEMENT = Web3.to_checksum_address("0xbbbbbBB520d69a9775E85b458C58c648259FAD5F")
BEBOP_APPROVAL = Web3.to_checksum_address("0x000000000022D473030F116dDEE9F6B43aC78BA3")
LIFI_DIAMOND = Web3.to_checksum_address("0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE")
RECEIVER = Web3.to_checksum_address("0x5555555555555555555555555555555555555555")


class FakeSigner:
    """
    Records every signed / sent call instead of touching a node.
    """

    def __init__(self, allowance=10 ** 30, head=100):
        self.account = Account.from_key(TEST_KEY)
        self.address = self.account.address
        self.allowance = allowance
        self.allowance_values = []
        self.head = head
        self.nonce = 7
        self.sent = []
        self.signed = []
        self.waited = []
        self.receipts = {}
        self.send_error = None

    def get_address(self):
        return self.address

    def block_number(self):
        return self.head

    def get_nonce(self):
        return self.nonce

    def read_contract(self, address, abi, method, args=()):
        if method == "allowance":
            if self.allowance_values:
                return self.allowance_values.pop(0)
            return self.allowance
        if method == "decimals":
            return 6
        raise AssertionError(f"unexpected read {method}")

    def sign(self, call, nonce=None, gas_limit=None):
        raw = Web3.to_hex(text=f"{call.to}:{call.data}:{nonce}:{gas_limit}")
        self.signed.append((call, nonce, gas_limit))
        return raw

    def sign_and_send(self, call, gas_limit=None):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((call, gas_limit))
        return "0x" + f"{len(self.sent):064x}"

    def wait_for_receipt(self, tx_hash, timeout=120):
        self.waited.append(tx_hash)
        return {"status": 1, "transactionHash": tx_hash}

    def get_transaction_receipt(self, tx_hash):
        return self.receipts.get(tx_hash)


@pytest.fixture
def signer():
    return FakeSigner()


@pytest.fixture
def usdc_to_weth():
    return SwapRequest(chain="mainnet", from_token=USDC, to_token=WETH, amount="1500", slippage_bps=50)


def make_rfq_quote(buy_amount, sell_amount=1_500_000_000, taker=None, value=0):
    taker = taker or Account.from_key(TEST_KEY).address
    order = RfqOrder(
        buy_amount=buy_amount,
        sell_amount=sell_amount,
        to=BEBOP_SETTLEMENT,
        data="0x4dcebcba" + "00" * 32,
        value=value,
        from_address=taker,
        approval_target=BEBOP_APPROVAL,
        raw={"buyAmount": str(buy_amount)},
    )
    return Quote(venue=Venue.RFQ, min_output_amount=buy_amount, payload=order, amount_in=sell_amount)


def make_route_quote(to_amount_min, from_amount=1_500_000_000, route_id="route-1"):
    raw = {
        "id": route_id,
        "fromChainId": 1,
        "fromAmount": str(from_amount),
        "toAmountMin": str(to_amount_min),
        "steps": [{
            "id": "step-0",
            "tool": "uniswap",
            "action": {"fromToken": {"address": USDC}, "fromAmount": str(from_amount)},
            "estimate": {"approvalAddress": LIFI_DIAMOND},
        }],
    }
    route = AggregatorRoute(
        route_id=route_id,
        from_chain_id=1,
        from_amount=from_amount,
        to_amount_min=to_amount_min,
        approval_address=LIFI_DIAMOND,
        raw=raw,
    )
    return Quote(venue=Venue.ROUTE_AGGREGATOR, min_output_amount=to_amount_min, payload=route, amount_in=from_amount)


def make_route_execution(processes, route_id="route-1"):
    return RouteExecution(
        route_id=route_id,
        from_chain_id=1,
        steps=[StepExecution(step_id="step-0", tool="uniswap", process=list(processes))],
    )


def swap_process(tx_hash=None):
    return RouteProcess(type="SWAP", to=LIFI_DIAMOND, data="0x4630a0d8" + "00" * 32, value=0, tx_hash=tx_hash)


def http_response(payload, status_code=200):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = payload
    resp.text = str(payload)
    return resp
