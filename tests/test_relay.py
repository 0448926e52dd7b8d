"""
Tests for the private bundle relay: simulate, submit, wait
"""

import json
from unittest.mock import Mock

import pytest

from conftest import http_response
from swapbot.chains import AAVE_V3_POOL_MAINNET
from swapbot.errors import RelayNotIncluded, SimulationRejected
from swapbot.relay import BundleState, PrivateBundleRelay, RelayError, raw_tx_hash
from swapbot.types import PreparedCall

RELAY_URL = "https://relay.example"
FLASH_CALL = PreparedCall(to=AAVE_V3_POOL_MAINNET, data="0xab9c4b5d", value=0)


def make_relay(signer, *responses):
    session = Mock()
    session.post.side_effect = list(responses)
    relay = PrivateBundleRelay(
        signer, RELAY_URL, session=session, poll_interval=0, wait_timeout=0.05,
    )
    return relay, session


def rpc_methods(session):
    return [json.loads(c.kwargs["data"])["method"] for c in session.post.call_args_list]


def sim_ok():
    return http_response({"jsonrpc": "2.0", "id": 1, "result": {
        "results": [{"txHash": "0x01", "gasUsed": 210000}],
        "totalGasUsed": 210000,
        "coinbaseDiff": 0,
    }})


def sim_revert():
    return http_response({"jsonrpc": "2.0", "id": 1, "result": {
        "results": [{"txHash": "0x01", "error": "execution reverted", "revert": "Not profitable"}],
    }})


def sent_ok():
    return http_response({"jsonrpc": "2.0", "id": 2, "result": {"bundleHash": "0xbundle"}})


class TestSigning:

    def test_consecutive_nonces(self, signer):
        relay, _ = make_relay(signer)
        relay.sign_bundle([FLASH_CALL, FLASH_CALL], gas_limit=500_000)

        assert [n for _, n, _ in signer.signed] == [7, 8]
        assert all(g == 500_000 for _, _, g in signer.signed)
        assert relay.state == BundleState.SIGNED

    def test_requests_carry_flashbots_signature(self, signer):
        relay, session = make_relay(signer, sim_ok())
        relay.simulate(["0x01"])

        header = session.post.call_args.kwargs["headers"]["X-Flashbots-Signature"]
        address, signature = header.split(":")
        assert address == signer.address
        assert signature.startswith("0x")


class TestSimulation:

    def test_clean_simulation(self, signer):
        relay, session = make_relay(signer, sim_ok())
        assert relay.simulate(["0x01"]) is True
        params = json.loads(session.post.call_args.kwargs["data"])["params"][0]
        assert params["blockNumber"] == hex(101)
        assert params["stateBlockNumber"] == "latest"

    def test_any_revert_fails_simulation(self, signer):
        relay, _ = make_relay(signer, sim_revert())
        assert relay.simulate(["0x01"]) is False
        assert relay.state == BundleState.SIMULATED_FAIL

    def test_relay_error_fails_simulation(self, signer):
        relay, _ = make_relay(
            signer, http_response({"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "bad"}}),
        )
        assert relay.simulate(["0x01"]) is False

    def test_first_revert_is_reported(self, signer):
        relay, _ = make_relay(signer, sim_revert())
        sim = relay.simulate_bundle(["0x01"], block_number=101)
        assert not sim.ok
        assert sim.first_revert["revert"] == "Not profitable"


class TestExecute:

    def test_rejected_bundle_is_never_submitted(self, signer):
        relay, session = make_relay(signer, sim_revert())

        with pytest.raises(SimulationRejected) as exc:
            relay.execute([FLASH_CALL])

        assert exc.value.first_revert["error"] == "execution reverted"
        assert rpc_methods(session) == ["eth_callBundle"]

    def test_http_error_rejects_without_submitting(self, signer):
        relay, session = make_relay(signer, http_response({}, status_code=503))

        with pytest.raises(SimulationRejected):
            relay.execute([FLASH_CALL])
        assert rpc_methods(session) == ["eth_callBundle"]

    def test_included_bundle_returns_hashes(self, signer):
        relay, session = make_relay(signer, sim_ok(), sent_ok())
        signer.block_number = Mock(side_effect=[100, 101])
        raw = signer.sign(FLASH_CALL, nonce=7, gas_limit=1_000_000)
        signer.receipts[raw_tx_hash(raw)] = {"blockNumber": 101, "status": 1}

        hashes = relay.execute([FLASH_CALL])

        assert hashes == [raw_tx_hash(raw)]
        assert rpc_methods(session) == ["eth_callBundle", "eth_sendBundle"]
        sent = json.loads(session.post.call_args.kwargs["data"])["params"][0]
        assert sent["blockNumber"] == hex(101)
        assert relay.state == BundleState.INCLUDED

    def test_simulated_and_submitted_for_the_same_block(self, signer):
        relay, session = make_relay(signer, sim_ok(), sent_ok())
        signer.block_number = Mock(side_effect=[100, 101, 102])
        raw = signer.sign(FLASH_CALL, nonce=7, gas_limit=1_000_000)
        signer.receipts[raw_tx_hash(raw)] = {"blockNumber": 101, "status": 1}

        relay.execute([FLASH_CALL])

        blocks = [json.loads(c.kwargs["data"])["params"][0]["blockNumber"] for c in session.post.call_args_list]
        assert blocks == [hex(101), hex(101)]
        assert signer.block_number.call_count == 2

    def test_missed_target_block(self, signer):
        relay, _ = make_relay(signer, sim_ok(), sent_ok())
        signer.block_number = Mock(side_effect=[100, 101])

        with pytest.raises(RelayNotIncluded) as exc:
            relay.execute([FLASH_CALL])

        assert exc.value.target_block == 101
        assert relay.state == BundleState.NOT_INCLUDED

    def test_included_in_wrong_block_is_not_included(self, signer):
        relay, _ = make_relay(signer, sim_ok(), sent_ok())
        signer.block_number = Mock(side_effect=[100, 101])
        raw = signer.sign(FLASH_CALL, nonce=7, gas_limit=1_000_000)
        signer.receipts[raw_tx_hash(raw)] = {"blockNumber": 102, "status": 1}

        with pytest.raises(RelayNotIncluded):
            relay.execute([FLASH_CALL])

    def test_wait_times_out_when_chain_stalls(self, signer):
        relay, _ = make_relay(signer, sent_ok())
        submission = relay.send(["0x01"], target_block=500)

        assert relay.wait(submission) == 0


def test_relay_error_type(signer):
    relay, _ = make_relay(signer, http_response({"error": "nope"}))
    with pytest.raises(RelayError):
        relay.send(["0x01"], target_block=101)
