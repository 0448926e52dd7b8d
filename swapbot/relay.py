# swapbot/relay.py
"""
Private Bundle Relay
Flashbots-style JSON-RPC: eth_callBundle to simulate, eth_sendBundle to submit
for head + 1, then watch that block for the bundle's transactions.

Lifecycle of one attempt:
    UNSIGNED -> SIGNED -> SIMULATED(pass|fail) -> SUBMITTED -> INCLUDED | NOT_INCLUDED
Nothing is retried here; retargeting a later block is the caller's call.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import requests
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from swapbot.config import BUNDLE_POLL_INTERVAL_SECONDS, GAS_LIMIT_FLASH_LOAN
from swapbot.errors import RelayNotIncluded, SimulationRejected, SwapError
from swapbot.types import BundleSubmission, PreparedCall

logger = logging.getLogger(__name__)


class BundleState(Enum):
    UNSIGNED = "unsigned"
    SIGNED = "signed"
    SIMULATED_PASS = "simulated_pass"
    SIMULATED_FAIL = "simulated_fail"
    SUBMITTED = "submitted"
    INCLUDED = "included"
    NOT_INCLUDED = "not_included"


@dataclass
class SimulationResult:
    first_revert: Optional[Dict[str, Any]]
    results: List[Dict[str, Any]] = field(default_factory=list)
    total_gas_used: int = 0
    coinbase_diff: int = 0

    @property
    def ok(self) -> bool:
        return self.first_revert is None


class RelayError(SwapError):
    """Relay answered with a JSON-RPC error or a bad HTTP status"""


def raw_tx_hash(raw_tx: str) -> str:
    return Web3.to_hex(Web3.keccak(hexstr=raw_tx))


class PrivateBundleRelay:

    def __init__(
        self,
        signer,
        relay_url: str,
        auth_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
        poll_interval: float = BUNDLE_POLL_INTERVAL_SECONDS,
        wait_timeout: float = 60.0,
    ):
        self.signer = signer
        self.relay_url = relay_url
        # reputation key for the X-Flashbots-Signature header
        self.auth_account = Account.from_key(auth_key) if auth_key else signer.account
        self.session = session or requests.Session()
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.wait_timeout = wait_timeout
        self.state = BundleState.UNSIGNED
        self._request_id = 0

    # -------------------------------------------------------------------------
    # transport
    # -------------------------------------------------------------------------

    def _signature_header(self, body: str) -> str:
        message = encode_defunct(text=Web3.to_hex(Web3.keccak(text=body)))
        signature = Web3.to_hex(self.auth_account.sign_message(message).signature)
        return f"{self.auth_account.address}:{signature}"

    def _rpc(self, method: str, params: list) -> Any:
        self._request_id += 1
        body = json.dumps({
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        })
        resp = self.session.post(
            self.relay_url,
            data=body,
            headers={
                "Content-Type": "application/json",
                "X-Flashbots-Signature": self._signature_header(body),
            },
            timeout=self.timeout,
        )
        if resp.status_code != 200:
            raise RelayError(f"{method} returned HTTP {resp.status_code}: {resp.text[:200]}")
        payload = resp.json()
        if payload.get("error"):
            raise RelayError(f"{method} failed: {payload['error']}")
        return payload.get("result")

    def _transition(self, state: BundleState) -> None:
        logger.debug(f"Bundle {self.state.value} -> {state.value}")
        self.state = state

    # -------------------------------------------------------------------------
    # bundle steps
    # -------------------------------------------------------------------------

    def sign_bundle(self, calls: Sequence[PreparedCall], gas_limit: int = GAS_LIMIT_FLASH_LOAN) -> List[str]:
        """Sign calls in order with consecutive nonces"""
        self._transition(BundleState.UNSIGNED)
        base_nonce = self.signer.get_nonce()
        signed = [
            self.signer.sign(call, nonce=base_nonce + i, gas_limit=gas_limit)
            for i, call in enumerate(calls)
        ]
        self._transition(BundleState.SIGNED)
        return signed

    def simulate_bundle(self, signed_txs: Sequence[str], block_number: Optional[int] = None) -> SimulationResult:
        if block_number is None:
            block_number = self.signer.block_number() + 1
        result = self._rpc("eth_callBundle", [{
            "txs": list(signed_txs),
            "blockNumber": hex(block_number),
            "stateBlockNumber": "latest",
        }]) or {}

        results = result.get("results", [])
        first_revert = next((r for r in results if r.get("error") or r.get("revert")), None)
        sim = SimulationResult(
            first_revert=first_revert,
            results=results,
            total_gas_used=int(result.get("totalGasUsed", 0) or 0),
            coinbase_diff=int(result.get("coinbaseDiff", 0) or 0),
        )
        self._transition(BundleState.SIMULATED_PASS if sim.ok else BundleState.SIMULATED_FAIL)
        return sim

    def simulate(self, signed_txs: Sequence[str]) -> bool:
        """True iff no transaction in the bundle reverts"""
        try:
            sim = self.simulate_bundle(signed_txs)
        except Exception as e:
            logger.error(f"Bundle simulation failed: {e}")
            self._transition(BundleState.SIMULATED_FAIL)
            return False
        if not sim.ok:
            logger.warning(f"Bundle simulation reverted: {sim.first_revert}")
        return sim.ok

    def send(self, signed_txs: Sequence[str], target_block: int) -> BundleSubmission:
        result = self._rpc("eth_sendBundle", [{
            "txs": list(signed_txs),
            "blockNumber": hex(target_block),
        }]) or {}
        submission = BundleSubmission(
            target_block=target_block,
            signed_transactions=list(signed_txs),
            relay_url=self.relay_url,
            bundle_hash=result.get("bundleHash"),
        )
        self._transition(BundleState.SUBMITTED)
        logger.info(f"Bundle {submission.bundle_hash} submitted for block {target_block}")
        return submission

    def wait(self, submission: BundleSubmission) -> int:
        """
        Block until the target block exists, then check it.
        Returns the block number when every tx landed there, else 0.
        """
        deadline = time.monotonic() + self.wait_timeout
        while self.signer.block_number() < submission.target_block:
            if time.monotonic() > deadline:
                logger.warning(f"Timed out waiting for block {submission.target_block}")
                self._transition(BundleState.NOT_INCLUDED)
                return 0
            time.sleep(self.poll_interval)

        for raw_tx in submission.signed_transactions:
            receipt = self.signer.get_transaction_receipt(raw_tx_hash(raw_tx))
            if receipt is None or receipt["blockNumber"] != submission.target_block:
                self._transition(BundleState.NOT_INCLUDED)
                return 0

        self._transition(BundleState.INCLUDED)
        return submission.target_block

    # -------------------------------------------------------------------------
    # full attempt
    # -------------------------------------------------------------------------

    def execute(self, calls: Sequence[PreparedCall], gas_limit: int = GAS_LIMIT_FLASH_LOAN) -> List[str]:
        """
        Sign, simulate, submit for head + 1 and wait.
        Returns the included tx hashes; raises SimulationRejected or
        RelayNotIncluded. A rejected bundle is never submitted.
        """
        signed = self.sign_bundle(calls, gas_limit=gas_limit)
        target_block = self.signer.block_number() + 1

        try:
            sim = self.simulate_bundle(signed, block_number=target_block)
        except RelayError as e:
            raise SimulationRejected(f"Simulation unavailable: {e}")
        if not sim.ok:
            raise SimulationRejected("Bundle simulation reverted", first_revert=sim.first_revert)

        submission = self.send(signed, target_block)
        included = self.wait(submission)
        if not included:
            raise RelayNotIncluded(
                f"Bundle not included in target block {target_block}", target_block=target_block
            )

        logger.info(f"Bundle included in block {included}")
        return [raw_tx_hash(tx) for tx in signed]
