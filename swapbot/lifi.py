# swapbot/lifi.py
"""
LI.FI routing aggregator client
Route discovery and step-by-step route execution over the public REST API
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests
from web3 import Web3

from swapbot.abi import ERC20_ABI, encode_approve
from swapbot.chains import is_native_token
from swapbot.config import GAS_LIMIT_APPROVAL
from swapbot.errors import AdapterFailure, PreparationFailure
from swapbot.types import CallKind, PreparedCall

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class RouteProcess:
    """One on-chain call of a route step (allowance or swap)"""
    type: str
    to: str
    data: str
    value: int = 0
    tx_hash: Optional[str] = None

    @property
    def call(self) -> PreparedCall:
        kind = CallKind.APPROVAL if self.type == "TOKEN_ALLOWANCE" else CallKind.SWAP
        return PreparedCall(to=self.to, data=self.data, value=self.value, kind=kind)


@dataclass
class StepExecution:
    step_id: str
    tool: str
    process: List[RouteProcess] = field(default_factory=list)


@dataclass
class RouteExecution:
    route_id: str
    from_chain_id: int
    steps: List[StepExecution] = field(default_factory=list)

    @property
    def processes(self) -> List[RouteProcess]:
        return [p for s in self.steps for p in s.process]

    @property
    def last_tx_hash(self) -> Optional[str]:
        hashes = [p.tx_hash for p in self.processes if p.tx_hash]
        return hashes[-1] if hashes else None


# =============================================================================
# CLIENT
# =============================================================================

class LifiClient:
    """
    Thin client for the LI.FI API.

    execute_route(send=False) resolves the calls of the first step without
    broadcasting anything; later steps depend on the first one being mined.
    """

    def __init__(
        self,
        api_url: str = "https://li.quest/v1",
        integrator: str = "eliza",
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.integrator = integrator
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if api_key:
            self.session.headers.update({"x-lifi-api-key": api_key})

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.session.post(f"{self.api_url}{path}", json=body, timeout=self.timeout)
        if resp.status_code != 200:
            raise AdapterFailure(f"LI.FI {path} returned HTTP {resp.status_code}: {resp.text[:200]}")
        return resp.json()

    # -------------------------------------------------------------------------
    # routes
    # -------------------------------------------------------------------------

    def get_routes(
        self,
        *,
        chain_id: int,
        from_token: str,
        to_token: str,
        from_amount: int,
        from_address: str,
        slippage: float = 0.005,
        order: str = "RECOMMENDED",
    ) -> List[Dict[str, Any]]:
        body = {
            "fromChainId": chain_id,
            "toChainId": chain_id,
            "fromTokenAddress": from_token,
            "toTokenAddress": to_token,
            "fromAmount": str(from_amount),
            "fromAddress": from_address,
            "toAddress": from_address,
            "options": {
                "slippage": slippage,
                "order": order,
                "integrator": self.integrator,
            },
        }
        data = self._post("/advanced/routes", body)
        return data.get("routes", [])

    def get_step_transaction(self, step: Dict[str, Any]) -> Dict[str, Any]:
        """Resolve a route step into its transactionRequest"""
        data = self._post("/advanced/stepTransaction", step)
        tx_request = data.get("transactionRequest")
        if not tx_request or not tx_request.get("to") or not tx_request.get("data"):
            raise PreparationFailure(f"LI.FI step {step.get('id')} has no transaction request")
        return tx_request

    # -------------------------------------------------------------------------
    # execution
    # -------------------------------------------------------------------------

    def _allowance_process(self, step: Dict[str, Any], signer) -> Optional[RouteProcess]:
        action = step.get("action", {})
        token = action.get("fromToken", {}).get("address")
        spender = step.get("estimate", {}).get("approvalAddress")
        if not token or not spender or is_native_token(token):
            return None

        amount = int(action.get("fromAmount", 0))
        allowance = signer.read_contract(
            token, ERC20_ABI, "allowance",
            [signer.get_address(), Web3.to_checksum_address(spender)],
        )
        if allowance >= amount:
            return None

        return RouteProcess(
            type="TOKEN_ALLOWANCE",
            to=Web3.to_checksum_address(token),
            data=encode_approve(spender, amount),
        )

    def execute_route(self, route: Dict[str, Any], signer, send: bool = True) -> RouteExecution:
        """
        Walk the route steps: allowance (when short) then swap, per step.
        With send=False only the first step is resolved and nothing is signed.
        """
        steps = route.get("steps") or []
        if not steps:
            raise PreparationFailure(f"LI.FI route {route.get('id')} has no steps")

        execution = RouteExecution(
            route_id=str(route.get("id", "")),
            from_chain_id=int(route.get("fromChainId", 0)),
        )

        for index, step in enumerate(steps):
            step_exec = StepExecution(step_id=str(step.get("id", index)), tool=step.get("tool", ""))
            execution.steps.append(step_exec)

            allowance = self._allowance_process(step, signer)
            if allowance is not None:
                step_exec.process.append(allowance)
                if send:
                    allowance.tx_hash = signer.sign_and_send(allowance.call, gas_limit=GAS_LIMIT_APPROVAL)
                    signer.wait_for_receipt(allowance.tx_hash)

            tx_request = self.get_step_transaction(step)
            swap = RouteProcess(
                type="SWAP",
                to=Web3.to_checksum_address(tx_request["to"]),
                data=tx_request["data"],
                value=_to_int(tx_request.get("value", 0)),
            )
            step_exec.process.append(swap)

            if not send:
                break

            swap.tx_hash = signer.sign_and_send(swap.call)
            logger.info(f"LI.FI step {step_exec.step_id} ({step_exec.tool}) sent: {swap.tx_hash}")
            if index < len(steps) - 1:
                signer.wait_for_receipt(swap.tx_hash)

        return execution


def _to_int(value) -> int:
    """LI.FI sends values as hex or decimal strings"""
    if isinstance(value, int):
        return value
    if not value:
        return 0
    value = str(value)
    return int(value, 16) if value.startswith("0x") else int(value)
