# swapbot/wallet.py
"""
Wallet & Chain Access
Signs and sends prepared calls, reads contracts, and reads token decimals.

Nonce assignment is left to the node ("pending" count). Callers must not run
two sends for the same account concurrently.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from eth_account import Account
from web3 import Web3
from web3.exceptions import TransactionNotFound
from web3.middleware import ExtraDataToPOAMiddleware

from swapbot.abi import ERC20_ABI
from swapbot.chains import ChainConfig, get_chain, is_native_token
from swapbot.config import (
    GAS_PRICE_BUFFER_PCT,
    MAX_GAS_PRICE_GWEI,
    RECEIPT_TIMEOUT_SECONDS,
    Settings,
)
from swapbot.errors import SignerMisconfigured, SwapError
from swapbot.types import PreparedCall

logger = logging.getLogger(__name__)

NATIVE_DECIMALS = 18


# =============================================================================
# SIGNER
# =============================================================================

class WalletSigner:
    """
    One account on one chain.

    Exposes get_address / sign / sign_and_send / read_contract /
    wait_for_receipt / block_number for the rest of the pipeline.
    """

    def __init__(self, w3: Web3, private_key: Optional[str], chain_id: Optional[int] = None):
        if not private_key:
            raise SignerMisconfigured("EVM_PRIVATE_KEY not set")
        try:
            self.account = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            raise SignerMisconfigured(f"Invalid private key: {e}")

        self.w3 = w3
        self.address = self.account.address
        self._chain_id = chain_id

    @classmethod
    def connect(cls, chain: ChainConfig, settings: Settings) -> "WalletSigner":
        """Build a signer with its own HTTP provider for the given chain"""
        if not settings.private_key:
            raise SignerMisconfigured("EVM_PRIVATE_KEY not set")

        rpc_url = settings.rpc_url_for(chain)
        w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": settings.http_timeout}))
        if chain.poa:
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        logger.info(f"Signer ready on {chain.name} via {rpc_url}")
        return cls(w3, settings.private_key, chain_id=chain.chain_id)

    # -------------------------------------------------------------------------
    # chain reads
    # -------------------------------------------------------------------------

    def get_address(self) -> str:
        return self.address

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self.w3.eth.chain_id
        return self._chain_id

    def block_number(self) -> int:
        return self.w3.eth.block_number

    def read_contract(self, address: str, abi: List[Dict], method: str, args: Sequence[Any] = ()) -> Any:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        return getattr(contract.functions, method)(*args).call()

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Any]:
        """Receipt if mined, None otherwise"""
        try:
            return self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    # -------------------------------------------------------------------------
    # signing
    # -------------------------------------------------------------------------

    def get_nonce(self) -> int:
        return self.w3.eth.get_transaction_count(self.address, "pending")

    def _get_gas_price(self) -> int:
        """Node gas price plus a small buffer, capped"""
        current_price = self.w3.eth.gas_price
        cap = Web3.to_wei(MAX_GAS_PRICE_GWEI, "gwei")
        if current_price > cap:
            logger.warning(
                f"Gas price {Web3.from_wei(current_price, 'gwei'):.1f} gwei exceeds max {MAX_GAS_PRICE_GWEI}"
            )
            return cap
        return current_price * (100 + GAS_PRICE_BUFFER_PCT) // 100

    def build_transaction(
        self,
        call: PreparedCall,
        nonce: Optional[int] = None,
        gas_limit: Optional[int] = None,
    ) -> dict:
        tx = {
            "from": self.address,
            "to": Web3.to_checksum_address(call.to),
            "data": call.data,
            "value": call.value,
            "nonce": self.get_nonce() if nonce is None else nonce,
            "gasPrice": self._get_gas_price(),
            "chainId": self.chain_id,
        }
        if gas_limit is not None:
            tx["gas"] = gas_limit
        else:
            try:
                tx["gas"] = self.w3.eth.estimate_gas(tx)
            except Exception as e:
                raise SwapError(f"Gas estimation failed for call to {call.to}: {e}")
        return tx

    def sign(self, call: PreparedCall, nonce: Optional[int] = None, gas_limit: Optional[int] = None) -> str:
        """Sign a call and return the raw transaction as 0x-hex"""
        tx = self.build_transaction(call, nonce=nonce, gas_limit=gas_limit)
        signed = self.account.sign_transaction(tx)
        return Web3.to_hex(signed.raw_transaction)

    def sign_and_send(self, call: PreparedCall, gas_limit: Optional[int] = None) -> str:
        raw_tx = self.sign(call, gas_limit=gas_limit)
        tx_hash = self.w3.eth.send_raw_transaction(raw_tx)
        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Tx sent: {tx_hash_hex} -> {call.to}")
        return tx_hash_hex

    def wait_for_receipt(self, tx_hash: str, timeout: int = RECEIPT_TIMEOUT_SECONDS):
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        if receipt["status"] != 1:
            raise SwapError(f"Transaction {tx_hash} reverted")
        return receipt


# =============================================================================
# WALLET PROVIDER
# =============================================================================

class WalletProvider:
    """
    Hands out one signer per chain, built lazily from settings.
    Signers for the same chain are reused, never shared across chains.
    """

    def __init__(self, settings: Settings, signer_factory=None):
        if not settings.private_key:
            raise SignerMisconfigured("EVM_PRIVATE_KEY not set")
        self.settings = settings
        self._signer_factory = signer_factory or WalletSigner.connect
        self._signers: Dict[str, WalletSigner] = {}

    def get_chain_config(self, chain_name: str) -> ChainConfig:
        chain = get_chain(chain_name)
        if chain is None:
            raise SwapError(f"Unsupported chain: {chain_name}")
        return chain

    def get_signer(self, chain_name: str) -> WalletSigner:
        chain = self.get_chain_config(chain_name)
        if chain.name not in self._signers:
            self._signers[chain.name] = self._signer_factory(chain, self.settings)
        return self._signers[chain.name]


# =============================================================================
# DECIMALS ORACLE
# =============================================================================

class TokenDecimals:
    """Reads ERC-20 decimals live on every call"""

    def __init__(self, wallet: WalletProvider):
        self.wallet = wallet

    def get_decimals(self, token: str, chain: str) -> int:
        if is_native_token(token):
            return NATIVE_DECIMALS
        signer = self.wallet.get_signer(chain)
        return int(signer.read_contract(token, ERC20_ABI, "decimals"))
