# swapbot/config.py
"""
Swap Bot Configuration
Environment-driven settings, loaded from config/.env when present
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv
from pathlib import Path
from typing import Optional

from swapbot.chains import FLASHBOTS_RELAY, ChainConfig

# -----------------------------
# Load .env safely
# -----------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / "config" / ".env"

if ENV_PATH.exists():
    load_dotenv(ENV_PATH)
else:
    load_dotenv()

# -----------------------------
# Flash Loan Configuration (Aave V3)
# -----------------------------
AAVE_FLASH_FEE_BPS = 9          # 0.09% premium, fixed by the pool
FLASH_LOAN_REFERRAL_CODE = 0
INTEREST_RATE_MODE_NONE = 0     # repay within the same transaction

# -----------------------------
# Arbitrage Detection
# -----------------------------
# best vs second-best guaranteed output, as a fraction: 0.5% == 1/200
ARBITRAGE_THRESHOLD_NUM = 1
ARBITRAGE_THRESHOLD_DEN = 200

# -----------------------------
# Gas Configuration
# -----------------------------
GAS_LIMIT_APPROVAL = 60_000
GAS_LIMIT_FLASH_LOAN = 1_000_000
GAS_PRICE_BUFFER_PCT = 10
MAX_GAS_PRICE_GWEI = 500

# -----------------------------
# Timeouts
# -----------------------------
RECEIPT_TIMEOUT_SECONDS = 120
BUNDLE_POLL_INTERVAL_SECONDS = 1.0

# -----------------------------
# Logging
# -----------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = BASE_DIR / "logs"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Runtime settings handed to every component at construction"""
    private_key: Optional[str] = None
    provider_url: Optional[str] = None
    relay_url: str = FLASHBOTS_RELAY
    relay_auth_key: Optional[str] = None
    arbitrage_executor: Optional[str] = None
    lifi_api_url: str = "https://li.quest/v1"
    lifi_integrator: str = "eliza"
    lifi_api_key: Optional[str] = None
    bebop_api_url: str = "https://api.bebop.xyz"
    default_slippage_bps: int = 50
    http_timeout: float = 15.0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            private_key=os.getenv("EVM_PRIVATE_KEY") or None,
            provider_url=os.getenv("EVM_PROVIDER_URL") or None,
            relay_url=os.getenv("FLASHBOTS_RELAY_URL", FLASHBOTS_RELAY),
            relay_auth_key=os.getenv("FLASHBOTS_AUTH_KEY") or None,
            arbitrage_executor=os.getenv("ARBITRAGE_EXECUTOR_ADDRESS") or None,
            lifi_api_url=os.getenv("LIFI_API_URL", "https://li.quest/v1"),
            lifi_integrator=os.getenv("LIFI_INTEGRATOR", "eliza"),
            lifi_api_key=os.getenv("LIFI_API_KEY") or None,
            bebop_api_url=os.getenv("BEBOP_API_URL", "https://api.bebop.xyz"),
            default_slippage_bps=_env_int("SWAP_DEFAULT_SLIPPAGE_BPS", 50),
            http_timeout=_env_float("HTTP_TIMEOUT_SECONDS", 15.0),
        )

    def rpc_url_for(self, chain: ChainConfig) -> str:
        """Per-chain override, then global override, then registry default"""
        per_chain = os.getenv(f"ETHEREUM_PROVIDER_{chain.name.upper()}")
        return per_chain or self.provider_url or chain.rpc_url

    @property
    def arbitrage_enabled(self) -> bool:
        return bool(self.arbitrage_executor)
