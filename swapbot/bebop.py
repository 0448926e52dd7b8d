# swapbot/bebop.py
"""
Bebop RFQ client
"""

import logging
from typing import Any, Dict, Optional

import requests

from swapbot.errors import AdapterFailure

logger = logging.getLogger(__name__)


class BebopClient:
    """POSTs a sell-token / buy-token request and returns the firm quote"""

    def __init__(
        self,
        api_url: str = "https://api.bebop.xyz",
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_quote(
        self,
        *,
        chain_slug: str,
        sell_token: str,
        sell_amount: int,
        buy_token: str,
        taker: str,
    ) -> Dict[str, Any]:
        body = {
            "sellTokens": [{"token": sell_token, "amount": str(sell_amount)}],
            "buyTokens": [{"token": buy_token, "proportion": 1}],
            "takerAddress": taker,
        }
        resp = self.session.post(
            f"{self.api_url}/{chain_slug}/v1/quote",
            json=body,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        if resp.status_code != 200:
            raise AdapterFailure(f"Bebop quote returned HTTP {resp.status_code}")

        data = resp.json()
        quote = data.get("quote") if isinstance(data, dict) else None
        if not quote:
            raise AdapterFailure(f"Bebop response has no quote: {str(data)[:200]}")
        return quote
