# services/market_data_service.py
from __future__ import annotations
import os

import requests

from models.market_data import MarketData
from utils.exceptions import DataUnavailable
from utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:5000").rstrip("/")
MARKET_DATA_URL = os.getenv("MARKET_DATA_URL", f"{API_BASE_URL}/api/pool/price-data")
HTTP_TIMEOUT_SECS = float(os.getenv("HTTP_TIMEOUT_SECS", "10"))


def split_pair(pair: str) -> tuple[str, str]:
    parts = [p.strip().upper() for p in (pair or "").split("/")]
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid pair {pair!r}; expected TOKEN_A/TOKEN_B")
    return parts[0], parts[1]


class MarketDataClient:
    """
    Price snapshot for a pair from the market data provider:
    ``GET <url>?tokenA=&tokenB=`` → ``{currentPrice, priceHistory, volume, rsi}``.
    No retries; a failure aborts the iteration.
    """

    def __init__(self, url: str | None = None, timeout: float | None = None,
                 session: requests.Session | None = None) -> None:
        self.url = url or MARKET_DATA_URL
        self.timeout = HTTP_TIMEOUT_SECS if timeout is None else timeout
        self.http = session or requests.Session()

    @log_function
    def fetch(self, pair: str) -> MarketData:
        token_a, token_b = split_pair(pair)
        try:
            r = self.http.get(self.url, params={"tokenA": token_a, "tokenB": token_b}, timeout=self.timeout)
            r.raise_for_status()
            body = r.json()
        except (requests.RequestException, ValueError) as e:
            raise DataUnavailable(f"Failed to fetch market data for {pair}: {e}", {"pair": pair}) from e

        if not isinstance(body, dict):
            raise DataUnavailable(f"Unexpected market data payload for {pair}", {"pair": pair})
        try:
            return MarketData.from_api(body)
        except (KeyError, TypeError, ValueError) as e:
            raise DataUnavailable(f"Malformed market data for {pair}: {e}", {"pair": pair}) from e
