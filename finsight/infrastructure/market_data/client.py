"""
Market data service client (quotes, price history, fundamentals)

The service answers {"data": {...}} or the bare object. Callers treat
every MarketDataError as "use generated data".
"""
import logging

import requests

logger = logging.getLogger(__name__)


class MarketDataError(Exception):
    pass


class MarketDataClient:
    def __init__(self, base_url: str, timeout: float = 10.0, http=requests):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http

    def _get(self, path: str, params: dict) -> dict:
        try:
            resp = self.http.get(
                f"{self.base_url}{path}",
                params=params,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise MarketDataError(f"Market data request to {path} failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise MarketDataError(f"Market data error on {path}: HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as e:
            raise MarketDataError(f"Market data returned invalid JSON on {path}") from e

        if not isinstance(body, dict):
            raise MarketDataError(f"Market data returned unexpected payload on {path}")
        return body["data"] if isinstance(body.get("data"), dict) else body

    def price(self, ticker: str) -> dict:
        return self._get("/api/stock/price", {"ticker": ticker})

    def historical(self, ticker: str, period: str) -> dict:
        return self._get("/api/stock/historical", {"ticker": ticker, "period": period})

    def fundamentals(self, ticker: str) -> dict:
        return self._get("/api/stock/fundamentals", {"ticker": ticker})


def get_market_data_client() -> MarketDataClient:
    from finsight.config import get_settings

    settings = get_settings()
    return MarketDataClient(settings.MARKET_DATA_URL, timeout=settings.MARKET_DATA_TIMEOUT)
