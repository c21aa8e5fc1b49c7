"""
Tests for the stock hub (live market data with generated fallbacks)
"""
import random
from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

from finsight.application.errors import ValidationError
from finsight.application.stocks import STOCK_UNIVERSE, StockService
from finsight.infrastructure.ai_gateway.client import FALLBACK_CHAT_RESPONSE
from finsight.infrastructure.market_data.client import MarketDataClient, MarketDataError

NOW = datetime(2026, 5, 4, 9, 30)


def clock():
    return NOW


@pytest.fixture
def market():
    return Mock(spec=MarketDataClient)


@pytest.fixture
def offline():
    """No market data service configured"""
    return StockService(None, rng=random.Random(3), clock=clock)


# ============================================================================
# Quotes
# ============================================================================


class TestPrice:
    def test_live_quote_is_passed_through(self, market):
        market.price.return_value = {"ticker": "TCS.NS", "current_price": 3500.0}

        quote, meta = StockService(market, clock=clock).price(" tcs.ns ")

        market.price.assert_called_once_with("TCS.NS")
        assert quote == {"ticker": "TCS.NS", "current_price": 3500.0}
        assert meta == {"cached": False}

    def test_unreachable_service_generates_quote(self, market):
        market.price.side_effect = MarketDataError("connection refused")

        quote, meta = StockService(market, rng=random.Random(3), clock=clock).price("INFY.NS")

        assert meta["cached"] is True
        assert "market data service is unavailable" in meta["note"]
        assert quote["ticker"] == "INFY.NS"
        assert quote["company_name"] == "INFY"
        assert quote["day_low"] <= quote["current_price"] <= quote["day_high"]

    def test_same_seed_same_figures(self):
        first, _ = StockService(None, rng=random.Random(11)).price("WIPRO.NS")
        second, _ = StockService(None, rng=random.Random(11)).price("WIPRO.NS")
        assert first == second

    @pytest.mark.parametrize("ticker", [None, "", "   "])
    def test_ticker_required(self, offline, ticker):
        with pytest.raises(ValidationError, match="Ticker symbol is required"):
            offline.price(ticker)


# ============================================================================
# History
# ============================================================================


class TestHistorical:
    def test_generated_series_ends_today(self, offline):
        history, meta = offline.historical("TCS.NS", "3mo")

        assert meta["cached"] is True
        assert history["data_points"] == 90
        dates = [p["date"] for p in history["data"]]
        assert dates[-1] == NOW.date().isoformat()
        assert dates[0] == (NOW.date() - timedelta(days=89)).isoformat()
        assert history["latest_price"] == history["data"][-1]["close"]
        assert history["period_high"] == max(p["high"] for p in history["data"])

    @pytest.mark.parametrize("period, points", [(None, 30), ("1d", 1), ("5y", 100)])
    def test_points_per_period(self, offline, period, points):
        history, _ = offline.historical("TCS.NS", period)
        assert history["data_points"] == points
        assert history["period"] == (period or "1mo")

    def test_invalid_period(self, offline):
        with pytest.raises(ValidationError, match="Invalid period"):
            offline.historical("TCS.NS", "2w")

    def test_live_history_requests_the_period(self, market):
        market.historical.return_value = {"ticker": "TCS.NS", "data": []}

        history, meta = StockService(market).historical("TCS.NS", "1y")

        market.historical.assert_called_once_with("TCS.NS", "1y")
        assert meta == {"cached": False}


# ============================================================================
# Comparison and indices
# ============================================================================


class TestCompare:
    @pytest.mark.parametrize("tickers, message", [
        (None, "Ticker symbols are required"),
        ("TCS.NS", "At least 2 tickers"),
        ("TCS.NS, ,", "At least 2 tickers"),
        ("A,B,C,D,E,F", "Maximum 5 stocks"),
    ])
    def test_validation(self, offline, tickers, message):
        with pytest.raises(ValidationError, match=message):
            offline.compare(tickers)

    def test_mixes_live_and_generated(self, market):
        market.fundamentals.side_effect = [{"pe_ratio": 30.1}, MarketDataError("timeout")]

        result = StockService(market, rng=random.Random(3), clock=clock).compare(" tcs.ns , infy.ns")

        assert result["tickers"] == ["TCS.NS", "INFY.NS"]
        assert result["comparison"][0] == {"ticker": "TCS.NS", "pe_ratio": 30.1, "cached": False}
        assert result["comparison"][1]["cached"] is True
        assert result["comparison"][1]["ticker"] == "INFY.NS"
        assert "pe_ratio" in result["comparison"][1]
        assert result["timestamp"] == "2026-05-04T09:30:00Z"


class TestMarketIndices:
    def test_generated_indices_stay_near_base(self, offline):
        result = offline.market_indices()

        names = [i["name"] for i in result["indices"]]
        assert names == ["NIFTY 50", "SENSEX", "NIFTY BANK", "DOW JONES", "S&P 500", "NASDAQ"]
        nifty = result["indices"][0]
        assert nifty["current_price"] == 19500
        assert nifty["cached"] is True
        assert all(abs(i["day_change_percent"]) <= 1 for i in result["indices"])

    def test_live_quotes_keep_listing(self, market):
        market.price.return_value = {"current_price": 101.5}

        result = StockService(market).market_indices()

        assert market.price.call_count == 6
        assert result["indices"][4] == {
            "ticker": "^GSPC", "name": "S&P 500", "market": "US", "current_price": 101.5, "cached": False,
        }


# ============================================================================
# Search
# ============================================================================


class TestSearch:
    def test_empty_query_browses(self, offline, customer):
        result = offline.search(customer, "")
        assert len(result["results"]) == 20
        assert result["total"] == len(STOCK_UNIVERSE)

    def test_matches_name_ticker_and_sector(self, offline, customer):
        result = offline.search(customer, "Bank")

        assert [s["ticker"] for s in result["results"]] == [
            "HDFCBANK.NS", "ICICIBANK.NS", "KOTAKBANK.NS", "AXISBANK.NS", "SBIN.NS",
        ]
        assert result["source"] == "database"

    def test_unknown_company_asks_ai_for_ticker(self, customer, gateway):
        gateway.chat.return_value = {"response": "The ticker is NYKAA.NS", "confidence": 0.9}

        result = StockService(None, gateway).search(customer, "Nykaa")

        assert result == {
            "results": [{"ticker": "NYKAA.NS", "name": "Nykaa", "sector": "Unknown", "exchange": "NSE"}],
            "total": 1,
            "source": "ai",
        }
        payload = gateway.chat.call_args[0][0]
        assert "Nykaa" in payload["message"]
        assert payload["userId"] == customer.user_id

    def test_no_match_anywhere(self, customer, gateway):
        gateway.chat.return_value = {"response": FALLBACK_CHAT_RESPONSE, "confidence": 0}

        result = StockService(None, gateway).search(customer, "Zzyzx")

        assert result["results"] == []
        assert result["total"] == 0
        assert result["message"] == 'No stocks found for "Zzyzx"'

    def test_without_ai_service(self, offline, customer):
        assert offline.search(customer, "Zzyzx")["total"] == 0
