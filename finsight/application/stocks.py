"""
Stock hub: quotes, search, price history, comparison and market indices.

Live numbers come from the market data service. When it is unreachable
every endpoint still answers, with generated figures flagged cached=True.
Ticker search runs against a fixed universe of NSE listings first and
falls back to asking the AI service for a ticker.
"""
import logging
import random
import re
import uuid
from datetime import timedelta

from finsight.application.access import AuthenticatedUser
from finsight.application.errors import ValidationError
from finsight.infrastructure.ai_gateway.client import AIGatewayClient
from finsight.infrastructure.market_data.client import MarketDataClient, MarketDataError
from finsight.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

GENERATED_PRICE_NOTE = "Using generated data. The market data service is unavailable."

PERIOD_DAYS = {
    "1d": 1,
    "5d": 5,
    "1mo": 30,
    "3mo": 90,
    "6mo": 180,
    "1y": 365,
    "5y": 365 * 5,
}
DEFAULT_PERIOD = "1mo"
MAX_HISTORY_POINTS = 100
MIN_COMPARE = 2
MAX_COMPARE = 5
SEARCH_BROWSE_LIMIT = 20
SEARCH_RESULT_LIMIT = 10

NSE_TICKER = re.compile(r"[A-Z&-]+\.NS")

STOCK_UNIVERSE = [
    # Banking & finance
    {"ticker": "HDFCBANK.NS", "name": "HDFC Bank", "sector": "Banking", "exchange": "NSE"},
    {"ticker": "ICICIBANK.NS", "name": "ICICI Bank", "sector": "Banking", "exchange": "NSE"},
    {"ticker": "KOTAKBANK.NS", "name": "Kotak Mahindra Bank", "sector": "Banking", "exchange": "NSE"},
    {"ticker": "AXISBANK.NS", "name": "Axis Bank", "sector": "Banking", "exchange": "NSE"},
    {"ticker": "SBIN.NS", "name": "State Bank of India", "sector": "Banking", "exchange": "NSE"},
    {"ticker": "BAJFINANCE.NS", "name": "Bajaj Finance", "sector": "Finance", "exchange": "NSE"},
    # IT services
    {"ticker": "TCS.NS", "name": "Tata Consultancy Services", "sector": "IT", "exchange": "NSE"},
    {"ticker": "INFY.NS", "name": "Infosys", "sector": "IT", "exchange": "NSE"},
    {"ticker": "WIPRO.NS", "name": "Wipro", "sector": "IT", "exchange": "NSE"},
    {"ticker": "HCLTECH.NS", "name": "HCL Technologies", "sector": "IT", "exchange": "NSE"},
    {"ticker": "TECHM.NS", "name": "Tech Mahindra", "sector": "IT", "exchange": "NSE"},
    # Conglomerates & industry
    {"ticker": "RELIANCE.NS", "name": "Reliance Industries", "sector": "Conglomerate", "exchange": "NSE"},
    {"ticker": "LT.NS", "name": "Larsen & Toubro", "sector": "Engineering", "exchange": "NSE"},
    {"ticker": "ADANIPORTS.NS", "name": "Adani Ports", "sector": "Infrastructure", "exchange": "NSE"},
    # Automobiles
    {"ticker": "TATAMOTORS.NS", "name": "Tata Motors", "sector": "Automobiles", "exchange": "NSE"},
    {"ticker": "M&M.NS", "name": "Mahindra & Mahindra", "sector": "Automobiles", "exchange": "NSE"},
    {"ticker": "MARUTI.NS", "name": "Maruti Suzuki", "sector": "Automobiles", "exchange": "NSE"},
    # Consumer
    {"ticker": "BHARTIARTL.NS", "name": "Bharti Airtel", "sector": "Telecom", "exchange": "NSE"},
    {"ticker": "HINDUNILVR.NS", "name": "Hindustan Unilever", "sector": "FMCG", "exchange": "NSE"},
    {"ticker": "ITC.NS", "name": "ITC Limited", "sector": "FMCG", "exchange": "NSE"},
    {"ticker": "TITAN.NS", "name": "Titan Company", "sector": "Consumer Durables", "exchange": "NSE"},
    # Pharma
    {"ticker": "SUNPHARMA.NS", "name": "Sun Pharmaceutical", "sector": "Pharmaceuticals", "exchange": "NSE"},
    {"ticker": "CIPLA.NS", "name": "Cipla", "sector": "Pharmaceuticals", "exchange": "NSE"},
    # Metals & energy
    {"ticker": "TATASTEEL.NS", "name": "Tata Steel", "sector": "Metals", "exchange": "NSE"},
    {"ticker": "COALINDIA.NS", "name": "Coal India", "sector": "Mining", "exchange": "NSE"},
    {"ticker": "NTPC.NS", "name": "NTPC Limited", "sector": "Power", "exchange": "NSE"},
    {"ticker": "ONGC.NS", "name": "Oil & Natural Gas Corporation", "sector": "Oil & Gas", "exchange": "NSE"},
    # New-age
    {"ticker": "ZOMATO.NS", "name": "Zomato", "sector": "Food Tech", "exchange": "NSE"},
    {"ticker": "PAYTM.NS", "name": "Paytm", "sector": "FinTech", "exchange": "NSE"},
]

MARKET_INDICES = [
    {"ticker": "^NSEI", "name": "NIFTY 50", "market": "India", "basePrice": 19500},
    {"ticker": "^BSESN", "name": "SENSEX", "market": "India", "basePrice": 65000},
    {"ticker": "^NSEBANK", "name": "NIFTY BANK", "market": "India", "basePrice": 43000},
    {"ticker": "^DJI", "name": "DOW JONES", "market": "US", "basePrice": 38000},
    {"ticker": "^GSPC", "name": "S&P 500", "market": "US", "basePrice": 5000},
    {"ticker": "^IXIC", "name": "NASDAQ", "market": "US", "basePrice": 15500},
]


def _required_ticker(ticker: str | None) -> str:
    ticker = (ticker or "").strip().upper()
    if not ticker:
        raise ValidationError("Ticker symbol is required")
    return ticker


def company_name(ticker: str) -> str:
    return ticker.replace(".NS", "").replace(".BO", "")


class StockService:
    """
    Args:
        market: market data client; None means always generate
        gateway: AI service used for ticker lookup when the universe has no match
        rng: source of the generated figures
    """

    def __init__(
        self,
        market: MarketDataClient | None,
        gateway: AIGatewayClient | None = None,
        rng: random.Random | None = None,
        clock=utcnow,
    ):
        self.market = market
        self.gateway = gateway
        self.rng = rng or random.Random()
        self.clock = clock

    def _fetch(self, method: str, *args) -> dict | None:
        if self.market is None:
            return None
        try:
            return getattr(self.market, method)(*args)
        except MarketDataError:
            logger.warning("Market data unavailable for %s, generating figures", args[0], exc_info=True)
            return None

    # ── Quotes ──

    def price(self, ticker: str | None) -> tuple[dict, dict]:
        """Returns (quote, meta)"""
        ticker = _required_ticker(ticker)
        live = self._fetch("price", ticker)
        if live is not None:
            return live, {"cached": False}
        return self._generated_quote(ticker), {"cached": True, "note": GENERATED_PRICE_NOTE}

    def _generated_quote(self, ticker: str) -> dict:
        base = self.rng.uniform(500, 2500)
        change = (self.rng.random() - 0.5) * 100
        return {
            "ticker": ticker,
            "company_name": company_name(ticker),
            "current_price": round(base, 2),
            "previous_close": round(base - change, 2),
            "day_change": round(change, 2),
            "day_change_percent": round(change / base * 100, 2),
            "day_high": round(base + self.rng.random() * 50, 2),
            "day_low": round(base - self.rng.random() * 50, 2),
            "volume": self.rng.randint(1_000_000, 11_000_000),
            "market_cap": self.rng.randint(100_000_000_000, 600_000_000_000),
            "sector": "Technology",
            "industry": "Software",
        }

    # ── History ──

    def historical(self, ticker: str | None, period: str | None = None) -> tuple[dict, dict]:
        ticker = _required_ticker(ticker)
        period = period or DEFAULT_PERIOD
        if period not in PERIOD_DAYS:
            raise ValidationError(f"Invalid period. Valid options: {', '.join(PERIOD_DAYS)}")

        live = self._fetch("historical", ticker, period)
        if live is not None:
            return live, {"cached": False}
        return self._generated_history(ticker, period), {"cached": True, "note": GENERATED_PRICE_NOTE}

    def _generated_history(self, ticker: str, period: str) -> dict:
        """Random walk with a slight upward drift, one point per day, never below half the start"""
        points = min(PERIOD_DAYS[period], MAX_HISTORY_POINTS)
        base = self.rng.uniform(500, 2500)
        today = self.clock().date()

        price = base
        series = []
        for days_back in range(points - 1, -1, -1):
            price = max(price + (self.rng.random() - 0.48) * base * 0.03, base * 0.5)
            series.append({
                "date": (today - timedelta(days=days_back)).isoformat(),
                "open": round(price - (self.rng.random() - 0.5) * 10, 2),
                "high": round(price + self.rng.random() * base * 0.02, 2),
                "low": round(price - self.rng.random() * base * 0.02, 2),
                "close": round(price, 2),
                "volume": self.rng.randint(500_000, 5_500_000),
            })

        start, latest = series[0]["close"], series[-1]["close"]
        return {
            "ticker": ticker,
            "period": period,
            "data": series,
            "latest_price": latest,
            "period_start_price": start,
            "period_return_pct": round((latest - start) / start * 100, 2),
            "period_high": max(p["high"] for p in series),
            "period_low": min(p["low"] for p in series),
            "data_points": len(series),
        }

    # ── Comparison ──

    def compare(self, tickers: str | None) -> dict:
        if not tickers:
            raise ValidationError("Ticker symbols are required")
        symbols = [t.strip().upper() for t in tickers.split(",") if t.strip()]
        if len(symbols) < MIN_COMPARE:
            raise ValidationError("At least 2 tickers required for comparison")
        if len(symbols) > MAX_COMPARE:
            raise ValidationError("Maximum 5 stocks can be compared")

        comparison = []
        for ticker in symbols:
            live = self._fetch("fundamentals", ticker)
            if live is not None:
                comparison.append({"ticker": ticker, **live, "cached": False})
            else:
                comparison.append(self._generated_fundamentals(ticker))

        return {
            "comparison": comparison,
            "tickers": symbols,
            "timestamp": isoformat(self.clock()),
        }

    def _generated_fundamentals(self, ticker: str) -> dict:
        base = self.rng.uniform(500, 2500)
        return {
            "ticker": ticker,
            "company_name": company_name(ticker),
            "current_price": round(base, 2),
            "day_change_percent": round((self.rng.random() - 0.5) * 5, 2),
            "market_cap": self.rng.randint(50_000_000_000, 550_000_000_000),
            "pe_ratio": round(self.rng.uniform(10, 50), 2),
            "pb_ratio": round(self.rng.uniform(1, 6), 2),
            "dividend_yield": round(self.rng.uniform(0, 4), 2),
            "eps": round(self.rng.uniform(10, 110), 2),
            "roe": round(self.rng.uniform(5, 35), 2),
            "debt_to_equity": round(self.rng.uniform(0, 2), 2),
            "volume": self.rng.randint(1_000_000, 11_000_000),
            "fifty_two_week_high": round(base * 1.3, 2),
            "fifty_two_week_low": round(base * 0.7, 2),
            "cached": True,
        }

    # ── Indices ──

    def market_indices(self) -> dict:
        indices = []
        for index in MARKET_INDICES:
            listing = {"ticker": index["ticker"], "name": index["name"], "market": index["market"]}
            live = self._fetch("price", index["ticker"])
            if live is not None:
                indices.append({**listing, **live, "cached": False})
            else:
                indices.append({**listing, **self._generated_index(index["basePrice"]), "cached": True})
        return {"indices": indices, "timestamp": isoformat(self.clock())}

    def _generated_index(self, base: float) -> dict:
        change = (self.rng.random() - 0.5) * base * 0.02  # within 1% either way
        return {
            "current_price": round(base, 2),
            "previous_close": round(base - change, 2),
            "day_change": round(change, 2),
            "day_change_percent": round(change / base * 100, 2),
            "day_high": round(base + abs(change) * 0.5, 2),
            "day_low": round(base - abs(change) * 0.5, 2),
        }

    # ── Search ──

    def search(self, user: AuthenticatedUser, query: str | None) -> dict:
        """
        Empty query browses the universe. Otherwise name, ticker and sector
        are matched case-insensitively; with no match the AI service is
        asked for an NSE ticker.
        """
        raw = (query or "").strip()
        query = raw.lower()
        if not query:
            return {"results": STOCK_UNIVERSE[:SEARCH_BROWSE_LIMIT], "total": len(STOCK_UNIVERSE), "source": "database"}

        matches = [
            stock for stock in STOCK_UNIVERSE
            if query in stock["name"].lower() or query in stock["ticker"].lower() or query in stock["sector"].lower()
        ]
        if matches:
            return {"results": matches[:SEARCH_RESULT_LIMIT], "total": len(matches), "source": "database"}

        found = self._ask_for_ticker(user, raw)
        if found is not None:
            return {"results": [found], "total": 1, "source": "ai"}
        return {"results": [], "total": 0, "source": None, "message": f'No stocks found for "{raw}"'}

    def _ask_for_ticker(self, user: AuthenticatedUser, company: str) -> dict | None:
        if self.gateway is None:
            return None
        reply = self.gateway.chat({
            "message": (
                f"Extract the NSE ticker symbol for: {company}. Reply ONLY with the ticker in format "
                "SYMBOL.NS (e.g., TCS.NS, RELIANCE.NS). If not found, reply \"NOT_FOUND\"."
            ),
            "sessionId": f"stock-search-{uuid.uuid4()}",
            "userId": user.user_id,
        })
        match = NSE_TICKER.search(str(reply.get("response") or ""))
        if match is None:
            return None
        return {"ticker": match.group(0), "name": company, "sector": "Unknown", "exchange": "NSE"}


def get_stock_service() -> StockService:
    from finsight.infrastructure.ai_gateway.client import get_ai_gateway
    from finsight.infrastructure.market_data.client import get_market_data_client

    return StockService(get_market_data_client(), get_ai_gateway())
