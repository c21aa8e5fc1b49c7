"""
Personalized financial news with a process-local cache and an hourly
upstream request budget.

Both the cache and the budget take an injected clock (seconds, like
time.time) so expiry and window resets are testable without sleeping.
FastAPI serves sync routes from a thread pool, hence the locks.
"""
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, List

from finsight.infrastructure.news.client import NewsAPIClient, NewsClientError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

MAX_ARTICLES = 12
CONTEXT_ARTICLES = 5

CATEGORY_QUERIES = {
    "general": "finance OR financial OR investment OR economy",
    "markets": "stock market OR NYSE OR NASDAQ OR trading OR securities",
    "crypto": "cryptocurrency OR bitcoin OR ethereum OR crypto OR blockchain",
    "economy": "economy OR GDP OR inflation OR federal reserve OR interest rates",
    "banking": "banking OR banks OR loans OR mortgage OR credit",
}

PORTFOLIO_QUERIES = {
    "INDEX_FUND": "index fund OR ETF OR S&P 500",
    "REAL_ESTATE": "real estate OR REIT OR property investment",
    "SIP": "mutual fund OR SIP OR systematic investment",
    "GOVERNMENT_BOND": "government bonds OR treasury OR municipal bonds",
}

PORTFOLIO_KEYWORDS = {
    "INDEX_FUND": ("index", "etf", "s&p"),
    "REAL_ESTATE": ("real estate", "reit", "property"),
    "SIP": ("mutual fund", "sip"),
    "GOVERNMENT_BOND": ("bond", "treasury"),
}

HIGH_IMPACT_TERMS = (
    "fed", "federal reserve", "interest rate", "inflation", "gdp",
    "market crash", "bull market", "bear market",
)


# ── Cache ──

@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    fetched_at: float


class NewsCache:
    """
    Time-boxed key/value cache. Entries go stale after ttl_seconds (checked
    lazily on read) and are replaced wholesale on refresh. Stale entries stay
    available to get_stale() until evicted by capacity.
    """

    def __init__(self, ttl_seconds: float = 3600, max_entries: int = 256, clock: Clock = time.time):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.fetched_at < self.ttl_seconds

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not self.is_fresh(entry):
            return None
        return entry

    def get_stale(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def any_entry(self) -> CacheEntry | None:
        """Most recently stored entry, fresh or not"""
        with self._lock:
            if not self._entries:
                return None
            return next(reversed(self._entries.values()))

    def put(self, key: str, payload: Any) -> CacheEntry:
        entry = CacheEntry(key=key, payload=payload, fetched_at=self.clock())
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = entry
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        return entry


class RequestBudget:
    """At most `limit` upstream calls per window; the window resets lazily"""

    def __init__(self, limit: int = 90, window_seconds: float = 3600, clock: Clock = time.time):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self.used = 0
        self.reset_at = clock() + window_seconds
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        with self._lock:
            now = self.clock()
            if now > self.reset_at:
                self.used = 0
                self.reset_at = now + self.window_seconds
                logger.info("News request budget reset")
            if self.used >= self.limit:
                return False
            self.used += 1
            return True


# ── Article shaping (pure) ──

def build_search_query(category: str, search: str, portfolio: List[str]) -> str:
    query = CATEGORY_QUERIES.get(category, CATEGORY_QUERIES["general"])
    if portfolio:
        terms = " OR ".join(PORTFOLIO_QUERIES.get(item, item) for item in portfolio)
        query += f" OR ({terms})"
    if search.strip():
        query += f" AND ({search.strip()})"
    return query


def relevance_score(article: dict, portfolio: List[str]) -> int:
    text = f"{article.get('title') or ''} {article.get('description') or ''}".lower()
    score = 1
    for item in portfolio:
        keywords = PORTFOLIO_KEYWORDS.get(item, ())
        if any(k in text for k in keywords):
            score += 2
    for term in HIGH_IMPACT_TERMS:
        if term in text:
            score += 1
    return score


def process_articles(raw: List[dict], category: str, portfolio: List[str], fetched_at: float) -> List[dict]:
    """Drop removed/empty articles, score by portfolio relevance, keep the top 12"""
    usable = [
        a for a in raw
        if a.get("title") and a.get("description") and a.get("title") != "[Removed]"
    ]
    articles = [
        {
            "id": f"news-{int(fetched_at * 1000)}-{index}",
            "title": a["title"],
            "description": a["description"],
            "url": a.get("url"),
            "urlToImage": a.get("urlToImage"),
            "publishedAt": a.get("publishedAt"),
            "source": a.get("source") or {"id": None, "name": "Unknown"},
            "author": a.get("author"),
            "category": category,
            "relevanceScore": relevance_score(a, portfolio),
        }
        for index, a in enumerate(usable)
    ]
    articles.sort(key=lambda a: a["relevanceScore"], reverse=True)
    return articles[:MAX_ARTICLES]


def placeholder_articles(category: str, portfolio: List[str], now: float) -> List[dict]:
    """Static articles served when the upstream is unavailable or not configured"""
    base = datetime.fromtimestamp(now, tz=timezone.utc)

    def published(hours: int) -> str:
        return (base - timedelta(hours=hours)).strftime("%Y-%m-%dT%H:%M:%SZ")

    def boosted(item: str) -> int:
        return 6 if item in portfolio else 3

    articles = [
        {
            "id": "mock-1",
            "title": "Federal Reserve Signals Potential Rate Changes Ahead",
            "description": "The Federal Reserve hints at upcoming monetary policy adjustments that could significantly impact investment portfolios and economic growth.",
            "url": "https://example.com/fed-rates",
            "publishedAt": published(2),
            "source": {"id": "reuters", "name": "Reuters"},
            "author": "Financial Correspondent",
            "relevanceScore": 5,
        },
        {
            "id": "mock-2",
            "title": "Stock Market Reaches New Heights Amid Economic Optimism",
            "description": "Major indices post significant gains as investors show renewed confidence in economic recovery and corporate earnings growth.",
            "url": "https://example.com/market-gains",
            "publishedAt": published(4),
            "source": {"id": "bloomberg", "name": "Bloomberg"},
            "author": "Market Analysis Team",
            "relevanceScore": 4,
        },
        {
            "id": "mock-3",
            "title": "Real Estate Investment Trusts Show Strong Performance",
            "description": "REITs demonstrate resilient performance as real estate markets stabilize and rental income streams remain robust.",
            "url": "https://example.com/reit-performance",
            "publishedAt": published(6),
            "source": {"id": "cnbc", "name": "CNBC"},
            "author": "Real Estate Analyst",
            "relevanceScore": boosted("REAL_ESTATE"),
        },
        {
            "id": "mock-4",
            "title": "Government Bond Yields Rise on Economic Growth Expectations",
            "description": "Treasury yields climb as investors anticipate stronger economic growth and potential shifts in monetary policy direction.",
            "url": "https://example.com/bond-yields",
            "publishedAt": published(8),
            "source": {"id": "financial-times", "name": "Financial Times"},
            "author": "Bond Market Specialist",
            "relevanceScore": boosted("GOVERNMENT_BOND"),
        },
        {
            "id": "mock-5",
            "title": "Index Funds Continue to Attract Record Inflows",
            "description": "Passive investing strategies gain momentum as index funds and ETFs see unprecedented investor interest and capital flows.",
            "url": "https://example.com/index-funds",
            "publishedAt": published(10),
            "source": {"id": "reuters", "name": "Reuters"},
            "author": "Investment Strategy Reporter",
            "relevanceScore": boosted("INDEX_FUND"),
        },
    ]
    for a in articles:
        a["category"] = category
        a["urlToImage"] = None
    articles.sort(key=lambda a: a["relevanceScore"], reverse=True)
    return articles


# ── Service ──

class NewsService:
    def __init__(
        self,
        cache: NewsCache,
        budget: RequestBudget,
        client: NewsAPIClient | None = None,
        clock: Clock = time.time,
    ):
        self.cache = cache
        self.budget = budget
        self.client = client
        self.clock = clock

    @staticmethod
    def cache_key(category: str, search: str, page: int, portfolio: List[str]) -> str:
        return f"{category}_{search}_{page}_{','.join(portfolio)}"

    def get_news(
        self,
        portfolio: List[str],
        category: str = "general",
        search: str = "",
        page: int = 1,
    ) -> dict:
        key = self.cache_key(category, search, page, portfolio)

        entry = self.cache.get(key)
        if entry is not None:
            age_minutes = int((self.clock() - entry.fetched_at) // 60)
            return {
                "articles": entry.payload,
                "totalResults": len(entry.payload),
                "userPortfolio": portfolio,
                "cached": True,
                "cacheAge": f"{age_minutes} minutes",
            }

        articles, cacheable = self._fetch(key, category, search, page, portfolio)
        if cacheable:
            self.cache.put(key, articles)

        return {
            "articles": articles,
            "totalResults": len(articles),
            "userPortfolio": portfolio,
            "cached": False,
        }

    def _fetch(self, key: str, category: str, search: str, page: int, portfolio: List[str]):
        """Returns (articles, cacheable)"""
        now = self.clock()
        if self.client is None:
            logger.warning("NEWS_API_KEY not configured, using placeholder articles")
            return placeholder_articles(category, portfolio, now), True

        if not self.budget.try_acquire():
            logger.warning("News request budget exhausted, serving cached or placeholder articles")
            stale = self.cache.get_stale(key) or self.cache.any_entry()
            if stale is not None:
                return stale.payload, False
            return placeholder_articles(category, portfolio, now), True

        query = build_search_query(category, search, portfolio)
        logger.info("NewsAPI request %d/%d", self.budget.used, self.budget.limit)
        try:
            raw = self.client.search(query, page=page)
        except NewsClientError:
            logger.exception("NewsAPI fetch failed, using placeholder articles")
            return placeholder_articles(category, portfolio, now), True
        return process_articles(raw, category, portfolio, now), True

    def context_for_chat(self, portfolio: List[str]) -> List[dict]:
        """Condensed recent articles handed to the AI service as chat context"""
        articles = self.get_news(portfolio)["articles"][:CONTEXT_ARTICLES]
        return [
            {
                "title": a["title"],
                "summary": a.get("description") or "",
                "relevance": "high" if a["relevanceScore"] >= 5 else "medium" if a["relevanceScore"] >= 3 else "low",
                "timestamp": a.get("publishedAt"),
                "source": (a.get("source") or {}).get("name"),
            }
            for a in articles
        ]


@lru_cache
def get_news_service() -> NewsService:
    """Process-wide news service (one cache and budget per process)"""
    from finsight.config import get_settings

    settings = get_settings()
    client = None
    if settings.NEWS_API_KEY:
        client = NewsAPIClient(settings.NEWS_API_KEY, settings.NEWS_API_URL, timeout=settings.NEWS_API_TIMEOUT)
    return NewsService(
        cache=NewsCache(settings.NEWS_CACHE_TTL_SECONDS, settings.NEWS_CACHE_MAX_ENTRIES),
        budget=RequestBudget(settings.NEWS_RATE_LIMIT_PER_HOUR),
        client=client,
    )
