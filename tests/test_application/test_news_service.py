"""
Tests for the news cache, request budget and news service
"""
from unittest.mock import Mock

import pytest

from finsight.application.news import (
    NewsCache, NewsService, RequestBudget, build_search_query, placeholder_articles,
    process_articles, relevance_score,
)
from finsight.infrastructure.news.client import NewsAPIClient, NewsClientError


class Ticker:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def _raw(title, description="Markets move", **extra):
    return {"title": title, "description": description, "url": "https://news.example/" + title, **extra}


@pytest.fixture
def ticker():
    return Ticker()


@pytest.fixture
def client():
    mock = Mock(spec=NewsAPIClient)
    mock.search.return_value = [_raw("Stocks rally"), _raw("Bonds slip")]
    return mock


@pytest.fixture
def service(ticker, client):
    return NewsService(
        NewsCache(ttl_seconds=3600, clock=ticker),
        RequestBudget(limit=2, window_seconds=3600, clock=ticker),
        client=client,
        clock=ticker,
    )


# ============================================================================
# Cache and budget
# ============================================================================


class TestNewsCache:
    def test_fresh_then_stale(self, ticker):
        cache = NewsCache(ttl_seconds=60, clock=ticker)
        cache.put("k", [1])
        assert cache.get("k").payload == [1]

        ticker.now += 61
        assert cache.get("k") is None
        assert cache.get_stale("k").payload == [1]

    def test_capacity_evicts_oldest(self, ticker):
        cache = NewsCache(max_entries=2, clock=ticker)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)

        assert len(cache) == 2
        assert cache.get_stale("a") is None
        assert cache.any_entry().payload == 3

    def test_max_entries_must_be_positive(self):
        with pytest.raises(ValueError):
            NewsCache(max_entries=0)


def test_budget_window_resets(ticker):
    budget = RequestBudget(limit=1, window_seconds=10, clock=ticker)
    assert budget.try_acquire()
    assert not budget.try_acquire()

    ticker.now += 11
    assert budget.try_acquire()
    assert budget.used == 1


# ============================================================================
# Pure shaping helpers
# ============================================================================


def test_search_query_includes_portfolio_and_search():
    query = build_search_query("general", " tesla ", ["REAL_ESTATE"])
    assert "OR (" in query
    assert query.endswith("AND (tesla)")


def test_relevance_rewards_portfolio_keywords():
    article = _raw("REIT prices climb", "Real estate rebounds")
    assert relevance_score(article, ["REAL_ESTATE"]) > relevance_score(article, [])


def test_process_articles_drops_removed_and_empty():
    raw = [_raw("[Removed]"), _raw("No body", description=""), _raw("Kept")]
    articles = process_articles(raw, "general", [], 1000.0)
    assert [a["title"] for a in articles] == ["Kept"]
    assert articles[0]["source"] == {"id": None, "name": "Unknown"}


def test_placeholders_boost_portfolio_categories():
    articles = placeholder_articles("general", ["INDEX_FUND"], 1000.0)
    assert articles[0]["id"] == "mock-5"
    assert all(a["category"] == "general" for a in articles)


# ============================================================================
# Service
# ============================================================================


class TestNewsService:
    def test_fresh_hit_is_identical_and_spends_no_budget(self, service, client, ticker):
        first = service.get_news([])
        ticker.now += 600
        second = service.get_news([])

        assert first["cached"] is False
        assert second["cached"] is True
        assert second["articles"] == first["articles"]
        assert second["cacheAge"] == "10 minutes"
        assert client.search.call_count == 1
        assert service.budget.used == 1

    def test_distinct_keys_fetch_separately(self, service, client):
        service.get_news([], category="stocks")
        service.get_news([], category="bonds")
        assert client.search.call_count == 2

    def test_exhausted_budget_serves_stale_copy_without_recaching(self, service, client, ticker):
        service.get_news([])
        ticker.now += 3601
        service.budget.used = service.budget.limit
        service.budget.reset_at = ticker.now + 100

        result = service.get_news([])

        assert result["cached"] is False
        assert [a["title"] for a in result["articles"]] == ["Stocks rally", "Bonds slip"]
        assert client.search.call_count == 1
        assert service.cache.get(service.cache_key("general", "", 1, [])) is None

    def test_exhausted_budget_with_empty_cache_serves_placeholders(self, service, client):
        service.budget.used = service.budget.limit
        result = service.get_news([])
        assert result["articles"][0]["id"].startswith("mock-")
        client.search.assert_not_called()

    def test_upstream_failure_serves_placeholders(self, service, client):
        client.search.side_effect = NewsClientError("boom")
        result = service.get_news([])
        assert len(result["articles"]) == 5

    def test_no_client_uses_placeholders(self, news_service):
        result = news_service.get_news(["GOVERNMENT_BOND"])
        assert result["articles"][0]["id"] == "mock-4"
        assert result["userPortfolio"] == ["GOVERNMENT_BOND"]

    def test_chat_context_is_condensed(self, news_service):
        context = news_service.context_for_chat([])
        assert len(context) <= 5
        assert set(context[0]) == {"title", "summary", "relevance", "timestamp", "source"}
        assert context[0]["relevance"] == "high"
