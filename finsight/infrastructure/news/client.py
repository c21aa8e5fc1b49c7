"""
NewsAPI (newsapi.org /v2/everything) client
"""
import logging

import requests

logger = logging.getLogger(__name__)


class NewsClientError(Exception):
    pass


class NewsAPIClient:
    def __init__(self, api_key: str, url: str = "https://newsapi.org/v2/everything", timeout: float = 10.0, http=requests):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self.http = http

    def search(self, query: str, page: int = 1, page_size: int = 20) -> list[dict]:
        """
        Raw articles for a query, newest first

        Raises:
            NewsClientError: network failure, non-2xx, bad payload
        """
        try:
            resp = self.http.get(
                self.url,
                params={
                    "q": query,
                    "language": "en",
                    "sortBy": "publishedAt",
                    "pageSize": str(page_size),
                    "page": str(page),
                },
                headers={"X-API-Key": self.api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NewsClientError(f"NewsAPI request failed: {e}") from e

        if resp.status_code != 200:
            raise NewsClientError(f"NewsAPI error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise NewsClientError("NewsAPI returned invalid JSON") from e

        articles = data.get("articles") if isinstance(data, dict) else None
        if not isinstance(articles, list):
            raise NewsClientError("NewsAPI payload has no articles list")
        return articles
