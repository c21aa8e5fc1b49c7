"""
Tests for the stock hub and expense analysis endpoints
"""
import pytest

from finsight.infrastructure.ai_gateway.client import AIGatewayError


@pytest.fixture
def headers(customer_user, auth_headers):
    return auth_headers(customer_user)


class TestStocksApi:
    def test_price_without_market_service(self, client, headers):
        response = client.get("/api/stocks/price", headers=headers, params={"ticker": "tcs.ns"})

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["ticker"] == "TCS.NS"
        assert body["meta"]["cached"] is True

    def test_missing_ticker(self, client, headers):
        response = client.get("/api/stocks/price", headers=headers)
        assert response.status_code == 400
        assert response.json() == {
            "success": False, "error": "Ticker symbol is required", "code": "validation_error",
        }

    def test_history_and_compare(self, client, headers):
        history = client.get("/api/stocks/historical", headers=headers, params={"ticker": "INFY.NS", "period": "5d"})
        assert history.json()["data"]["data_points"] == 5

        comparison = client.get("/api/stocks/compare", headers=headers, params={"tickers": "TCS.NS,INFY.NS"})
        assert [c["ticker"] for c in comparison.json()["data"]["comparison"]] == ["TCS.NS", "INFY.NS"]

        too_many = client.get("/api/stocks/compare", headers=headers, params={"tickers": "A,B,C,D,E,F"})
        assert too_many.status_code == 400

    def test_search_and_indices(self, client, headers):
        search = client.get("/api/stocks/search", headers=headers, params={"q": "infosys"})
        assert search.json()["data"]["results"][0]["ticker"] == "INFY.NS"

        indices = client.get("/api/stocks/market-indices", headers=headers).json()["data"]["indices"]
        assert len(indices) == 6

    def test_requires_auth(self, client):
        assert client.get("/api/stocks/market-indices").status_code == 401


class TestExpensesApi:
    def test_upload_then_list(self, client, headers, gateway):
        gateway.analyze_expenses.return_value = {
            "success": True, "analysis_report": "Rent dominates", "total_expenses": 2100,
            "insights": "", "recommendations": "Review subscriptions",
        }

        created = client.post(
            "/api/expenses", headers=headers, files={"file": ("april.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert created.status_code == 201
        assert created.json()["message"] == "Expense analysis completed successfully"
        assert created.json()["data"]["total_expenses"] == 2100

        listing = client.get("/api/expenses", headers=headers).json()["data"]
        assert [r["document_name"] for r in listing] == ["april.pdf"]

    def test_missing_file(self, client, headers, gateway):
        response = client.post("/api/expenses", headers=headers, data={"note": "forgot the file"})

        assert response.status_code == 400
        assert response.json()["error"] == "No file uploaded"
        gateway.analyze_expenses.assert_not_called()

    def test_ai_outage(self, client, headers, gateway):
        gateway.analyze_expenses.side_effect = AIGatewayError("down")

        response = client.post(
            "/api/expenses", headers=headers, files={"file": ("april.csv", b"a,b", "text/csv")},
        )

        assert response.status_code == 503
        assert response.json()["code"] == "service_unavailable"
        assert client.get("/api/expenses", headers=headers).json()["data"] == []
