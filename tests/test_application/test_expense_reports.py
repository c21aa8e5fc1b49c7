"""
Tests for expense analysis reports
"""
import base64
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from finsight.application.errors import ServiceUnavailableError
from finsight.application.expenses import (
    MAX_FILE_BYTES, AnalyzeExpensesUseCase, ExpenseValidationError, list_expense_reports,
)
from finsight.application.uploads import UploadedFile
from finsight.infrastructure.ai_gateway.client import AIGatewayError
from finsight.infrastructure.db.models import ExpenseAnalysisReport, FinancialGoal, InvestmentProduct

from conftest import identity, make_user

NOW = datetime(2026, 3, 1, 18, 0)

ANALYSIS = {
    "success": True,
    "analysis_report": "Dining is 30% of spending",
    "extracted_expenses": [{"category": "Dining", "amount": 420}],
    "total_expenses": "1399.5",
    "insights": "Dining out grew month over month",
    "recommendations": ["Cook at home twice a week", "Set a dining budget"],
}

STATEMENT = UploadedFile("march.csv", b"date,amount\n2026-03-01,12.50\n")


def clock():
    return NOW


def test_report_is_stored_and_returned(db_session, customer, gateway):
    gateway.analyze_expenses.return_value = ANALYSIS

    report = AnalyzeExpensesUseCase(db_session, gateway, clock).execute(customer, STATEMENT)

    assert report["document_name"] == "march.csv"
    assert report["total_expenses"] == 1399.5
    assert report["recommendations"] == "Cook at home twice a week\nSet a dining budget"
    assert report["analysis_insights"] == "Dining out grew month over month"
    assert report["created_at"] == "2026-03-01T18:00:00Z"

    row = db_session.query(ExpenseAnalysisReport).one()
    assert row.user_id == customer.user_id
    assert row.extracted_expenses == [{"category": "Dining", "amount": 420}]


def test_request_carries_file_and_financial_context(db_session, customer, gateway):
    db_session.add(FinancialGoal(
        user_id=customer.user_id, goal_name="Car", target_amount=Decimal("12000"),
        current_amount=Decimal("3000"), target_date=date(2027, 1, 1),
    ))
    db_session.add(InvestmentProduct(
        user_id=customer.user_id, product_name="Nifty tracker", product_category="INDEX_FUND", risk_level="LOW",
    ))
    db_session.commit()
    gateway.analyze_expenses.return_value = ANALYSIS

    AnalyzeExpensesUseCase(db_session, gateway, clock).execute(customer, STATEMENT)

    payload = gateway.analyze_expenses.call_args[0][0]
    assert payload["userId"] == customer.user_id
    assert payload["fileType"] == "text/csv"
    assert base64.b64decode(payload["fileContent"]) == STATEMENT.content
    assert payload["userContext"]["goals"] == [
        {"goal_name": "Car", "target_amount": 12000.0, "current_amount": 3000.0, "target_date": "2027-01-01"},
    ]
    assert payload["userContext"]["investments"] == [
        {"product_name": "Nifty tracker", "product_category": "INDEX_FUND", "risk_level": "LOW"},
    ]


@pytest.mark.parametrize("upload, message", [
    (None, "No file uploaded"),
    (UploadedFile("empty.csv", b""), "No file uploaded"),
    (UploadedFile("photo.png", b"png"), "Invalid file type"),
    (UploadedFile("huge.pdf", b"x" * (MAX_FILE_BYTES + 1)), "File too large"),
])
def test_validation(db_session, customer, gateway, upload, message):
    with pytest.raises(ExpenseValidationError, match=message):
        AnalyzeExpensesUseCase(db_session, gateway).execute(customer, upload)
    gateway.analyze_expenses.assert_not_called()


def test_ai_failure_stores_nothing(db_session, customer, gateway):
    gateway.analyze_expenses.side_effect = AIGatewayError("AI service error on /analyze-expenses: HTTP 502")

    with pytest.raises(ServiceUnavailableError, match="AI analysis service unavailable"):
        AnalyzeExpensesUseCase(db_session, gateway).execute(customer, STATEMENT)
    assert db_session.query(ExpenseAnalysisReport).count() == 0


@pytest.mark.parametrize("total", ["lots", "NaN", -5, None, "1e20"])
def test_unusable_total_is_zero(db_session, customer, gateway, total):
    gateway.analyze_expenses.return_value = {**ANALYSIS, "total_expenses": total, "extracted_expenses": "n/a"}

    report = AnalyzeExpensesUseCase(db_session, gateway).execute(customer, STATEMENT)

    assert report["total_expenses"] == 0
    assert db_session.query(ExpenseAnalysisReport).one().extracted_expenses == []


def test_listing_is_newest_first_and_owner_only(db_session, customer, gateway):
    gateway.analyze_expenses.return_value = ANALYSIS
    stranger = identity(make_user(db_session, "stranger@example.com"))

    AnalyzeExpensesUseCase(db_session, gateway, lambda: NOW - timedelta(days=30)).execute(customer, UploadedFile("feb.pdf", b"%PDF"))
    AnalyzeExpensesUseCase(db_session, gateway, clock).execute(customer, STATEMENT)
    AnalyzeExpensesUseCase(db_session, gateway, clock).execute(stranger, UploadedFile("theirs.xlsx", b"xl"))

    reports = list_expense_reports(db_session, customer)

    assert [r["document_name"] for r in reports] == ["march.csv", "feb.pdf"]
    assert [r["document_name"] for r in list_expense_reports(db_session, stranger)] == ["theirs.xlsx"]
