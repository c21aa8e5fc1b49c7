"""
Expense analysis reports (statement upload, report history)
"""
from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db, get_gateway, read_uploads
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.expenses import AnalyzeExpensesUseCase, list_expense_reports
from finsight.infrastructure.ai_gateway.client import AIGatewayClient


router = APIRouter(prefix="/api/expenses", tags=["expenses"])


@router.get("")
def list_reports(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(list_expense_reports(db, user))


@router.post("", status_code=201)
def analyze_expenses(
    file: UploadFile | None = File(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: AIGatewayClient = Depends(get_gateway),
):
    uploads = read_uploads([file]) if file is not None else []
    report = AnalyzeExpensesUseCase(db, gateway).execute(user, uploads[0] if uploads else None)
    return ok(report, message="Expense analysis completed successfully")
