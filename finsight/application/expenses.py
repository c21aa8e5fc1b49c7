"""
Expense analysis: a user uploads a statement (PDF, CSV or Excel), the AI
service reads it against the user's goals and holdings, and the resulting
report is stored. Reports are private to their owner.
"""
import base64
import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from finsight.application.access import AuthenticatedUser
from finsight.application.errors import ServiceUnavailableError, ValidationError
from finsight.application.uploads import UploadedFile
from finsight.infrastructure.ai_gateway.client import AIGatewayClient, AIGatewayError
from finsight.infrastructure.db.models import ExpenseAnalysisReport, FinancialGoal, InvestmentProduct
from finsight.infrastructure.storage.files import file_extension
from finsight.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".csv": "text/csv",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
MAX_FILE_BYTES = 10 * 1024 * 1024
MAX_TOTAL = Decimal("9999999999999.99")  # Numeric(15, 2)


class ExpenseValidationError(ValidationError):
    pass


def report_to_dict(report: ExpenseAnalysisReport) -> dict:
    return {
        "id": report.id,
        "document_name": report.document_name,
        "analysis_report": report.analysis_report,
        "total_expenses": float(report.total_expenses or 0),
        "analysis_insights": report.analysis_insights,
        "recommendations": report.recommendations,
        "created_at": isoformat(report.created_at),
    }


def list_expense_reports(db: Session, user: AuthenticatedUser) -> list[dict]:
    reports = (
        db.query(ExpenseAnalysisReport)
        .filter(ExpenseAnalysisReport.user_id == user.user_id)
        .order_by(ExpenseAnalysisReport.created_at.desc(), ExpenseAnalysisReport.id.desc())
        .all()
    )
    return [report_to_dict(r) for r in reports]


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(str(item) for item in value)
    return str(value)


def _total(value) -> Decimal:
    try:
        total = Decimal(str(value if value is not None else 0))
    except (InvalidOperation, ValueError):
        logger.warning("Discarding non-numeric expense total %r", value)
        return Decimal("0")
    if not total.is_finite() or total < 0 or total > MAX_TOTAL:
        logger.warning("Discarding out-of-range expense total %r", value)
        return Decimal("0")
    return total.quantize(Decimal("0.01"))


class AnalyzeExpensesUseCase:
    def __init__(self, db: Session, gateway: AIGatewayClient, clock=utcnow):
        self.db = db
        self.gateway = gateway
        self.clock = clock

    def execute(self, user: AuthenticatedUser, upload: UploadedFile | None) -> dict:
        """
        Raises:
            ExpenseValidationError: no file, unsupported type, over 10MB
            ServiceUnavailableError: the AI service failed
        """
        if upload is None or not upload.content:
            raise ExpenseValidationError("No file uploaded")
        content_type = CONTENT_TYPES.get(file_extension(upload.filename))
        if content_type is None:
            raise ExpenseValidationError("Invalid file type. Please upload PDF, CSV, or Excel files.")
        if len(upload.content) > MAX_FILE_BYTES:
            raise ExpenseValidationError("File too large. Maximum size is 10MB.")

        try:
            result = self.gateway.analyze_expenses({
                "userId": user.user_id,
                "fileName": upload.filename,
                "fileContent": base64.b64encode(upload.content).decode("ascii"),
                "fileType": content_type,
                "userContext": self._financial_context(user),
            })
        except AIGatewayError as e:
            logger.exception("Expense analysis failed for user %s", user.user_id)
            raise ServiceUnavailableError("AI analysis service unavailable") from e

        extracted = result.get("extracted_expenses")
        report = ExpenseAnalysisReport(
            user_id=user.user_id,
            document_name=upload.filename[:255],
            analysis_report=_text(result.get("analysis_report")),
            extracted_expenses=extracted if isinstance(extracted, list) else [],
            total_expenses=_total(result.get("total_expenses")),
            analysis_insights=_text(result.get("insights")),
            recommendations=_text(result.get("recommendations")),
            created_at=self.clock(),
        )
        self.db.add(report)
        self.db.commit()
        return report_to_dict(report)

    def _financial_context(self, user: AuthenticatedUser) -> dict:
        goals = self.db.query(FinancialGoal).filter(FinancialGoal.user_id == user.user_id).all()
        holdings = self.db.query(InvestmentProduct).filter(InvestmentProduct.user_id == user.user_id).all()
        return {
            "goals": [
                {
                    "goal_name": g.goal_name,
                    "target_amount": float(g.target_amount),
                    "current_amount": float(g.current_amount or 0),
                    "target_date": isoformat(g.target_date),
                }
                for g in goals
            ],
            "investments": [
                {
                    "product_name": p.product_name,
                    "product_category": p.product_category,
                    "risk_level": p.risk_level,
                }
                for p in holdings
            ],
        }
