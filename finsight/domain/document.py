"""
Document lifecycle
"""
DOCUMENT_TYPES = ("INVESTMENT_PLAN", "LOAN_APPLICATION", "FINANCIAL_REPORT")
ANALYSIS_TYPES = ("INVESTMENT_ANALYSIS", "LOAN_RISK_ASSESSMENT", "COMPLIANCE_CHECK")

PENDING = "PENDING"
ANALYZED = "ANALYZED"
ERROR = "ERROR"
DOCUMENT_STATUSES = (PENDING, ANALYZED, ERROR)

# Back to PENDING only as an explicit re-analysis
ALLOWED_TRANSITIONS = {
    PENDING: {ANALYZED, ERROR},
    ANALYZED: {PENDING},
    ERROR: {PENDING},
}


def can_transition(current: str, new: str) -> bool:
    if current == new:
        return True
    return new in ALLOWED_TRANSITIONS.get(current, set())


def analysis_status_view(status: str) -> str:
    """Stored document status -> status reported by the analysis endpoint"""
    return {
        ANALYZED: "COMPLETED",
        PENDING: "PROCESSING",
        ERROR: "ERROR",
    }.get(status, "PENDING")
