"""
Credit health dashboard endpoint
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.credit_health import CreditHealthService


router = APIRouter(prefix="/api/credit-health", tags=["credit-health"])


@router.get("")
def credit_health(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Seeds the caller's credit profile on first access"""
    data, meta = CreditHealthService(db).get_dashboard(user.user_id)
    return ok(data, meta=meta)
