"""
Individual customer endpoints: investment portfolio and onboarding profile
"""
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.onboarding import (
    CompleteOnboardingUseCase, UpdateProfileFieldsUseCase, get_onboarding_status, get_profile,
)
from finsight.application.portfolio import AddInvestmentUseCase, RemoveInvestmentUseCase, list_portfolio


router = APIRouter(prefix="/api/customer", tags=["customer"])


# === Request models ===

class AddInvestmentRequest(BaseModel):
    product_name: str | None = None
    product_category: str | None = None
    risk_level: str | None = None
    expected_return: Any = None
    description: str | None = None


class OnboardingRequest(BaseModel):
    incomeRange: str | None = None
    currentCreditScore: Any = None
    riskAppetite: str | None = None
    primaryFinancialGoal: str | None = None


# === Portfolio ===

@router.get("/portfolio")
def read_portfolio(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(list_portfolio(db, user))


@router.post("/portfolio", status_code=201)
def add_investment(
    req: AddInvestmentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = AddInvestmentUseCase(db).execute(
        user,
        product_name=req.product_name,
        product_category=req.product_category,
        risk_level=req.risk_level,
        expected_return=req.expected_return,
        description=req.description,
    )
    return ok(product, message="Investment added successfully")


@router.delete("/portfolio/{product_id}")
def remove_investment(
    product_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    RemoveInvestmentUseCase(db).execute(user, product_id)
    return ok(message="Investment removed successfully")


# === Onboarding ===

@router.post("/onboarding", status_code=201)
def complete_onboarding(
    req: OnboardingRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = CompleteOnboardingUseCase(db).execute(
        user,
        income_range=req.incomeRange,
        current_credit_score=req.currentCreditScore,
        risk_appetite=req.riskAppetite,
        primary_financial_goal=req.primaryFinancialGoal,
    )
    message = result.pop("message")
    return ok(result, message=message)


@router.get("/onboarding")
def read_onboarding(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(get_profile(db, user))


@router.put("/onboarding")
def update_onboarding(
    req: OnboardingRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    profile = UpdateProfileFieldsUseCase(db).execute(
        user,
        income_range=req.incomeRange,
        current_credit_score=req.currentCreditScore,
        risk_appetite=req.riskAppetite,
        primary_financial_goal=req.primaryFinancialGoal,
    )
    return ok(profile, message="Customer profile updated successfully")


@router.get("/onboarding-status")
def onboarding_status(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(get_onboarding_status(db, user))
