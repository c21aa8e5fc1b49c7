"""
Customer onboarding profile
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from finsight.application.access import AuthenticatedUser
from finsight.application.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from finsight.domain.credit import MAX_SCORE, MIN_SCORE
from finsight.infrastructure.db.models import CustomerProfile
from finsight.utils.dates import isoformat, utcnow

RISK_APPETITES = ("CONSERVATIVE", "MODERATE", "AGGRESSIVE")
FINANCIAL_GOALS = ("HOME_PURCHASE", "RETIREMENT", "EDUCATION", "WEALTH_BUILDING")

PROFILE_NOT_FOUND = "Customer profile not found"


class OnboardingValidationError(ValidationError):
    pass


def _check_score(score) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise OnboardingValidationError("Credit score must be a whole number")
    if score < MIN_SCORE or score > MAX_SCORE:
        raise OnboardingValidationError("Credit score must be between 300 and 850")
    return score


def _check_choice(value, allowed: tuple, field: str) -> str:
    if value not in allowed:
        raise OnboardingValidationError(f"Invalid {field}. Valid options: {', '.join(allowed)}")
    return value


def profile_to_dict(profile: CustomerProfile) -> dict:
    return {
        "profileId": str(profile.id),
        "userId": profile.user_id,
        "incomeRange": profile.income_range,
        "currentCreditScore": profile.current_credit_score,
        "riskAppetite": profile.risk_appetite,
        "primaryFinancialGoal": profile.primary_financial_goal,
        "onboardingCompleted": profile.onboarding_completed,
        "profileCreatedAt": isoformat(profile.profile_created_at),
        "lastUpdatedAt": isoformat(profile.last_updated_at),
    }


def _find_profile(db: Session, user_id: str) -> CustomerProfile | None:
    return db.query(CustomerProfile).filter(CustomerProfile.user_id == user_id).first()


class CompleteOnboardingUseCase:
    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock

    def execute(
        self,
        user: AuthenticatedUser,
        income_range: str,
        current_credit_score,
        risk_appetite: str,
        primary_financial_goal: str,
    ) -> dict:
        if not user.is_customer:
            raise PermissionDeniedError("This endpoint is only for individual customers")
        if not income_range or current_credit_score is None or not risk_appetite or not primary_financial_goal:
            raise OnboardingValidationError("All onboarding fields are required")
        _check_score(current_credit_score)
        _check_choice(risk_appetite, RISK_APPETITES, "risk appetite")
        _check_choice(primary_financial_goal, FINANCIAL_GOALS, "financial goal")

        if _find_profile(self.db, user.user_id) is not None:
            raise ConflictError("Customer profile already exists. Use PUT to update.")

        now = self.clock()
        profile = CustomerProfile(
            user_id=user.user_id,
            income_range=income_range,
            current_credit_score=current_credit_score,
            risk_appetite=risk_appetite,
            primary_financial_goal=primary_financial_goal,
            onboarding_completed=True,
            profile_created_at=now,
            last_updated_at=now,
        )
        self.db.add(profile)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Customer profile already exists. Use PUT to update.") from e

        return {
            "profileId": str(profile.id),
            "onboardingCompleted": True,
            "message": "Customer onboarding completed successfully",
        }


def get_profile(db: Session, user: AuthenticatedUser) -> dict:
    profile = _find_profile(db, user.user_id)
    if profile is None:
        raise NotFoundError(PROFILE_NOT_FOUND)
    return profile_to_dict(profile)


class UpdateProfileFieldsUseCase:
    """Partial update of the onboarding profile; None means "unchanged"."""

    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock

    def execute(
        self,
        user: AuthenticatedUser,
        income_range: str | None = None,
        current_credit_score: int | None = None,
        risk_appetite: str | None = None,
        primary_financial_goal: str | None = None,
    ) -> dict:
        if current_credit_score is not None:
            _check_score(current_credit_score)
        if risk_appetite is not None:
            _check_choice(risk_appetite, RISK_APPETITES, "risk appetite")
        if primary_financial_goal is not None:
            _check_choice(primary_financial_goal, FINANCIAL_GOALS, "financial goal")

        profile = _find_profile(self.db, user.user_id)
        if profile is None:
            raise NotFoundError(PROFILE_NOT_FOUND)

        if income_range is not None:
            profile.income_range = income_range
        if current_credit_score is not None:
            profile.current_credit_score = current_credit_score
        if risk_appetite is not None:
            profile.risk_appetite = risk_appetite
        if primary_financial_goal is not None:
            profile.primary_financial_goal = primary_financial_goal
        profile.last_updated_at = self.clock()
        self.db.commit()
        return profile_to_dict(profile)


def get_onboarding_status(db: Session, user: AuthenticatedUser) -> dict:
    profile = _find_profile(db, user.user_id)
    status = {
        "userId": user.user_id,
        "hasCompletedOnboarding": bool(profile and profile.onboarding_completed),
        "profileExists": profile is not None,
    }
    if profile is not None:
        status["profileData"] = {
            "incomeRange": profile.income_range,
            "currentCreditScore": profile.current_credit_score,
            "riskAppetite": profile.risk_appetite,
            "primaryFinancialGoal": profile.primary_financial_goal,
            "profileCreatedAt": isoformat(profile.profile_created_at),
        }
    else:
        status["nextStep"] = "complete_onboarding"
    return status
