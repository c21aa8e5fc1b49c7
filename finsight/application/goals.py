"""
Financial goal use cases (individual customers only)
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from finsight.application.access import AuthenticatedUser, get_accessible_or_404
from finsight.application.errors import PermissionDeniedError, ValidationError
from finsight.domain.goal import days_remaining, progress_percentage
from finsight.infrastructure.db.models import FinancialGoal
from finsight.utils.dates import isoformat, parse_date, utcnow


# ── Constants ──

SORT_FIELDS = ("created_at", "target_date", "target_amount", "current_amount", "goal_name")
SORT_ORDERS = ("asc", "desc")

NOT_FOUND_MESSAGE = "Goal not found"


# ── Errors ──

class GoalValidationError(ValidationError):
    pass


# ── Helpers ──

def require_customer(user: AuthenticatedUser) -> None:
    if not user.is_customer:
        raise PermissionDeniedError("Financial goals are only available for individual customers")


def _to_amount(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise GoalValidationError(f"{field} must be a number") from e
    if not amount.is_finite():
        raise GoalValidationError(f"{field} must be a number")
    return amount


def _to_future_date(value, now: datetime):
    try:
        parsed = parse_date(str(value))
    except ValueError as e:
        raise GoalValidationError("Target date must be a valid future date") from e
    if parsed <= now.date():
        raise GoalValidationError("Target date must be a valid future date")
    return parsed


def goal_to_dict(goal: FinancialGoal, now: datetime) -> dict:
    """Row -> response shape with derived progress and countdown"""
    data = {
        "id": goal.id,
        "user_id": goal.user_id,
        "goal_name": goal.goal_name,
        "target_amount": float(goal.target_amount),
        "current_amount": float(goal.current_amount),
        "target_date": goal.target_date.isoformat() if goal.target_date else None,
        "created_at": isoformat(goal.created_at),
        "progress_percentage": progress_percentage(goal.current_amount, goal.target_amount),
    }
    remaining = days_remaining(goal.target_date, now)
    if remaining is not None:
        data["days_remaining"] = remaining
    return data


# ── Use Cases ──

class CreateGoalUseCase:
    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock

    def execute(
        self,
        user: AuthenticatedUser,
        goal_name: str,
        target_amount,
        current_amount=0,
        target_date=None,
    ) -> dict:
        require_customer(user)
        now = self.clock()

        goal_name = (goal_name or "").strip()
        if not goal_name or target_amount is None:
            raise GoalValidationError("Goal name and target amount are required")

        target = _to_amount(target_amount, "Target amount")
        if target <= 0:
            raise GoalValidationError("Target amount must be greater than zero")

        current = _to_amount(current_amount if current_amount is not None else 0, "Current amount")
        if current < 0:
            raise GoalValidationError("Current amount cannot be negative")

        parsed_date = _to_future_date(target_date, now) if target_date not in (None, "") else None

        goal = FinancialGoal(
            user_id=user.user_id,
            goal_name=goal_name,
            target_amount=target,
            current_amount=current,
            target_date=parsed_date,
            created_at=now,
        )
        self.db.add(goal)
        self.db.commit()
        return goal_to_dict(goal, now)


class ListGoalsQuery:
    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock

    def execute(
        self,
        user: AuthenticatedUser,
        sort: str = "created_at",
        order: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> dict:
        require_customer(user)
        if sort not in SORT_FIELDS or order not in SORT_ORDERS:
            raise GoalValidationError("Invalid sort parameters")
        if limit < 1 or offset < 0:
            raise GoalValidationError("Invalid pagination parameters")

        now = self.clock()
        column = getattr(FinancialGoal, sort)
        ordering = column.asc() if order == "asc" else column.desc()

        base = self.db.query(FinancialGoal).filter(FinancialGoal.user_id == user.user_id)
        total = base.count()
        rows = base.order_by(ordering, FinancialGoal.id.asc()).limit(limit).offset(offset).all()
        goals = [goal_to_dict(g, now) for g in rows]

        all_goals = [goal_to_dict(g, now) for g in base.all()]
        average = (
            round(sum(g["progress_percentage"] for g in all_goals) / len(all_goals))
            if all_goals else 0
        )

        return {
            "goals": goals,
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": offset + limit < total,
            },
            "summary": {
                "totalGoals": total,
                "totalTargetAmount": sum(g["target_amount"] for g in all_goals),
                "totalCurrentAmount": sum(g["current_amount"] for g in all_goals),
                "averageProgress": average,
            },
        }


def get_goal(db: Session, user: AuthenticatedUser, goal_id: int, now: datetime | None = None) -> dict:
    require_customer(user)
    goal = get_accessible_or_404(db, FinancialGoal, goal_id, user, NOT_FOUND_MESSAGE)
    return goal_to_dict(goal, now or utcnow())


class UpdateGoalUseCase:
    """Partial update. Ellipsis means "field not provided"."""

    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock

    def execute(
        self,
        user: AuthenticatedUser,
        goal_id: int,
        goal_name=...,
        target_amount=...,
        current_amount=...,
        target_date=...,
    ) -> dict:
        require_customer(user)
        now = self.clock()
        goal = get_accessible_or_404(self.db, FinancialGoal, goal_id, user, NOT_FOUND_MESSAGE)

        changes = {}
        if goal_name is not ...:
            name = (goal_name or "").strip()
            if not name:
                raise GoalValidationError("Goal name cannot be empty")
            changes["goal_name"] = name

        if target_amount is not ...:
            if target_amount is None:
                raise GoalValidationError("Target amount must be greater than zero")
            target = _to_amount(target_amount, "Target amount")
            if target <= 0:
                raise GoalValidationError("Target amount must be greater than zero")
            changes["target_amount"] = target

        if current_amount is not ...:
            if current_amount is None:
                raise GoalValidationError("Current amount cannot be negative")
            current = _to_amount(current_amount, "Current amount")
            if current < 0:
                raise GoalValidationError("Current amount cannot be negative")
            changes["current_amount"] = current

        if target_date is not ...:
            # null / "" clears the deadline
            changes["target_date"] = (
                None if target_date in (None, "") else _to_future_date(target_date, now)
            )

        if not changes:
            raise GoalValidationError("No valid fields to update")

        for field, value in changes.items():
            setattr(goal, field, value)
        self.db.commit()
        return goal_to_dict(goal, now)


class DeleteGoalUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user: AuthenticatedUser, goal_id: int) -> None:
        require_customer(user)
        goal = get_accessible_or_404(self.db, FinancialGoal, goal_id, user, NOT_FOUND_MESSAGE)
        self.db.delete(goal)
        self.db.commit()
