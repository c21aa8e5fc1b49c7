"""
Financial goal API endpoints
"""
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.goals import (
    CreateGoalUseCase, DeleteGoalUseCase, ListGoalsQuery, UpdateGoalUseCase, get_goal,
)


router = APIRouter(prefix="/api/goals", tags=["goals"])


# === Request models ===

class CreateGoalRequest(BaseModel):
    goal_name: str | None = None
    target_amount: Any = None  # number or numeric string
    current_amount: Any = 0
    target_date: str | None = None  # YYYY-MM-DD


class UpdateGoalRequest(BaseModel):
    goal_name: str | None = None
    target_amount: Any = None
    current_amount: Any = None
    target_date: str | None = None


# === Endpoints ===

@router.post("", status_code=201)
def create_goal(
    req: CreateGoalRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = CreateGoalUseCase(db).execute(
        user,
        goal_name=req.goal_name,
        target_amount=req.target_amount,
        current_amount=req.current_amount,
        target_date=req.target_date,
    )
    return ok(goal, message="Financial goal created successfully")


@router.get("")
def list_goals(
    sort: str = "created_at",
    order: str = "desc",
    limit: int = 20,
    offset: int = 0,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = ListGoalsQuery(db).execute(user, sort=sort, order=order, limit=limit, offset=offset)
    return ok(result)


@router.get("/{goal_id}")
def read_goal(
    goal_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(get_goal(db, user, goal_id))


@router.put("/{goal_id}")
def update_goal(
    goal_id: int,
    req: UpdateGoalRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Only the fields present in the body are changed"""
    provided = {name: getattr(req, name) for name in req.model_fields_set}
    goal = UpdateGoalUseCase(db).execute(user, goal_id, **provided)
    return ok(goal, message="Financial goal updated successfully")


@router.delete("/{goal_id}")
def delete_goal(
    goal_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteGoalUseCase(db).execute(user, goal_id)
    return ok(message="Financial goal deleted successfully")
