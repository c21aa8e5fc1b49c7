"""
Organization team endpoints
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.team import (
    AddTeamMemberUseCase, ListTeamQuery, RemoveTeamMemberUseCase,
    UpdateTeamMemberUseCase, get_team_member,
)


router = APIRouter(prefix="/api/team", tags=["team"])


class AddMemberRequest(BaseModel):
    full_name: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None


class UpdateMemberRequest(BaseModel):
    role: str | None = None
    is_active: bool | None = None


@router.get("")
def list_team(
    role: str | None = None,
    active: bool | None = None,
    limit: int = 50,
    offset: int = 0,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(ListTeamQuery(db).execute(user, role=role, active=active, limit=limit, offset=offset))


@router.post("", status_code=201)
def add_member(
    req: AddMemberRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    member = AddTeamMemberUseCase(db).execute(
        user, full_name=req.full_name, email=req.email, password=req.password, role=req.role,
    )
    return ok(member, message="Team member added successfully")


@router.get("/{member_id}")
def read_member(
    member_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(get_team_member(db, user, member_id))


@router.put("/{member_id}")
def update_member(
    member_id: str,
    req: UpdateMemberRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    member = UpdateTeamMemberUseCase(db).execute(user, member_id, role=req.role, is_active=req.is_active)
    return ok(member, message="Team member updated successfully")


@router.delete("/{member_id}")
def remove_member(
    member_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    RemoveTeamMemberUseCase(db).execute(user, member_id)
    return ok(message="Team member removed successfully")
