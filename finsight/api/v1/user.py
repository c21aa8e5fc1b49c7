"""
Account settings routes (profile, password)
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db, get_tokens
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.accounts import ChangePasswordUseCase, UpdateProfileUseCase
from finsight.infrastructure.security.tokens import TokenService


router = APIRouter(prefix="/api/user", tags=["user"])


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    email: str | None = None


class ChangePasswordRequest(BaseModel):
    currentPassword: str | None = None
    newPassword: str | None = None


@router.put("/profile")
def update_profile(
    req: UpdateProfileRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    profile = UpdateProfileUseCase(db).execute(user.user_id, name=req.name, email=req.email)
    return ok(profile, message="Profile updated successfully")


@router.post("/change-password")
def change_password(
    req: ChangePasswordRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
):
    """Old tokens stop working; the response carries the replacement"""
    token = ChangePasswordUseCase(db, tokens).execute(
        user.user_id,
        current_password=req.currentPassword,
        new_password=req.newPassword,
    )
    return ok({"token": token}, message="Password changed successfully")
