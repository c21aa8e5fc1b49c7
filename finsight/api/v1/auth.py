"""
Authentication routes (signup, login, logout, me)
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db, get_tokens
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.accounts import (
    LoginUseCase, LogoutUseCase, SignupUseCase, get_current_user_profile,
)
from finsight.infrastructure.security.tokens import TokenService


router = APIRouter(prefix="/api/auth", tags=["auth"])


# === Request models ===

class SignupRequest(BaseModel):
    full_name: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None  # Customer, Investment, Bank
    organization_name: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


# === Endpoints ===

@router.post("/signup", status_code=201)
def signup(
    req: SignupRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
):
    result = SignupUseCase(db, tokens).execute(
        full_name=req.full_name,
        email=req.email,
        password=req.password,
        role=req.role,
        organization_name=req.organization_name,
    )
    return ok(result, message="Account created successfully")


@router.post("/login")
def login(
    req: LoginRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
):
    result = LoginUseCase(db, tokens).execute(email=req.email, password=req.password)
    return ok(result, message="Login successful")


@router.post("/logout")
def logout(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Invalidates every token issued to the caller so far"""
    LogoutUseCase(db).execute(user.user_id)
    return ok(message="Logged out successfully")


@router.get("/me")
def me(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(get_current_user_profile(db, user.user_id))
