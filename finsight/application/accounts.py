"""
Account use cases: signup, login, logout, profile and password changes.

Every operation that must revoke outstanding sessions does it the same way:
bump_jwt_version() on the account row.
"""
import logging
import re

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from finsight.auth import get_user_by_email, hash_password, normalize_email, verify_password
from finsight.application.access import ADMIN_ROLE
from finsight.application.errors import (
    AuthenticationError, ConflictError, NotFoundError, ValidationError,
)
from finsight.infrastructure.db.models import Organization, TeamMembership, User
from finsight.infrastructure.security.tokens import TokenService
from finsight.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)


# ── Constants ──

SIGNUP_ROLES = ("Customer", "Investment", "Bank")
ORGANIZATION_SIGNUP_ROLES = ("Investment", "Bank")
MIN_PASSWORD_LENGTH = 6

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# ── Errors ──

class AccountValidationError(ValidationError):
    pass


# ── Helpers ──

def validate_email(email: str) -> str:
    email = normalize_email(email or "")
    if not EMAIL_RE.match(email):
        raise AccountValidationError("Invalid email format")
    return email


def validate_password(password: str, message: str = "Password must be at least 6 characters long") -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise AccountValidationError(message)


def bump_jwt_version(user: User) -> int:
    """Invalidate every token issued for this account so far"""
    user.jwt_version = (user.jwt_version or 0) + 1
    return user.jwt_version


def get_membership(db: Session, user_id: str) -> tuple[TeamMembership, Organization] | None:
    """The membership used for this account (earliest joined)"""
    row = (
        db.query(TeamMembership, Organization)
        .join(Organization, Organization.id == TeamMembership.organization_id)
        .filter(TeamMembership.user_id == user_id)
        .order_by(TeamMembership.joined_at.asc())
        .first()
    )
    if row is None:
        return None
    return row[0], row[1]


def user_to_dict(user: User, membership: TeamMembership | None = None) -> dict:
    data = {
        "id": user.id,
        "full_name": user.full_name,
        "email": user.email,
        "avatar_url": user.avatar_url,
    }
    if membership is not None:
        data["organizationId"] = membership.organization_id
        data["role"] = membership.role
    return data


def _issue_for(tokens: TokenService, user: User, membership: TeamMembership | None) -> str:
    return tokens.issue(
        user_id=user.id,
        email=user.email,
        jwt_version=user.jwt_version,
        organization_id=membership.organization_id if membership else None,
        role=membership.role if membership else None,
    )


# ── Use Cases ──

class SignupUseCase:
    """
    Create an account. Investment and Bank signups also create the
    organization and an ADMIN membership, all in one transaction.
    """

    def __init__(self, db: Session, tokens: TokenService):
        self.db = db
        self.tokens = tokens

    def execute(
        self,
        full_name: str,
        email: str,
        password: str,
        role: str,
        organization_name: str | None = None,
    ) -> dict:
        full_name = (full_name or "").strip()
        if not full_name or not email or not password or not role:
            raise AccountValidationError("All fields are required")
        email = validate_email(email)
        validate_password(password)
        if role not in SIGNUP_ROLES:
            raise AccountValidationError("Invalid role specified")

        organization_name = (organization_name or "").strip()
        if role in ORGANIZATION_SIGNUP_ROLES and not organization_name:
            raise AccountValidationError(f"Organization name is required for {role} accounts")

        if get_user_by_email(self.db, email) is not None:
            raise ConflictError("User with this email already exists")

        membership = None
        try:
            user = self._create_user(full_name, email, password)
            if role in ORGANIZATION_SIGNUP_ROLES:
                organization = self._create_organization(organization_name, role.upper())
                membership = self._add_membership(organization.id, user.id, ADMIN_ROLE)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("User with this email already exists") from e
        except Exception:
            self.db.rollback()
            raise

        logger.info("Account created: user_id=%s role=%s", user.id, role)
        return {
            "user": user_to_dict(user, membership),
            "token": _issue_for(self.tokens, user, membership),
        }

    def _create_user(self, full_name: str, email: str, password: str) -> User:
        user = User(
            full_name=full_name,
            email=email,
            password_hash=hash_password(password),
            jwt_version=1,
            is_active=True,
        )
        self.db.add(user)
        self.db.flush()
        return user

    def _create_organization(self, name: str, org_type: str) -> Organization:
        organization = Organization(name=name, type=org_type)
        self.db.add(organization)
        self.db.flush()
        return organization

    def _add_membership(self, organization_id: str, user_id: str, role: str) -> TeamMembership:
        membership = TeamMembership(organization_id=organization_id, user_id=user_id, role=role)
        self.db.add(membership)
        self.db.flush()
        return membership


class LoginUseCase:
    def __init__(self, db: Session, tokens: TokenService):
        self.db = db
        self.tokens = tokens

    def execute(self, email: str, password: str) -> dict:
        if not email or not password:
            raise AccountValidationError("Email and password are required")

        user = get_user_by_email(self.db, email)
        if user is None:
            raise AuthenticationError("Invalid email or password", code="invalid_credentials")
        if not user.is_active:
            raise AuthenticationError("Account has been deactivated", code="account_inactive")
        if not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password", code="invalid_credentials")

        user.last_login_at = utcnow()
        self.db.commit()

        found = get_membership(self.db, user.id)
        membership = found[0] if found else None
        return {
            "user": user_to_dict(user, membership),
            "token": _issue_for(self.tokens, user, membership),
        }


class LogoutUseCase:
    """Revoke all outstanding tokens of the caller"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: str) -> None:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        bump_jwt_version(user)
        self.db.commit()


def get_current_user_profile(db: Session, user_id: str) -> dict:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    found = get_membership(db, user.id)
    membership, organization = found if found else (None, None)
    return {
        "id": user.id,
        "full_name": user.full_name,
        "email": user.email,
        "avatar_url": user.avatar_url,
        "organizationId": membership.organization_id if membership else None,
        "organizationName": organization.name if organization else None,
        "organizationType": organization.type if organization else None,
        "role": membership.role if membership else None,
        "last_login_at": isoformat(user.last_login_at),
    }


class UpdateProfileUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: str, name: str, email: str) -> dict:
        name = (name or "").strip()
        if not name or not email:
            raise AccountValidationError("Name and email are required")
        email = validate_email(email)

        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        taken = (
            self.db.query(User)
            .filter(User.email == email, User.id != user_id, User.is_active.is_(True))
            .first()
        )
        if taken is not None:
            raise ConflictError("Email is already taken")

        user.full_name = name
        user.email = email
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Email is already taken") from e

        return {
            "id": user.id,
            "full_name": user.full_name,
            "email": user.email,
            "avatar_url": user.avatar_url,
        }


class ChangePasswordUseCase:
    """
    Replace the password hash and revoke existing sessions.
    The caller receives a fresh token carrying the new version.
    """

    def __init__(self, db: Session, tokens: TokenService):
        self.db = db
        self.tokens = tokens

    def execute(self, user_id: str, current_password: str, new_password: str) -> str:
        if not current_password or not new_password:
            raise AccountValidationError("Current password and new password are required")
        validate_password(new_password, "New password must be at least 6 characters long")

        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not verify_password(current_password, user.password_hash):
            raise AccountValidationError("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        bump_jwt_version(user)
        self.db.commit()

        found = get_membership(self.db, user.id)
        return _issue_for(self.tokens, user, found[0] if found else None)
