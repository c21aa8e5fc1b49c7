"""
Organization team management (members, roles, activation).

Tokens carry the member's role, so any change that alters what a token
grants (role change, deactivation, removal) bumps the member's jwt_version.
"""
import logging
from collections import Counter

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from finsight.application.access import (
    ADMIN_ROLE, AuthenticatedUser, require_organization, require_role,
)
from finsight.application.accounts import bump_jwt_version, validate_email, validate_password
from finsight.application.errors import (
    ConflictError, NotFoundError, PermissionDeniedError, ValidationError,
)
from finsight.auth import get_user_by_email, hash_password
from finsight.infrastructure.db.models import TeamMembership, User
from finsight.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

TEAM_ROLES = ("ADMIN", "PORTFOLIO_MANAGER", "ANALYST", "LENDING_OFFICER", "RISK_MANAGER")
MEMBER_NOT_FOUND = "Team member not found"


class TeamValidationError(ValidationError):
    pass


def member_to_dict(user: User, membership: TeamMembership) -> dict:
    return {
        "id": user.id,
        "full_name": user.full_name,
        "email": user.email,
        "role": membership.role,
        "avatar_url": user.avatar_url,
        "joined_at": isoformat(membership.joined_at),
        "last_login_at": isoformat(user.last_login_at),
        "is_active": user.is_active,
    }


def _load_member(db: Session, organization_id: str, user_id: str) -> tuple[User, TeamMembership]:
    row = (
        db.query(User, TeamMembership)
        .join(TeamMembership, TeamMembership.user_id == User.id)
        .filter(User.id == user_id, TeamMembership.organization_id == organization_id)
        .first()
    )
    if row is None:
        raise NotFoundError(MEMBER_NOT_FOUND)
    return row[0], row[1]


def _admin_count(db: Session, organization_id: str) -> int:
    return (
        db.query(func.count(TeamMembership.user_id))
        .filter(TeamMembership.organization_id == organization_id, TeamMembership.role == ADMIN_ROLE)
        .scalar()
    ) or 0


class ListTeamQuery:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user: AuthenticatedUser,
        role: str | None = None,
        active: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict:
        organization_id = require_organization(user)
        limit = max(1, limit)
        offset = max(0, offset)

        query = (
            self.db.query(User, TeamMembership)
            .join(TeamMembership, TeamMembership.user_id == User.id)
            .filter(TeamMembership.organization_id == organization_id)
        )
        if role:
            query = query.filter(TeamMembership.role == role)
        if active is not None:
            query = query.filter(User.is_active.is_(active))

        total = query.count()
        rows = query.order_by(TeamMembership.joined_at.desc()).limit(limit).offset(offset).all()
        members = [member_to_dict(u, m) for u, m in rows]

        return {
            "teamMembers": members,
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": offset + limit < total,
            },
            "summary": {
                "totalMembers": total,
                "activeMembers": sum(1 for m in members if m["is_active"]),
                "roleDistribution": dict(Counter(m["role"] for m in members)),
            },
        }


class AddTeamMemberUseCase:
    """Create an account and its membership in the admin's organization atomically"""

    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock

    def execute(self, user: AuthenticatedUser, full_name: str, email: str, password: str, role: str) -> dict:
        organization_id = require_organization(user)
        require_role(user, (ADMIN_ROLE,))

        full_name = (full_name or "").strip()
        if not full_name or not email or not password or not role:
            raise TeamValidationError("All fields are required")
        if role not in TEAM_ROLES:
            raise TeamValidationError("Invalid role specified")
        email = validate_email(email)
        validate_password(password)

        if get_user_by_email(self.db, email) is not None:
            raise ConflictError("Email already registered")

        now = self.clock()
        try:
            member = User(
                full_name=full_name,
                email=email,
                password_hash=hash_password(password),
                is_active=True,
                jwt_version=1,
                created_at=now,
            )
            self.db.add(member)
            self.db.flush()
            membership = TeamMembership(
                organization_id=organization_id, user_id=member.id, role=role, joined_at=now,
            )
            self.db.add(membership)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Email already registered") from e
        except Exception:
            self.db.rollback()
            raise

        logger.info("Team member %s added to organization %s as %s", member.id, organization_id, role)
        return member_to_dict(member, membership)


def get_team_member(db: Session, user: AuthenticatedUser, member_id: str) -> dict:
    organization_id = require_organization(user)
    member, membership = _load_member(db, organization_id, member_id)
    return member_to_dict(member, membership)


class UpdateTeamMemberUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user: AuthenticatedUser,
        member_id: str,
        role: str | None = None,
        is_active: bool | None = None,
    ) -> dict:
        organization_id = require_organization(user)
        require_role(user, (ADMIN_ROLE,))
        if member_id == user.user_id:
            raise PermissionDeniedError("Cannot modify your own account")

        member, membership = _load_member(self.db, organization_id, member_id)

        if role is None and is_active is None:
            raise TeamValidationError("No valid fields to update")
        if role is not None and role not in TEAM_ROLES:
            raise TeamValidationError("Invalid role specified")

        losing_admin = membership.role == ADMIN_ROLE and (
            (role is not None and role != ADMIN_ROLE) or is_active is False
        )
        if losing_admin and _admin_count(self.db, organization_id) <= 1:
            raise PermissionDeniedError("Cannot remove the last admin from the organization")

        revoke = False
        if role is not None and role != membership.role:
            membership.role = role
            revoke = True
        if is_active is not None and is_active != member.is_active:
            member.is_active = is_active
            revoke = revoke or is_active is False

        if revoke:
            bump_jwt_version(member)
        self.db.commit()
        return member_to_dict(member, membership)


class RemoveTeamMemberUseCase:
    """Drop the membership (the account itself stays) and revoke the member's tokens"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user: AuthenticatedUser, member_id: str) -> None:
        organization_id = require_organization(user)
        require_role(user, (ADMIN_ROLE,))
        if member_id == user.user_id:
            raise PermissionDeniedError("Cannot remove yourself from the organization")

        member, membership = _load_member(self.db, organization_id, member_id)
        if membership.role == ADMIN_ROLE and _admin_count(self.db, organization_id) <= 1:
            raise PermissionDeniedError("Cannot remove the last admin from the organization")

        self.db.delete(membership)
        bump_jwt_version(member)
        self.db.commit()
        logger.info("Team member %s removed from organization %s", member_id, organization_id)
