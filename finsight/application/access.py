"""
Requester identity and the ownership policy.

A resource that the requester may not see is reported exactly like a
resource that does not exist (404), so existence never leaks across owners
or organizations.
"""
from dataclasses import dataclass

from sqlalchemy.orm import Session

from finsight.application.errors import NotFoundError, PermissionDeniedError
from finsight.infrastructure.db.models import (
    ChatSession, CustomerProfile, Document, FinancialGoal,
    InvestmentProduct, KnowledgeBaseDocument,
)


ADMIN_ROLE = "ADMIN"

USER_OWNED = (FinancialGoal, InvestmentProduct, ChatSession, CustomerProfile)
ORGANIZATION_OWNED = (Document, KnowledgeBaseDocument)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity attached to a verified request"""
    user_id: str
    email: str
    full_name: str
    jwt_version: int
    organization_id: str | None = None
    role: str | None = None
    avatar_url: str | None = None

    @property
    def is_customer(self) -> bool:
        return self.organization_id is None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def require_organization(user: AuthenticatedUser) -> str:
    if user.organization_id is None:
        raise PermissionDeniedError("Organization access required")
    return user.organization_id


def require_role(user: AuthenticatedUser, roles, message: str = "Insufficient permissions") -> None:
    if user.role not in roles:
        raise PermissionDeniedError(message)


def can_access(resource, requester: AuthenticatedUser) -> bool:
    """
    Ownership predicate shared by every resource handler.

    User-owned rows belong to exactly one account; organization-owned rows
    are visible to every member of that organization.
    """
    if resource is None:
        return False
    if isinstance(resource, ORGANIZATION_OWNED):
        return (
            requester.organization_id is not None
            and resource.organization_id == requester.organization_id
        )
    if isinstance(resource, USER_OWNED):
        return resource.user_id == requester.user_id
    raise TypeError(f"No access policy for {type(resource).__name__}")


def get_accessible_or_404(db: Session, model, ident, requester: AuthenticatedUser, message: str):
    """Load a row by primary key; missing and foreign rows both raise NotFoundError"""
    resource = db.get(model, ident)
    if resource is None or not can_access(resource, requester):
        raise NotFoundError(message)
    return resource
