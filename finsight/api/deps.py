"""
FastAPI dependencies (DB session, authentication, service providers)
"""
from fastapi import Depends, Request, UploadFile
from sqlalchemy.orm import Session

from finsight.application.access import AuthenticatedUser
from finsight.application.errors import AuthenticationError
from finsight.application.news import NewsService, get_news_service
from finsight.application.scheduler import get_analysis_queue
from finsight.application.stocks import get_stock_service
from finsight.application.uploads import UploadedFile
from finsight.infrastructure.ai_gateway.client import get_ai_gateway
from finsight.infrastructure.db.models import User
from finsight.infrastructure.db.session import get_db as _get_db
from finsight.infrastructure.security.tokens import TokenError, TokenService, get_token_service
from finsight.infrastructure.storage.files import get_file_storage


# Re-export for convenience
get_db = _get_db

# Providers are plain functions so tests can swap them via app.dependency_overrides
get_tokens = get_token_service
get_storage = get_file_storage
get_gateway = get_ai_gateway
get_queue = get_analysis_queue
get_stocks = get_stock_service


def get_news() -> NewsService:
    return get_news_service()


def _extract_token(request: Request) -> str | None:
    header = request.headers.get("Authorization")
    if not header:
        return None
    header = header.strip()
    if header[:7].lower() == "bearer ":
        header = header[7:].strip()
    return header or None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
) -> AuthenticatedUser:
    """
    Resolve the requester from the Authorization header

    Accepts "Bearer <token>" or the bare token.

    Raises:
        AuthenticationError(401): no token, bad or expired token,
            or a token revoked by a jwt_version bump / deactivation

    Usage:
        @router.get("/goals")
        def list_goals(user: AuthenticatedUser = Depends(get_current_user)):
            ...
    """
    token = _extract_token(request)
    if token is None:
        raise AuthenticationError("No authorization token provided")

    try:
        payload = tokens.verify(token)
    except TokenError:
        raise AuthenticationError("Invalid or expired token", code="invalid_token")

    user = db.get(User, payload.user_id)
    if user is None or not user.is_active or user.jwt_version != payload.jwt_version:
        raise AuthenticationError("Token is no longer valid", code="token_revoked")

    return AuthenticatedUser(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        jwt_version=user.jwt_version,
        organization_id=payload.organization_id,
        role=payload.role,
        avatar_url=user.avatar_url,
    )


def read_uploads(files: list[UploadFile]) -> list[UploadedFile]:
    """Drain multipart uploads into memory before handing them to a use case"""
    uploaded = []
    for f in files:
        content = f.file.read()
        uploaded.append(UploadedFile(filename=f.filename or "upload", content=content))
    return uploaded
