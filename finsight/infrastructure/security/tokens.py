"""
Session tokens (signed JWT, HS256)

Tokens are stateless. The only revocation path is the account's
jwt_version counter: every token carries the version current at issue time
and the auth dependency rejects it once the stored counter has moved on.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt


class TokenError(Exception):
    """Token could not be accepted"""
    pass


class TokenExpiredError(TokenError):
    pass


class InvalidTokenError(TokenError):
    pass


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    email: str
    jwt_version: int
    organization_id: str | None = None
    role: str | None = None
    issued_at: int | None = None
    expires_at: int | None = None


class TokenService:
    def __init__(self, secret: str, expires_in: timedelta = timedelta(days=7), algorithm: str = "HS256"):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self.secret = secret
        self.expires_in = expires_in
        self.algorithm = algorithm

    def issue(
        self,
        user_id: str,
        email: str,
        jwt_version: int,
        organization_id: str | None = None,
        role: str | None = None,
        now: datetime | None = None,
    ) -> str:
        """
        Sign a token for the given identity

        Args:
            now: issue time override (tests); defaults to current UTC time

        Returns:
            Encoded JWT string
        """
        issued = now or datetime.now(timezone.utc)
        if issued.tzinfo is None:
            issued = issued.replace(tzinfo=timezone.utc)

        payload = {
            "userId": user_id,
            "email": email,
            "jwtVersion": jwt_version,
            "iat": int(issued.timestamp()),
            "exp": int((issued + self.expires_in).timestamp()),
        }
        if organization_id:
            payload["organizationId"] = organization_id
        if role:
            payload["role"] = role

        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenPayload:
        """
        Check signature and expiry, return the decoded identity

        Raises:
            TokenExpiredError: exp is in the past
            InvalidTokenError: malformed, wrongly signed or missing claims
        """
        try:
            data = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(str(e)) from e

        user_id = data.get("userId")
        version = data.get("jwtVersion")
        if not isinstance(user_id, str) or not user_id:
            raise InvalidTokenError("Token is missing userId")
        if not isinstance(version, int) or isinstance(version, bool):
            raise InvalidTokenError("Token is missing jwtVersion")

        return TokenPayload(
            user_id=user_id,
            email=data.get("email", ""),
            jwt_version=version,
            organization_id=data.get("organizationId"),
            role=data.get("role"),
            issued_at=data.get("iat"),
            expires_at=data.get("exp"),
        )


def get_token_service() -> TokenService:
    """Token service configured from settings"""
    from finsight.config import get_settings

    settings = get_settings()
    return TokenService(settings.JWT_SECRET, timedelta(days=settings.JWT_EXPIRES_DAYS))
