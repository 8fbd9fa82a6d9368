"""
Bearer token guard for the administrator routes.

Access tokens are minted by the auth module after a successful login and
checked here on every protected request. A missing header, a forged or
expired token and a token with unusable claims all end in the same 401,
so a caller learns nothing about why it was refused.
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import decode_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="Admin access token")


@dataclass(frozen=True)
class AdminUser:
    """The administrator a request acts as, rebuilt from token claims."""

    id: UUID
    username: str
    email: str

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "AdminUser":
        return cls(
            id=UUID(claims["sub"]),
            username=claims.get("username", ""),
            email=claims.get("email", ""),
        )


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": "NOT_AUTHORIZED",
            "message": "Not authorized to access this route.",
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


def admin_from_token(token: str) -> AdminUser:
    """Raises the uniform 401 unless `token` is a valid access token."""
    claims = decode_token(token)
    if claims is None or claims.get("type") != "access":
        logger.warning("Rejected bearer token (invalid, expired or wrong type)")
        raise _unauthorized()
    try:
        return AdminUser.from_claims(claims)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Rejected bearer token with bad claims: {e}")
        raise _unauthorized() from e


async def get_current_admin_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AdminUser:
    """Dependency for every route under /api/admin."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized()
    admin = admin_from_token(credentials.credentials)
    logger.debug(f"Request authenticated as admin {admin.username} ({admin.id})")
    return admin
