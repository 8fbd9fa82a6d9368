"""
Authentication Service Layer

Administrator login and the forgot/reset password flow.

1. Login:
   - Verify credentials against the admin credential store
   - Issue an HS256 access token (sub = admin id)

2. Forgot password:
   - Unknown emails get the same response as known ones
   - Generate a 256-bit token, store only its SHA-256 digest with a
     one hour expiry, email the link to the administrator

3. Reset password:
   - Hash the presented token, compare in constant time, check expiry
   - Set the new password and clear the token in one conditional UPDATE,
     so a token can be redeemed once even under concurrent requests

Security considerations:
- Plain tokens are never stored or logged
- Unknown email, missing token and wrong token all raise the same error
- The expired-token error is only reachable with the correct secret
- Email transport failures surface to the caller instead of being dropped
"""

import logging
from datetime import timedelta
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.email import send_password_reset
from app.core.exceptions import ServiceError
from app.core.security import (
    create_access_token,
    generate_secure_token,
    hash_token,
    token_matches,
)
from app.modules.admins import service as admin_service
from app.modules.admins.models import Admin
from app.modules.admins.repository import AdminRepository
from app.modules.auth.schemas import AdminResponse, LoginResponse
from app.modules.shared import ensure_utc, utcnow

logger = logging.getLogger(__name__)


class AuthServiceError(ServiceError):
    """Base exception for authentication service errors."""


class InvalidCredentialsError(AuthServiceError):
    """Raised when username/password do not match. Deliberately uninformative."""

    def __init__(self):
        super().__init__(
            message="Invalid credentials.",
            error_code="INVALID_CREDENTIALS",
            status_code=401,
        )


class InvalidResetTokenError(AuthServiceError):
    """Raised for unknown email, no outstanding token or a wrong token."""

    def __init__(self):
        super().__init__(
            message="Invalid or expired reset token.",
            error_code="INVALID_RESET_TOKEN",
            status_code=400,
        )


class ResetTokenExpiredError(AuthServiceError):
    """Raised when a correct reset token is past its expiry."""

    def __init__(self):
        super().__init__(
            message="This reset link has expired. Please request a new one.",
            error_code="RESET_TOKEN_EXPIRED",
            status_code=400,
        )


class EmailServiceUnavailableError(AuthServiceError):
    """Raised when the reset email could not be handed to the transport."""

    def __init__(self):
        super().__init__(
            message="Email service is currently unavailable. Please try again later.",
            error_code="EMAIL_SERVICE_UNAVAILABLE",
            status_code=500,
        )


FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a reset link has been sent."


def _normalize_email(email: str) -> str:
    return email.strip().lower()


# ============================================
# Login
# ============================================


async def login(db: AsyncSession, username: str, password: str) -> LoginResponse:
    """
    Authenticate an administrator and issue an access token.

    Raises:
        InvalidCredentialsError: For any non-matching username/password pair
    """
    admin = await admin_service.authenticate(db, username.strip(), password)
    if admin is None:
        raise InvalidCredentialsError()

    token = create_access_token(
        subject=str(admin.id),
        additional_claims={
            "username": admin.username,
            "email": admin.email,
        },
    )

    logger.info(f"Admin logged in: {admin.username}")

    return LoginResponse(
        token=token,
        expires_in=settings.access_token_expire_minutes * 60,
        admin=AdminResponse(id=admin.id, username=admin.username, email=admin.email),
    )


# ============================================
# Password reset
# ============================================


async def issue_reset_link(db: AsyncSession, admin: Admin) -> str:
    """
    Create a reset token for the administrator and return the reset link.

    Any previously outstanding token is replaced.
    """
    token = generate_secure_token()
    expires_at = utcnow() + timedelta(minutes=settings.password_reset_expire_minutes)

    await AdminRepository.set_reset_token(db, admin, hash_token(token), expires_at)

    query = urlencode({"token": token, "email": admin.email})
    return f"{settings.frontend_url.rstrip('/')}/reset-password?{query}"


async def request_password_reset(db: AsyncSession, email: str) -> None:
    """
    Start the forgot-password flow.

    Returns silently for unknown emails so callers cannot probe accounts.

    Raises:
        EmailServiceUnavailableError: If the reset email could not be sent
    """
    admin = await AdminRepository.get_by_email(db, _normalize_email(email))
    if admin is None:
        logger.info("Password reset requested for unknown email")
        return

    reset_link = await issue_reset_link(db, admin)

    sent = await send_password_reset(
        to_email=admin.email,
        username=admin.username,
        reset_link=reset_link,
        expires_minutes=settings.password_reset_expire_minutes,
    )
    if not sent:
        logger.error(f"Failed to send password reset email for admin {admin.id}")
        raise EmailServiceUnavailableError()

    logger.info(f"Password reset email sent for admin {admin.id}")


async def reset_password(
    db: AsyncSession,
    email: str,
    token: str,
    new_password: str,
) -> None:
    """
    Redeem a reset token and set a new password.

    Raises:
        InvalidResetTokenError: Unknown email, no outstanding token or wrong token
        ResetTokenExpiredError: Correct token past its expiry
    """
    admin = await AdminRepository.get_by_email(db, _normalize_email(email))

    if admin is None or not admin.reset_token_hash or admin.reset_token_expires_at is None:
        raise InvalidResetTokenError()

    if not token_matches(token, admin.reset_token_hash):
        logger.warning(f"Wrong reset token presented for admin {admin.id}")
        raise InvalidResetTokenError()

    if ensure_utc(admin.reset_token_expires_at) <= utcnow():
        logger.info(f"Expired reset token presented for admin {admin.id}")
        raise ResetTokenExpiredError()

    # a concurrent redemption may have consumed the token since it was read
    if not await admin_service.redeem_reset_token(db, admin, hash_token(token), new_password):
        logger.warning(f"Reset token for admin {admin.id} was already used")
        raise InvalidResetTokenError()

    logger.info(f"Password reset completed for admin {admin.id}")
