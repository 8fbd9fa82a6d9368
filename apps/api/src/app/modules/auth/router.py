"""
Authentication Router

Endpoints:
- POST /auth/login - Exchange username/password for an access token
- POST /auth/logout - Client-side logout acknowledgement (tokens are stateless)
- POST /auth/forgot-password - Email a password reset link
- POST /auth/reset-password - Redeem a reset token and set a new password

Security:
- Rate limiting per client IP on every endpoint that checks a secret
- Uniform responses for unknown accounts
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import to_http_exception
from app.core.rate_limit import rate_limit
from app.modules.auth import service
from app.modules.auth.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    ResetPasswordRequest,
)
from app.modules.auth.service import AuthServiceError
from app.modules.shared import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Admin Login",
    responses={
        401: {"description": "Invalid credentials"},
        429: {"description": "Too many login attempts"},
    },
)
@rate_limit(limit=10, window_seconds=60)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate an administrator and return a JWT access token.

    Raises:
        HTTPException 401: Invalid credentials (same payload for any mismatch)
    """
    try:
        return await service.login(db, credentials.username, credentials.password)
    except AuthServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error during login: {e}")
        raise _internal_error() from e


@router.post("/logout", response_model=MessageResponse, summary="Admin Logout")
async def logout() -> MessageResponse:
    """Tokens are not tracked server-side; the client discards its token."""
    return MessageResponse(message="Logged out successfully.")


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request Password Reset",
    responses={
        500: {"description": "Email service unavailable"},
        429: {"description": "Too many reset requests"},
    },
)
@rate_limit(limit=5, window_seconds=15 * 60)
async def forgot_password(
    request: Request,
    data: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Email a one-hour reset link to the administrator with this email.

    The response is the same whether or not the email belongs to an account.
    """
    try:
        await service.request_password_reset(db, data.email)
        return MessageResponse(message=service.FORGOT_PASSWORD_MESSAGE)
    except AuthServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error during forgot-password: {e}")
        raise _internal_error() from e


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset Password",
    responses={
        400: {"description": "Invalid or expired reset token"},
        429: {"description": "Too many reset attempts"},
    },
)
@rate_limit(limit=10, window_seconds=15 * 60)
async def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Redeem a reset token and set a new password. Each token works once."""
    try:
        await service.reset_password(db, data.email, data.token, data.new_password)
        return MessageResponse(message="Password has been reset successfully.")
    except AuthServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error during reset-password: {e}")
        raise _internal_error() from e
