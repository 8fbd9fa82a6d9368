"""
Unit tests for the authentication service layer.

These tests cover:
- Login (token issuance, uniform failure)
- Forgot password (silent for unknown emails, transport failures)
- Reset password (wrong, expired and valid tokens)
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse
from uuid import uuid4

import pytest

from app.core.security import decode_token, hash_token
from app.modules.admins.models import Admin
from app.modules.auth.service import (
    EmailServiceUnavailableError,
    InvalidCredentialsError,
    InvalidResetTokenError,
    ResetTokenExpiredError,
    issue_reset_link,
    login,
    request_password_reset,
    reset_password,
)


@pytest.fixture
def sample_admin():
    """Create a sample admin model."""
    admin = MagicMock(spec=Admin)
    admin.id = uuid4()
    admin.username = "registrar"
    admin.email = "registrar@example.com"
    admin.password_hash = "$2b$12$placeholder"
    admin.reset_token_hash = None
    admin.reset_token_expires_at = None
    return admin


def _with_reset_token(admin, token: str, expires_at: datetime):
    admin.reset_token_hash = hash_token(token)
    admin.reset_token_expires_at = expires_at
    return admin


class TestLogin:
    """Tests for login function."""

    @pytest.mark.asyncio
    async def test_login_success_issues_token_for_admin(self, mock_db, sample_admin):
        with patch("app.modules.auth.service.admin_service") as mock_admin_service:
            mock_admin_service.authenticate = AsyncMock(return_value=sample_admin)

            result = await login(mock_db, " registrar ", "password")

            mock_admin_service.authenticate.assert_called_once_with(
                mock_db, "registrar", "password"
            )

        payload = decode_token(result.token)
        assert payload["sub"] == str(sample_admin.id)
        assert payload["username"] == "registrar"
        assert result.token_type == "bearer"
        assert result.admin.email == "registrar@example.com"

    @pytest.mark.asyncio
    async def test_login_failure_is_uniform(self, mock_db):
        with patch("app.modules.auth.service.admin_service") as mock_admin_service:
            mock_admin_service.authenticate = AsyncMock(return_value=None)

            with pytest.raises(InvalidCredentialsError) as exc_info:
                await login(mock_db, "nobody", "password")

        assert exc_info.value.status_code == 401
        assert exc_info.value.error_code == "INVALID_CREDENTIALS"
        assert exc_info.value.message == "Invalid credentials."


class TestIssueResetLink:
    """Tests for reset link generation."""

    @pytest.mark.asyncio
    async def test_stores_only_digest_and_link_carries_plaintext(self, mock_db, sample_admin):
        with patch("app.modules.auth.service.AdminRepository") as mock_repo:
            mock_repo.set_reset_token = AsyncMock(return_value=sample_admin)

            link = await issue_reset_link(mock_db, sample_admin)

            _, _, stored_hash, expires_at = mock_repo.set_reset_token.call_args.args

        query = parse_qs(urlparse(link).query)
        token = query["token"][0]

        assert urlparse(link).path.endswith("/reset-password")
        assert query["email"] == ["registrar@example.com"]
        assert stored_hash == hash_token(token)
        assert stored_hash != token
        remaining = expires_at - datetime.now(UTC)
        assert timedelta(minutes=59) < remaining <= timedelta(minutes=60)

    @pytest.mark.asyncio
    async def test_each_link_has_a_fresh_token(self, mock_db, sample_admin):
        with patch("app.modules.auth.service.AdminRepository") as mock_repo:
            mock_repo.set_reset_token = AsyncMock(return_value=sample_admin)

            first = await issue_reset_link(mock_db, sample_admin)
            second = await issue_reset_link(mock_db, sample_admin)

        assert first != second


class TestRequestPasswordReset:
    """Tests for the forgot-password flow."""

    @pytest.mark.asyncio
    async def test_unknown_email_returns_silently(self, mock_db):
        with (
            patch("app.modules.auth.service.AdminRepository") as mock_repo,
            patch("app.modules.auth.service.send_password_reset") as mock_email,
        ):
            mock_repo.get_by_email = AsyncMock(return_value=None)
            mock_repo.set_reset_token = AsyncMock()
            mock_email.return_value = True

            await request_password_reset(mock_db, "nobody@example.com")

            mock_repo.set_reset_token.assert_not_called()
            mock_email.assert_not_called()

    @pytest.mark.asyncio
    async def test_known_email_sends_link(self, mock_db, sample_admin):
        with (
            patch("app.modules.auth.service.AdminRepository") as mock_repo,
            patch("app.modules.auth.service.send_password_reset") as mock_email,
        ):
            mock_repo.get_by_email = AsyncMock(return_value=sample_admin)
            mock_repo.set_reset_token = AsyncMock(return_value=sample_admin)
            mock_email.return_value = True

            await request_password_reset(mock_db, "  Registrar@Example.com ")

            mock_repo.get_by_email.assert_called_once_with(mock_db, "registrar@example.com")
            mock_email.assert_called_once()
            kwargs = mock_email.call_args.kwargs
            assert kwargs["to_email"] == "registrar@example.com"
            assert "/reset-password?token=" in kwargs["reset_link"]
            assert kwargs["expires_minutes"] == 60

    @pytest.mark.asyncio
    async def test_transport_failure_surfaces(self, mock_db, sample_admin):
        with (
            patch("app.modules.auth.service.AdminRepository") as mock_repo,
            patch("app.modules.auth.service.send_password_reset") as mock_email,
        ):
            mock_repo.get_by_email = AsyncMock(return_value=sample_admin)
            mock_repo.set_reset_token = AsyncMock(return_value=sample_admin)
            mock_email.return_value = False

            with pytest.raises(EmailServiceUnavailableError) as exc_info:
                await request_password_reset(mock_db, "registrar@example.com")

        assert exc_info.value.status_code == 500
        assert exc_info.value.error_code == "EMAIL_SERVICE_UNAVAILABLE"


class TestResetPassword:
    """Tests for reset token redemption."""

    @pytest.mark.asyncio
    async def test_unknown_email(self, mock_db):
        with patch("app.modules.auth.service.AdminRepository") as mock_repo:
            mock_repo.get_by_email = AsyncMock(return_value=None)

            with pytest.raises(InvalidResetTokenError):
                await reset_password(mock_db, "nobody@example.com", "token", "newpass")

    @pytest.mark.asyncio
    async def test_no_outstanding_token(self, mock_db, sample_admin):
        with patch("app.modules.auth.service.AdminRepository") as mock_repo:
            mock_repo.get_by_email = AsyncMock(return_value=sample_admin)

            with pytest.raises(InvalidResetTokenError):
                await reset_password(mock_db, sample_admin.email, "token", "newpass")

    @pytest.mark.asyncio
    async def test_wrong_token(self, mock_db, sample_admin):
        _with_reset_token(sample_admin, "right-token", datetime.now(UTC) + timedelta(minutes=30))

        with (
            patch("app.modules.auth.service.AdminRepository") as mock_repo,
            patch("app.modules.auth.service.admin_service") as mock_admin_service,
        ):
            mock_repo.get_by_email = AsyncMock(return_value=sample_admin)
            mock_admin_service.redeem_reset_token = AsyncMock()

            with pytest.raises(InvalidResetTokenError):
                await reset_password(mock_db, sample_admin.email, "wrong-token", "newpass")

            mock_admin_service.redeem_reset_token.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_correct_token(self, mock_db, sample_admin):
        _with_reset_token(sample_admin, "right-token", datetime.now(UTC) - timedelta(seconds=1))

        with (
            patch("app.modules.auth.service.AdminRepository") as mock_repo,
            patch("app.modules.auth.service.admin_service") as mock_admin_service,
        ):
            mock_repo.get_by_email = AsyncMock(return_value=sample_admin)
            mock_admin_service.redeem_reset_token = AsyncMock()

            with pytest.raises(ResetTokenExpiredError) as exc_info:
                await reset_password(mock_db, sample_admin.email, "right-token", "newpass")

            mock_admin_service.redeem_reset_token.assert_not_called()

        assert exc_info.value.error_code == "RESET_TOKEN_EXPIRED"

    @pytest.mark.asyncio
    async def test_expired_wrong_token_is_generic(self, mock_db, sample_admin):
        """Expiry is only revealed to callers holding the right token."""
        _with_reset_token(sample_admin, "right-token", datetime.now(UTC) - timedelta(hours=2))

        with patch("app.modules.auth.service.AdminRepository") as mock_repo:
            mock_repo.get_by_email = AsyncMock(return_value=sample_admin)

            with pytest.raises(InvalidResetTokenError):
                await reset_password(mock_db, sample_admin.email, "wrong-token", "newpass")

    @pytest.mark.asyncio
    async def test_valid_token_sets_password(self, mock_db, sample_admin):
        _with_reset_token(sample_admin, "right-token", datetime.now(UTC) + timedelta(minutes=30))

        with (
            patch("app.modules.auth.service.AdminRepository") as mock_repo,
            patch("app.modules.auth.service.admin_service") as mock_admin_service,
        ):
            mock_repo.get_by_email = AsyncMock(return_value=sample_admin)
            mock_admin_service.redeem_reset_token = AsyncMock(return_value=True)

            await reset_password(mock_db, sample_admin.email, "right-token", "newpass")

            mock_admin_service.redeem_reset_token.assert_called_once_with(
                mock_db, sample_admin, hash_token("right-token"), "newpass"
            )

    @pytest.mark.asyncio
    async def test_token_consumed_meanwhile(self, mock_db, sample_admin):
        """The conditional write finds the digest already cleared."""
        _with_reset_token(sample_admin, "right-token", datetime.now(UTC) + timedelta(minutes=30))

        with (
            patch("app.modules.auth.service.AdminRepository") as mock_repo,
            patch("app.modules.auth.service.admin_service") as mock_admin_service,
        ):
            mock_repo.get_by_email = AsyncMock(return_value=sample_admin)
            mock_admin_service.redeem_reset_token = AsyncMock(return_value=False)

            with pytest.raises(InvalidResetTokenError):
                await reset_password(mock_db, sample_admin.email, "right-token", "newpass")
