"""
Tests for the administrator credential service against an in-memory database.
"""

from datetime import UTC, datetime, timedelta

import pytest

from app.core.security import verify_password
from app.modules.admins.repository import AdminRepository
from app.modules.admins.service import (
    authenticate,
    ensure_initial_admin,
    redeem_reset_token,
    set_password,
)


@pytest.mark.asyncio
async def test_authenticate_success(db_session, admin, admin_password):
    result = await authenticate(db_session, "registrar", admin_password)
    assert result is not None
    assert result.id == admin.id


@pytest.mark.asyncio
async def test_authenticate_wrong_password(db_session, admin):
    assert await authenticate(db_session, "registrar", "wrong-password") is None


@pytest.mark.asyncio
async def test_authenticate_unknown_username(db_session, admin, admin_password):
    assert await authenticate(db_session, "someone-else", admin_password) is None


@pytest.mark.asyncio
async def test_authenticate_username_is_exact(db_session, admin, admin_password):
    assert await authenticate(db_session, "Registrar", admin_password) is None


@pytest.mark.asyncio
async def test_set_password_clears_reset_token(db_session, admin, admin_password):
    await AdminRepository.set_reset_token(
        db_session, admin, "a" * 64, datetime.now(UTC) + timedelta(hours=1)
    )

    updated = await set_password(db_session, admin, "brand-new-password")

    assert updated.reset_token_hash is None
    assert updated.reset_token_expires_at is None
    assert verify_password("brand-new-password", updated.password_hash)
    assert not verify_password(admin_password, updated.password_hash)


@pytest.mark.asyncio
async def test_redeem_reset_token_only_once(db_session, admin, admin_password):
    await AdminRepository.set_reset_token(
        db_session, admin, "b" * 64, datetime.now(UTC) + timedelta(hours=1)
    )

    assert await redeem_reset_token(db_session, admin, "b" * 64, "first-new-password") is True
    assert await redeem_reset_token(db_session, admin, "b" * 64, "second-new-password") is False

    await db_session.refresh(admin)
    assert admin.reset_token_hash is None
    assert verify_password("first-new-password", admin.password_hash)


@pytest.mark.asyncio
async def test_redeem_with_replaced_token_fails(db_session, admin, admin_password):
    await AdminRepository.set_reset_token(
        db_session, admin, "c" * 64, datetime.now(UTC) + timedelta(hours=1)
    )

    assert await redeem_reset_token(db_session, admin, "d" * 64, "new-password-1") is False

    await db_session.refresh(admin)
    assert admin.reset_token_hash == "c" * 64
    assert verify_password(admin_password, admin.password_hash)


@pytest.mark.asyncio
async def test_ensure_initial_admin_creates_once(db_session):
    first = await ensure_initial_admin(
        db_session, username=" owner ", email=" Owner@Example.com ", password="first-password"
    )
    second = await ensure_initial_admin(
        db_session, username="owner", email="owner@example.com", password="second-password"
    )

    assert first.id == second.id
    assert first.username == "owner"
    assert first.email == "owner@example.com"
    # The existing password is never overwritten
    assert verify_password("first-password", second.password_hash)


@pytest.mark.asyncio
async def test_ensure_initial_admin_matches_existing_email(db_session, admin):
    result = await ensure_initial_admin(
        db_session, username="another-name", email=admin.email, password="whatever"
    )

    assert result.id == admin.id
    assert await AdminRepository.get_by_username(db_session, "another-name") is None
