"""
Admin Credential Service

Verifies administrator credentials and owns password changes.

Security considerations:
- Passwords are stored as salted bcrypt hashes only
- Unknown usernames still pay for a bcrypt comparison, so response
  timing does not reveal which accounts exist
- Setting a password always clears any outstanding reset token
"""

import logging
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password, verify_password
from app.modules.admins.models import Admin
from app.modules.admins.repository import AdminRepository

logger = logging.getLogger(__name__)


@lru_cache
def _dummy_password_hash() -> str:
    return hash_password("not-a-real-password")


async def authenticate(db: AsyncSession, username: str, password: str) -> Admin | None:
    """
    Return the administrator if username and password match, else None.

    Unknown username and wrong password are indistinguishable to callers.
    """
    admin = await AdminRepository.get_by_username(db, username)

    if admin is None:
        verify_password(password, _dummy_password_hash())
        logger.warning(f"Login attempt for unknown username: {username}")
        return None

    if not verify_password(password, admin.password_hash):
        logger.warning(f"Invalid password for admin: {username}")
        return None

    return admin


async def set_password(db: AsyncSession, admin: Admin, new_password: str) -> Admin:
    """Hash and store a new password, clearing reset token state in the same write."""
    return await AdminRepository.update_password(db, admin, hash_password(new_password))


async def redeem_reset_token(
    db: AsyncSession, admin: Admin, token_hash: str, new_password: str
) -> bool:
    """Set a new password if the reset token digest is still outstanding."""
    return await AdminRepository.redeem_reset_token(
        db, admin, token_hash, hash_password(new_password)
    )


async def ensure_initial_admin(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
) -> Admin:
    """
    Create the initial administrator if it does not exist yet.

    Idempotent: an existing account with the same username or email is
    returned unchanged (its password is not overwritten).
    """
    username = username.strip()
    email = email.strip().lower()

    existing = await AdminRepository.get_by_username(db, username)
    if existing is None:
        existing = await AdminRepository.get_by_email(db, email)

    if existing is not None:
        logger.info(f"Initial admin already present: {existing.username}")
        return existing

    admin = await AdminRepository.create(
        db,
        username=username,
        email=email,
        password_hash=hash_password(password),
    )
    logger.info(f"Initial admin created: {admin.username}")
    return admin
