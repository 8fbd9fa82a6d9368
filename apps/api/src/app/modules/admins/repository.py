"""
Admin Repository

Database operations for administrator accounts.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.admins.models import Admin

logger = logging.getLogger(__name__)


class AdminRepository:
    """Repository for administrator database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        username: str,
        email: str,
        password_hash: str,
    ) -> Admin:
        """
        Create a new administrator record.

        Args:
            db: Database session
            username: Login name (unique)
            email: Email address used for password resets (unique)
            password_hash: bcrypt hash of the password

        Returns:
            Created Admin instance
        """
        admin = Admin(
            username=username,
            email=email,
            password_hash=password_hash,
        )

        db.add(admin)
        await db.commit()
        await db.refresh(admin)

        logger.info(f"Created admin: {admin.id} - {admin.username}")
        return admin

    @staticmethod
    async def get_by_id(db: AsyncSession, admin_id: UUID) -> Admin | None:
        return await db.get(Admin, admin_id)

    @staticmethod
    async def get_by_username(db: AsyncSession, username: str) -> Admin | None:
        result = await db.execute(select(Admin).where(Admin.username == username))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Admin | None:
        result = await db.execute(select(Admin).where(Admin.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def set_reset_token(
        db: AsyncSession,
        admin: Admin,
        token_hash: str,
        expires_at: datetime,
    ) -> Admin:
        """Store a reset token digest, replacing any outstanding one."""
        admin.reset_token_hash = token_hash
        admin.reset_token_expires_at = expires_at
        await db.commit()
        await db.refresh(admin)
        return admin

    @staticmethod
    async def update_password(db: AsyncSession, admin: Admin, password_hash: str) -> Admin:
        """
        Replace the password hash and clear reset token state.

        Both changes land in the same commit, so a redeemed token can never
        be used again.
        """
        admin.password_hash = password_hash
        admin.reset_token_hash = None
        admin.reset_token_expires_at = None
        await db.commit()
        await db.refresh(admin)

        logger.info(f"Password updated for admin {admin.id}")
        return admin

    @staticmethod
    async def redeem_reset_token(
        db: AsyncSession,
        admin: Admin,
        token_hash: str,
        password_hash: str,
    ) -> bool:
        """
        Swap in a new password only while `token_hash` is still the stored digest.

        The check and the write are one UPDATE, so of two requests racing
        with the same token exactly one sees a row change. Returns False
        when the token was already consumed or replaced.
        """
        result = await db.execute(
            update(Admin)
            .where(Admin.id == admin.id, Admin.reset_token_hash == token_hash)
            .values(
                password_hash=password_hash,
                reset_token_hash=None,
                reset_token_expires_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        redeemed = result.rowcount == 1
        await db.commit()
        if not redeemed:
            return False

        await db.refresh(admin)
        logger.info(f"Reset token redeemed for admin {admin.id}")
        return True
