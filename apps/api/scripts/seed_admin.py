"""
Seed Initial Admin

Creates the administrator account configured by ADMIN_USERNAME,
ADMIN_EMAIL and ADMIN_PASSWORD (environment or .env). Running it again
is harmless: an existing account with that username or email is left
untouched.

Usage:
    cd apps/api
    ADMIN_USERNAME=admin ADMIN_EMAIL=admin@example.com ADMIN_PASSWORD=... \
        python scripts/seed_admin.py
"""

import asyncio
import logging
import sys

from app.core.config import settings
from app.core.database import async_session_maker, close_db
from app.core.logging_config import setup_logging
from app.modules.admins.service import ensure_initial_admin

logger = logging.getLogger("seed_admin")


async def seed_admin() -> int:
    """Create the configured admin if it doesn't exist. Returns a process exit code."""
    if not settings.initial_admin_configured:
        logger.error("ADMIN_USERNAME, ADMIN_EMAIL and ADMIN_PASSWORD must all be set")
        return 1

    try:
        async with async_session_maker() as db:
            admin = await ensure_initial_admin(
                db,
                username=settings.admin_username,
                email=settings.admin_email,
                password=settings.admin_password.get_secret_value(),
            )
        logger.info(f"Admin ready: {admin.username} <{admin.email}> (id={admin.id})")
    finally:
        await close_db()

    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(seed_admin()))
