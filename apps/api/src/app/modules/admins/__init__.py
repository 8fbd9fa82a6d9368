"""
Admins Module

Administrator accounts: credential verification, password changes and
the idempotent initial-admin bootstrap.
"""

from app.modules.admins.models import Admin
from app.modules.admins.repository import AdminRepository

__all__ = ["Admin", "AdminRepository"]
