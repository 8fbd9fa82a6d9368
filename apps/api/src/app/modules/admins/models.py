"""
Administrator Models

The administrator credential record, including the outstanding password
reset token (stored only as a SHA-256 digest).
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel


class Admin(BaseModel):
    """An administrator who reviews ID card applications."""

    __tablename__ = "admins"

    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    # Password reset (at most one outstanding token)
    reset_token_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    reset_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Admin(id={self.id}, username={self.username})>"
