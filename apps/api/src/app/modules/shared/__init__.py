"""Shared building blocks for the feature modules."""

from app.modules.shared.models import BaseModel, ensure_utc, utcnow
from app.modules.shared.schemas import CamelSchema, MessageResponse

__all__ = ["BaseModel", "CamelSchema", "MessageResponse", "ensure_utc", "utcnow"]
