"""Database models."""

from app.models.user import User
from app.models.refresh_token_session import RefreshTokenSession

__all__ = [
    "User",
    "RefreshTokenSession",
]
