"""Services for business logic."""

from app.services.auth_service import AuthService
from app.services.session_store import SessionStore
from app.services.token_codec import TokenCodec
from app.services.token_hasher import TokenHasher
from app.services.user_directory import UserDirectory

__all__ = ["AuthService", "SessionStore", "TokenCodec", "TokenHasher", "UserDirectory"]
