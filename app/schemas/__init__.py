"""Pydantic schemas for API request/response validation."""

from app.schemas.user import UserCreate, UserInfo, UserResponse
from app.schemas.auth import (
    AccessTokenPayload,
    RefreshTokenPayload,
    TokenPair,
    LoginResult,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    LogoutRequest,
    TokenResponse,
    SessionResponse,
    MessageResponse,
    LogoutAllResponse,
)

__all__ = [
    "UserCreate",
    "UserInfo",
    "UserResponse",
    "AccessTokenPayload",
    "RefreshTokenPayload",
    "TokenPair",
    "LoginResult",
    "LoginRequest",
    "LoginResponse",
    "RefreshRequest",
    "LogoutRequest",
    "TokenResponse",
    "SessionResponse",
    "MessageResponse",
    "LogoutAllResponse",
]
