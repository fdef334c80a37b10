"""Authentication request/response schemas and token payloads."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from app.schemas.user import UserInfo


# ─────────────────────────────────────────────
# Token payloads (wire shape: userId / email / type)
# ─────────────────────────────────────────────

class AccessTokenPayload(BaseModel):
    """Decoded access token."""
    user_id: str = Field(alias="userId")
    email: str
    type: Literal["access"]
    iss: str
    exp: datetime
    iat: Optional[datetime] = None
    jti: Optional[str] = None

    model_config = {"populate_by_name": True}


class RefreshTokenPayload(BaseModel):
    """Decoded refresh token."""
    user_id: str = Field(alias="userId")
    type: Literal["refresh"]
    iss: str
    exp: datetime
    iat: Optional[datetime] = None
    jti: Optional[str] = None

    model_config = {"populate_by_name": True}


# ─────────────────────────────────────────────
# Service results
# ─────────────────────────────────────────────

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class LoginResult(TokenPair):
    user: UserInfo


# ─────────────────────────────────────────────
# API schemas
# ─────────────────────────────────────────────

class LoginRequest(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    """Refresh token may come from the body when the cookie is unavailable."""
    refresh_token: Optional[str] = None


class LogoutRequest(RefreshRequest):
    pass


class TokenResponse(BaseModel):
    """Access token handed to the client; the refresh token also travels in a cookie."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class LoginResponse(TokenResponse):
    user: UserInfo


class SessionResponse(BaseModel):
    """An active session as shown to its owner. No token hash."""
    id: str
    ip_address: str
    user_agent: str
    created_at: datetime
    expires_at: datetime

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    """Simple message response."""
    message: str


class LogoutAllResponse(MessageResponse):
    revoked: int
