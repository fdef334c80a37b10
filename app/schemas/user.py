"""User schemas for API validation."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    """Schema for user registration."""
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    name: str = Field(min_length=2, max_length=255)


class UserInfo(BaseModel):
    """Minimal user info returned on login. Never includes the password hash."""
    id: str
    email: str
    name: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """Schema for user response."""
    id: str
    email: str
    name: str
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True
