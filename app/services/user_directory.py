"""User lookup and password verification."""

import logging
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError
from app.models.user import User
from app.schemas.user import UserCreate

logger = logging.getLogger(__name__)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Precomputed fake hash to mitigate timing attacks
FAKE_HASHED_PASSWORD = pwd_context.hash(
    "this_is_a_fake_user_that_never_exists_2025"
)


class UserDirectory:
    """Users as seen by the authentication core: lookup, hashing, creation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Password ────────────────────────────────
    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain: str, hashed: Optional[str]) -> bool:
        """
        Constant-time bcrypt comparison.

        With no stored hash the fake hash is checked instead, so unknown
        emails cost the same as wrong passwords.
        """
        try:
            if hashed is None:
                pwd_context.verify(plain, FAKE_HASHED_PASSWORD)
                return False
            return pwd_context.verify(plain, hashed)
        except (ValueError, TypeError):
            # Malformed stored hash
            return False

    # ─── Lookup ──────────────────────────────────
    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    # ─── Registration ───────────────────────────
    async def create_user(self, user_data: UserCreate) -> User:
        email = user_data.email.strip().lower()
        if await self.find_by_email(email):
            raise ConflictError("Email already registered")

        user = User(
            email=email,
            password_hash=self.hash_password(user_data.password),
            name=user_data.name,
            is_active=True,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(user)
                await self.db.flush()
        except IntegrityError:
            raise ConflictError("Email already registered")

        logger.info(f"Registered user {user.id[:8]}...")
        return user
