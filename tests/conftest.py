"""
Shared fixtures: a throwaway SQLite database per test and wired-up services.

Run with: pytest -v
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from app.db.session import build_engine, build_session_factory, init_db
from app.models.refresh_token_session import RefreshTokenSession
from app.models.user import User
from app.services.auth_service import AuthService
from app.services.session_store import SessionStore
from app.services.token_codec import TokenCodec
from app.services.token_hasher import TokenHasher
from app.services.user_directory import UserDirectory

ACCESS_SECRET = "test-access-secret-0123456789"
REFRESH_SECRET = "test-refresh-secret-9876543210"

USER_EMAIL = "a@x.com"
USER_PASSWORD = "p1"
CLIENT_IP = "10.0.0.1"
CLIENT_UA = "Mozilla/5.0 (X11; Linux x86_64) TestBrowser/1.0"


# ============================================
# Database
# ============================================

@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ============================================
# Services
# ============================================

@pytest.fixture
def codec():
    return TokenCodec(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def hasher():
    return TokenHasher()


@pytest.fixture
def store(db):
    return SessionStore(db)


@pytest.fixture
def users(db):
    return UserDirectory(db)


@pytest.fixture
def auth_service(users, codec, store, hasher):
    return AuthService(users=users, codec=codec, sessions=store, hasher=hasher)


# ============================================
# Data
# ============================================

async def create_user(db, email=USER_EMAIL, password=USER_PASSWORD, name="Alice", is_active=True):
    user = User(
        email=email,
        password_hash=UserDirectory.hash_password(password),
        name=name,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def user(db):
    return await create_user(db)


def make_session(user_id, token_hash, expires_in=timedelta(hours=10), ip=CLIENT_IP, ua=CLIENT_UA):
    return RefreshTokenSession(
        user_id=user_id,
        refresh_token_hash=token_hash,
        expires_at=datetime.now(timezone.utc) + expires_in,
        ip_address=ip,
        user_agent=ua,
    )
