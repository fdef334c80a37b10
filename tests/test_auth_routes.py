"""
HTTP-level tests for the /api/v1/auth endpoints.

Run with: pytest tests/test_auth_routes.py -v
"""

import httpx
import pytest
import pytest_asyncio

from app.core.config import get_settings
from app.core.dependencies import get_token_codec
from app.db.session import get_db
from main import app

from conftest import CLIENT_UA, USER_EMAIL, USER_PASSWORD, create_user

COOKIE = get_settings().refresh_cookie_name


@pytest_asyncio.fixture
async def client(session_factory, codec):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_codec] = lambda: codec

    # https so the Secure refresh cookie is sent back
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="https://test",
        headers={"User-Agent": CLIENT_UA},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def _login(client, email=USER_EMAIL, password=USER_PASSWORD):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


# ============================================
# Health
# ============================================

class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ============================================
# Register / Login
# ============================================

class TestRegisterAndLogin:
    """Tests for account creation and credential login."""

    @pytest.mark.asyncio
    async def test_register_then_login(self, client):
        payload = {"email": "new@x.com", "password": "long-enough-pw", "name": "New User"}

        created = await client.post("/api/v1/auth/register", json=payload)
        assert created.status_code == 201
        assert created.json()["email"] == "new@x.com"
        assert "password_hash" not in created.json()

        duplicate = await client.post("/api/v1/auth/register", json=payload)
        assert duplicate.status_code == 409

        login = await _login(client, "new@x.com", "long-enough-pw")
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_login_sets_refresh_cookie(self, client, db):
        await create_user(db)

        response = await _login(client)

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 2 * 3600
        assert body["user"]["email"] == USER_EMAIL
        assert client.cookies.get(COOKIE) == body["refresh_token"]

        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie
        assert "samesite=strict" in set_cookie
        assert "secure" in set_cookie
        assert f"max-age={10 * 3600}" in set_cookie

    @pytest.mark.asyncio
    async def test_bad_credentials(self, client, db):
        await create_user(db)

        wrong = await _login(client, password="nope")
        unknown = await _login(client, email="ghost@x.com")

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"detail": "Invalid email or password"}
        assert wrong.headers["www-authenticate"] == "Bearer"


# ============================================
# Refresh
# ============================================

class TestRefreshEndpoint:
    """Tests for token rotation over HTTP."""

    @pytest.mark.asyncio
    async def test_refresh_via_cookie_rotates(self, client, db):
        await create_user(db)
        old_token = (await _login(client)).json()["refresh_token"]

        response = await client.post("/api/v1/auth/refresh")

        assert response.status_code == 200
        new_token = response.json()["refresh_token"]
        assert new_token != old_token
        assert client.cookies.get(COOKIE) == new_token

        # Replaying the predecessor fails
        client.cookies.clear()
        replay = await client.post("/api/v1/auth/refresh", json={"refresh_token": old_token})
        assert replay.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_via_body(self, client, db):
        await create_user(db)
        token = (await _login(client)).json()["refresh_token"]
        client.cookies.clear()

        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": token})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_refresh_without_token(self, client):
        response = await client.post("/api/v1/auth/refresh")

        assert response.status_code == 401
        assert response.json()["detail"] == "Refresh token is required"

    @pytest.mark.asyncio
    async def test_refresh_from_other_device_revokes_all(self, client, db):
        await create_user(db)
        token = (await _login(client)).json()["refresh_token"]

        hijack = await client.post("/api/v1/auth/refresh", headers={"User-Agent": "curl/8.0"})
        assert hijack.status_code == 401
        assert hijack.json()["detail"].startswith("Suspicious activity detected")
        assert hijack.headers["www-authenticate"] == "Bearer"
        assert "max-age=0" in hijack.headers["set-cookie"].lower()

        # The revocation was committed despite the error
        client.cookies.clear()
        again = await client.post("/api/v1/auth/refresh", json={"refresh_token": token})
        assert again.status_code == 401
        assert "revoked" in again.json()["detail"]
        assert "max-age=0" in again.headers["set-cookie"].lower()


# ============================================
# Authenticated endpoints
# ============================================

class TestAuthenticatedEndpoints:
    """Tests for endpoints behind the bearer access token."""

    @pytest.mark.asyncio
    async def test_me(self, client, db):
        user = await create_user(db)
        access = (await _login(client)).json()["access_token"]

        response = await client.get("/api/v1/auth/me", headers=_bearer(access))

        assert response.status_code == 200
        assert response.json()["id"] == user.id
        assert response.json()["last_login"] is not None

    @pytest.mark.asyncio
    async def test_me_requires_valid_bearer(self, client, db):
        await create_user(db)
        refresh = (await _login(client)).json()["refresh_token"]

        missing = await client.get("/api/v1/auth/me")
        wrong_kind = await client.get("/api/v1/auth/me", headers=_bearer(refresh))

        assert missing.status_code == 401
        assert missing.headers["www-authenticate"] == "Bearer"
        assert wrong_kind.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_clears_cookie_and_session(self, client, db):
        await create_user(db)
        body = (await _login(client)).json()

        response = await client.post("/api/v1/auth/logout", headers=_bearer(body["access_token"]))

        assert response.status_code == 200
        assert "max-age=0" in response.headers["set-cookie"].lower()

        client.cookies.clear()
        replay = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": body["refresh_token"]}
        )
        assert replay.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_all_and_sessions(self, client, db):
        await create_user(db)
        await _login(client)
        access = (await _login(client)).json()["access_token"]

        sessions = await client.get("/api/v1/auth/sessions", headers=_bearer(access))
        assert sessions.status_code == 200
        assert len(sessions.json()) == 2
        assert all("refresh_token_hash" not in s for s in sessions.json())
        assert all(s["user_agent"] == CLIENT_UA for s in sessions.json())

        response = await client.post("/api/v1/auth/logout-all", headers=_bearer(access))
        assert response.status_code == 200
        assert response.json()["revoked"] == 2

        sessions = await client.get("/api/v1/auth/sessions", headers=_bearer(access))
        assert sessions.json() == []
