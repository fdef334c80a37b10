"""Authentication service: login, refresh token rotation, logout and hijack detection."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from app.core.exceptions import (
    AuthenticationError,
    ExpiredTokenError,
    InvalidTokenError,
    NotFoundError,
    RevokedTokenError,
    SecurityViolationError,
)
from app.models.refresh_token_session import RefreshTokenSession
from app.schemas.auth import AccessTokenPayload, LoginResult, TokenPair
from app.schemas.user import UserInfo
from app.services.fingerprint import FingerprintPolicy, StrictFingerprintPolicy
from app.services.session_store import SessionStore
from app.services.token_codec import TokenCodec
from app.services.token_hasher import TokenHasher
from app.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


class AuthService:
    """
    Session lifecycle orchestration.

    Holds no state of its own: every session lives in the SessionStore.
    Per user a session moves none -> active -> revoked | expired | rotated
    away. Rotation deletes the old row and inserts a new one; it never
    edits a session in place.
    """

    def __init__(
        self,
        users: UserDirectory,
        codec: TokenCodec,
        sessions: SessionStore,
        hasher: Optional[TokenHasher] = None,
        fingerprint_policy: Optional[FingerprintPolicy] = None,
    ):
        self.users = users
        self.codec = codec
        self.sessions = sessions
        self.hasher = hasher or TokenHasher()
        self.fingerprint_policy = fingerprint_policy or StrictFingerprintPolicy()

    # ─── Helpers ─────────────────────────────────
    def _new_session(
        self,
        user_id: str,
        refresh_token: str,
        ip_address: str,
        user_agent: str,
    ) -> RefreshTokenSession:
        return RefreshTokenSession(
            user_id=user_id,
            refresh_token_hash=self.hasher.hash(refresh_token),
            expires_at=datetime.now(timezone.utc) + self.codec.refresh_ttl,
            ip_address=ip_address or "",
            user_agent=user_agent or "",
        )

    async def _cleanup_expired(self, user_id: str) -> None:
        try:
            await self.sessions.delete_expired(user_id)
        except Exception as e:
            # Housekeeping only; never fails the caller
            logger.warning(f"Expired session cleanup failed for user {user_id[:8]}...: {e}")

    # ─── Login ───────────────────────────────────
    async def login(
        self,
        email: str,
        password: str,
        ip_address: str,
        user_agent: str,
    ) -> LoginResult:
        """
        Authenticate by email/password and open a new session.

        Unknown email, wrong password and inactive account all raise the
        same AuthenticationError.
        """
        user = await self.users.find_by_email(email)
        password_ok = self.users.verify_password(password, user.password_hash if user else None)

        if not user or not password_ok or not user.is_active:
            logger.info("Login failed")
            raise AuthenticationError()

        access_token = self.codec.issue_access_token(user.id, user.email)
        refresh_token = self.codec.issue_refresh_token(user.id)

        await self.sessions.create(
            self._new_session(user.id, refresh_token, ip_address, user_agent)
        )
        await self._cleanup_expired(user.id)

        user.last_login = datetime.now(timezone.utc)
        logger.info(f"User {user.id[:8]}... logged in")

        return LoginResult(
            access_token=access_token,
            refresh_token=refresh_token,
            user=UserInfo(id=user.id, email=user.email, name=user.name),
        )

    # ─── Refresh (Rotation) ──────────────────────
    async def refresh(
        self,
        refresh_token: str,
        ip_address: str,
        user_agent: str,
    ) -> TokenPair:
        """
        Exchange a refresh token for a new access/refresh pair.

        Malformed, forged and unknown tokens are indistinguishable to the
        caller. A fingerprint mismatch revokes every session of the user.
        """
        payload = self.codec.verify_refresh_token(refresh_token)

        session = await self.sessions.find_by_token_hash(self.hasher.hash(refresh_token))
        if session is None or session.user_id != payload.user_id:
            raise InvalidTokenError()

        if session.is_revoked():
            raise RevokedTokenError()

        if session.is_expired():
            await self.sessions.delete(session.id)
            await self.sessions.commit()
            raise ExpiredTokenError()

        if self.fingerprint_policy.is_suspicious(session, ip_address or "", user_agent or ""):
            revoked = await self.sessions.revoke_all_for_user(session.user_id)
            await self.sessions.commit()
            logger.warning(
                f"Suspicious refresh for user {session.user_id[:8]}... "
                f"(policy={self.fingerprint_policy.name}); revoked {revoked} sessions"
            )
            raise SecurityViolationError()

        user = await self.users.find_by_id(session.user_id)
        if user is None:
            raise NotFoundError("User not found")

        new_access_token = self.codec.issue_access_token(user.id, user.email)
        new_refresh_token = self.codec.issue_refresh_token(user.id)

        replaced = await self.sessions.replace(
            session.id,
            self._new_session(user.id, new_refresh_token, ip_address, user_agent),
        )
        if replaced is None:
            # A concurrent refresh consumed this token first
            logger.warning(f"Lost refresh race for user {user.id[:8]}...")
            raise InvalidTokenError()

        return TokenPair(access_token=new_access_token, refresh_token=new_refresh_token)

    # ─── Logout Current Session ─────────────────
    async def logout(self, user_id: str, refresh_token: str) -> None:
        """Delete the session for this token. Unknown tokens are ignored."""
        if not refresh_token:
            return
        deleted = await self.sessions.delete_by_token_hash(
            self.hasher.hash(refresh_token), user_id=user_id
        )
        if deleted:
            logger.info(f"User {user_id[:8]}... logged out")

    # ─── Logout All Devices ─────────────────────
    async def logout_all(self, user_id: str) -> int:
        revoked = await self.sessions.revoke_all_for_user(user_id)
        logger.info(f"User {user_id[:8]}... signed out everywhere ({revoked} sessions)")
        return revoked

    # ─── Token Verification ─────────────────────
    def verify_access_token(self, token: str) -> AccessTokenPayload:
        return self.codec.verify_access_token(token)

    # ─── Session Listing ────────────────────────
    async def get_active_sessions(self, user_id: str) -> List[RefreshTokenSession]:
        return await self.sessions.find_active_by_user(user_id)
