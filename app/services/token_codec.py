"""Signing and verification of access and refresh JWTs."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from app.core.config import Settings
from app.core.exceptions import ConfigurationError, InvalidTokenError
from app.schemas.auth import AccessTokenPayload, RefreshTokenPayload

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenCodec:
    """
    Issues and verifies the two token kinds.

    Access and refresh tokens are signed with independent secrets, so a
    refresh token can never be replayed as an access token and vice versa.
    Both secrets must be configured; there is no generated fallback.
    """

    def __init__(
        self,
        access_secret: Optional[str],
        refresh_secret: Optional[str],
        access_ttl: timedelta = timedelta(hours=2),
        refresh_ttl: timedelta = timedelta(hours=10),
        issuer: str = "task-management-api",
        algorithm: str = "HS256",
    ):
        if not access_secret or not access_secret.strip():
            raise ConfigurationError(
                "JWT access secret not configured. Set JWT_ACCESS_SECRET in environment."
            )
        if not refresh_secret or not refresh_secret.strip():
            raise ConfigurationError(
                "JWT refresh secret not configured. Set JWT_REFRESH_SECRET in environment."
            )
        if access_secret == refresh_secret:
            raise ConfigurationError("JWT access and refresh secrets must differ.")

        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.issuer = issuer
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            access_secret=settings.jwt_access_secret,
            refresh_secret=settings.jwt_refresh_secret,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(hours=settings.refresh_token_expire_hours),
            issuer=settings.jwt_issuer,
            algorithm=settings.jwt_algorithm,
        )

    # ─── Issue ──────────────────────────────────
    def _sign(self, claims: dict, secret: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iss": self.issuer,
            "iat": now,
            "exp": now + ttl,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def issue_access_token(self, user_id: str, email: str) -> str:
        return self._sign(
            {"userId": str(user_id), "email": email, "type": ACCESS_TOKEN_TYPE},
            self._access_secret,
            self.access_ttl,
        )

    def issue_refresh_token(self, user_id: str) -> str:
        return self._sign(
            {"userId": str(user_id), "type": REFRESH_TOKEN_TYPE},
            self._refresh_secret,
            self.refresh_ttl,
        )

    # ─── Verify ─────────────────────────────────
    def _decode(self, token: str, secret: str, token_type: str) -> dict:
        if not token or not isinstance(token, str):
            raise InvalidTokenError()
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require_exp": True, "require_iss": True},
            )
        except JWTError:
            # Covers bad signature, expiry and issuer mismatch alike.
            raise InvalidTokenError()

        if claims.get("type") != token_type:
            raise InvalidTokenError()
        return claims

    def verify_access_token(self, token: str) -> AccessTokenPayload:
        claims = self._decode(token, self._access_secret, ACCESS_TOKEN_TYPE)
        try:
            return AccessTokenPayload.model_validate(claims)
        except ValidationError:
            raise InvalidTokenError()

    def verify_refresh_token(self, token: str) -> RefreshTokenPayload:
        claims = self._decode(token, self._refresh_secret, REFRESH_TOKEN_TYPE)
        try:
            return RefreshTokenPayload.model_validate(claims)
        except ValidationError:
            raise InvalidTokenError()
