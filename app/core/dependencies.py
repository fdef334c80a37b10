"""FastAPI dependencies: database session, auth service wiring, current user."""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import InvalidTokenError
from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import AccessTokenPayload
from app.services.auth_service import AuthService
from app.services.fingerprint import FingerprintPolicy, get_fingerprint_policy
from app.services.session_store import SessionStore
from app.services.token_codec import TokenCodec
from app.services.user_directory import UserDirectory

DbSession = Annotated[AsyncSession, Depends(get_db)]

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_token_codec() -> TokenCodec:
    """Process-wide codec. Raises ConfigurationError if secrets are missing."""
    return TokenCodec.from_settings(get_settings())


@lru_cache()
def get_fingerprint_policy_dep() -> FingerprintPolicy:
    return get_fingerprint_policy(get_settings().fingerprint_policy)


def get_auth_service(
    db: DbSession,
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    policy: Annotated[FingerprintPolicy, Depends(get_fingerprint_policy_dep)],
) -> AuthService:
    return AuthService(
        users=UserDirectory(db),
        codec=codec,
        sessions=SessionStore(db),
        fingerprint_policy=policy,
    )


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def get_client_ip(request: Request) -> str:
    """Extract client IP, consulting proxy headers only when configured to trust them."""
    if get_settings().trust_proxy_headers:
        # Check X-Forwarded-For header (set by reverse proxies)
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # Take the first IP (client IP)
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("User-Agent", "")


async def get_token_payload(
    auth_service: AuthServiceDep,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> AccessTokenPayload:
    """Verify the bearer access token. Missing or malformed headers are 401s."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise InvalidTokenError("Authorization header is required. Expected: Bearer <token>")
    return auth_service.verify_access_token(credentials.credentials)


async def get_current_user(
    payload: Annotated[AccessTokenPayload, Depends(get_token_payload)],
    auth_service: AuthServiceDep,
) -> User:
    """Resolve the token's user; deleted or deactivated users are rejected."""
    user = await auth_service.users.find_by_id(payload.user_id)
    if user is None or not user.is_active:
        raise InvalidTokenError("User not found or has been deleted")
    return user


TokenPayloadDep = Annotated[AccessTokenPayload, Depends(get_token_payload)]
CurrentUser = Annotated[User, Depends(get_current_user)]
