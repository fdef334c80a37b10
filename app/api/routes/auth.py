"""Authentication endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.dependencies import (
    AuthServiceDep,
    CurrentUser,
    TokenPayloadDep,
    get_client_ip,
    get_user_agent,
)
from app.core.exceptions import (
    ExpiredTokenError,
    InvalidTokenError,
    RevokedTokenError,
    SecurityViolationError,
)
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LogoutAllResponse,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    SessionResponse,
    TokenResponse,
)
from app.schemas.user import UserCreate, UserResponse

router = APIRouter()


# ─────────────────────────────────────────────
# Refresh token cookie
# ─────────────────────────────────────────────

def set_refresh_cookie(response: Response, token: str) -> None:
    """HttpOnly, SameSite=strict cookie living exactly as long as the refresh token."""
    settings = get_settings()
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=token,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="strict",
        max_age=settings.refresh_token_max_age,
        path=settings.refresh_cookie_path,
    )


def clear_refresh_cookie(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        path=settings.refresh_cookie_path,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="strict",
    )


def read_refresh_token(request: Request, body: Optional[RefreshRequest]) -> Optional[str]:
    """Cookie first, then JSON body."""
    token = request.cookies.get(get_settings().refresh_cookie_name)
    if not token and body is not None:
        token = body.refresh_token
    return token or None


def _expires_in(auth_service) -> int:
    return int(auth_service.codec.access_ttl.total_seconds())


# ─────────────────────────────────────────────
# Register
# ─────────────────────────────────────────────

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, auth_service: AuthServiceDep):
    """Create an account. Log in separately to obtain tokens."""
    return await auth_service.users.create_user(user_data)


# ─────────────────────────────────────────────
# Login
# ─────────────────────────────────────────────

@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
):
    """
    Authenticate a user.
    Returns the access token in the body and sets the refresh token cookie.
    """
    result = await auth_service.login(
        credentials.email,
        credentials.password,
        get_client_ip(request),
        get_user_agent(request),
    )
    set_refresh_cookie(response, result.refresh_token)

    return LoginResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        expires_in=_expires_in(auth_service),
        user=result.user,
    )


# ─────────────────────────────────────────────
# Refresh Token (Rotation)
# ─────────────────────────────────────────────

@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    body: Optional[RefreshRequest] = None,
):
    """
    Rotate the refresh token and get a new access token + refresh token.
    """
    token = read_refresh_token(request, body)
    if not token:
        raise InvalidTokenError("Refresh token is required")

    try:
        tokens = await auth_service.refresh(token, get_client_ip(request), get_user_agent(request))
    except (SecurityViolationError, RevokedTokenError, ExpiredTokenError) as exc:
        # The token can never succeed again; drop it from the browser
        failed = JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers={"WWW-Authenticate": "Bearer"},
        )
        clear_refresh_cookie(failed)
        return failed

    set_refresh_cookie(response, tokens.refresh_token)

    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=_expires_in(auth_service),
    )


# ─────────────────────────────────────────────
# Logout
# ─────────────────────────────────────────────

@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    payload: TokenPayloadDep,
    auth_service: AuthServiceDep,
    body: Optional[LogoutRequest] = None,
):
    """Delete the current session and clear the refresh cookie."""
    token = read_refresh_token(request, body)
    if token:
        await auth_service.logout(payload.user_id, token)

    clear_refresh_cookie(response)
    return MessageResponse(message="Logout successful")


@router.post("/logout-all", response_model=LogoutAllResponse)
async def logout_all(
    response: Response,
    payload: TokenPayloadDep,
    auth_service: AuthServiceDep,
):
    """Revoke every session of the current user ("sign out everywhere")."""
    revoked = await auth_service.logout_all(payload.user_id)

    clear_refresh_cookie(response)
    return LogoutAllResponse(message="Logged out from all devices", revoked=revoked)


# ─────────────────────────────────────────────
# Current User
# ─────────────────────────────────────────────

@router.get("/me", response_model=UserResponse)
async def get_current_user(current_user: CurrentUser):
    """Return authenticated user's info."""
    return current_user


@router.get("/sessions", response_model=List[SessionResponse])
async def list_sessions(current_user: CurrentUser, auth_service: AuthServiceDep):
    """Active sessions (signed-in devices) of the current user."""
    return await auth_service.get_active_sessions(current_user.id)
