"""Task Manager API: application factory and process entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import api_router
from app.core.config import Settings, get_settings
from app.core.dependencies import get_fingerprint_policy_dep, get_token_codec
from app.core.exceptions import AppError
from app.db.session import close_db, init_db

settings = get_settings()
logger = logging.getLogger("taskmanager")


# ─────────────────────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────────────────────
def configure_logging(config: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S",
    )
    if not config.debug:
        # Engine and driver chatter only in debug
        for noisy in ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite"):
            logging.getLogger(noisy).setLevel(logging.WARNING)


configure_logging(settings)


# ─────────────────────────────────────────────────────────────
# Error handling
# ─────────────────────────────────────────────────────────────
async def unhandled_error_middleware(request: Request, call_next):
    """Last line of defence: log the traceback, answer with a generic 500."""
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception(f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}")
        content = {"detail": "Internal server error"}
        if settings.debug:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Domain errors become {"detail": ...} with their own status code."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


# ─────────────────────────────────────────────────────────────
# Lifespan
# ─────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.app_name} v{app.version} starting ({settings.environment})")

    # Missing secrets or an unknown policy abort startup here
    get_token_codec()
    logger.info(f"Session fingerprint policy: {get_fingerprint_policy_dep().name}")

    await init_db()
    logger.info("Database ready")

    yield

    logger.info("Shutting down")
    await close_db()


# ─────────────────────────────────────────────────────────────
# Application
# ─────────────────────────────────────────────────────────────
app = FastAPI(
    title=settings.app_name,
    description="Task management API: authentication and session lifecycle",
    version="1.0.0",
    # Interactive docs are a debug-only convenience
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

app.add_exception_handler(AppError, app_error_handler)
app.add_middleware(BaseHTTPMiddleware, dispatch=unhandled_error_middleware)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts_list)

# Credentials must be allowed or browsers drop the refresh cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    max_age=600,
)

app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
