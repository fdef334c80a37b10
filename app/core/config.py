"""Application configuration settings."""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Task Manager API"
    app_env: str = "development"
    debug: bool = True

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = "sqlite+aiosqlite:///./taskmanager.db"

    # JWT Authentication
    # No defaults on purpose: the token codec refuses to start without them.
    jwt_access_secret: Optional[str] = None
    jwt_refresh_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "task-management-api"
    access_token_expire_minutes: int = 120
    refresh_token_expire_hours: int = 10

    # Refresh token cookie
    refresh_cookie_name: str = "refresh_token"
    refresh_cookie_secure: bool = True
    refresh_cookie_path: str = "/"

    # Session hijack detection: "strict" or "off"
    fingerprint_policy: str = "strict"

    # Only honour X-Forwarded-For / X-Real-IP behind a trusted reverse proxy
    trust_proxy_headers: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Security
    allowed_hosts: str = "*"

    @property
    def allowed_hosts_list(self) -> List[str]:
        """Get allowed hosts as a list."""
        return [host.strip() for host in self.allowed_hosts.split(",")]

    @property
    def environment(self) -> str:
        """Alias for app_env."""
        return self.app_env

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def refresh_token_max_age(self) -> int:
        """Refresh cookie max-age in seconds, matching the refresh token lifetime."""
        return self.refresh_token_expire_hours * 3600

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
