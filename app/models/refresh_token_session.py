"""Refresh token session model."""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base

if TYPE_CHECKING:
    from app.models.user import User


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RefreshTokenSession(Base):
    """
    Server-side record of one refresh token.

    - Only the SHA-256 hash of the token is stored, never the token itself
    - revoked_at is set on logout-all / hijack detection and never cleared
    - ip_address and user_agent are the client fingerprint captured when
      the token was issued
    """

    __tablename__ = "refresh_token_sessions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    refresh_token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    # Client fingerprint
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    user_agent: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user: Mapped["User"] = relationship("User", back_populates="sessions")

    __table_args__ = (Index("ix_refresh_token_sessions_user_revoked", "user_id", "revoked_at"),)

    def __repr__(self) -> str:
        return (
            f"<RefreshTokenSession(id={self.id}, user_id={self.user_id}, "
            f"revoked={self.is_revoked()})>"
        )

    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= _as_utc(self.expires_at)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Active iff not revoked and not past expiry."""
        return not self.is_revoked() and not self.is_expired(now)

    def has_ip_changed(self, ip_address: str) -> bool:
        return self.ip_address != ip_address

    def has_user_agent_changed(self, user_agent: str) -> bool:
        return self.user_agent != user_agent
