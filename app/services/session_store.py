"""Persistence of refresh token sessions."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.models.refresh_token_session import RefreshTokenSession

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """
    CRUD and domain queries over RefreshTokenSession.

    Every mutation is a single-row or filtered bulk statement. Inserts run
    inside a savepoint so a uniqueness violation leaves the caller's unit
    of work usable.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def commit(self) -> None:
        await self.db.commit()

    # ─── Create ─────────────────────────────────
    async def create(self, session: RefreshTokenSession) -> RefreshTokenSession:
        try:
            async with self.db.begin_nested():
                self.db.add(session)
                await self.db.flush()
        except IntegrityError:
            raise ConflictError("Refresh token session already exists")
        return session

    # ─── Queries ────────────────────────────────
    async def find_by_id(self, session_id: str) -> Optional[RefreshTokenSession]:
        result = await self.db.execute(
            select(RefreshTokenSession)
            .where(RefreshTokenSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_token_hash(self, token_hash: str) -> Optional[RefreshTokenSession]:
        result = await self.db.execute(
            select(RefreshTokenSession)
            .where(RefreshTokenSession.refresh_token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_user(self, user_id: str) -> List[RefreshTokenSession]:
        result = await self.db.execute(
            select(RefreshTokenSession)
            .where(RefreshTokenSession.user_id == user_id)
            .order_by(RefreshTokenSession.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_active_by_user(self, user_id: str) -> List[RefreshTokenSession]:
        """Sessions that are neither revoked nor expired."""
        result = await self.db.execute(
            select(RefreshTokenSession)
            .where(
                RefreshTokenSession.user_id == user_id,
                RefreshTokenSession.revoked_at.is_(None),
                RefreshTokenSession.expires_at > _utcnow(),
            )
            .order_by(RefreshTokenSession.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    # ─── Revocation ─────────────────────────────
    async def revoke(self, session_id: str) -> RefreshTokenSession:
        """Set revoked_at once. Revoking a revoked session changes nothing."""
        now = _utcnow()
        await self.db.execute(
            update(RefreshTokenSession)
            .where(
                RefreshTokenSession.id == session_id,
                RefreshTokenSession.revoked_at.is_(None),
            )
            .values(revoked_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        session = await self.find_by_id(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        return session

    async def revoke_all_for_user(self, user_id: str) -> int:
        now = _utcnow()
        result = await self.db.execute(
            update(RefreshTokenSession)
            .where(
                RefreshTokenSession.user_id == user_id,
                RefreshTokenSession.revoked_at.is_(None),
            )
            .values(revoked_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # ─── Deletion ───────────────────────────────
    async def delete(self, session_id: str) -> bool:
        result = await self.db.execute(
            delete(RefreshTokenSession)
            .where(RefreshTokenSession.id == session_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete_by_token_hash(self, token_hash: str, user_id: Optional[str] = None) -> bool:
        """Hard delete. Returns False when nothing matched."""
        stmt = delete(RefreshTokenSession).where(
            RefreshTokenSession.refresh_token_hash == token_hash
        )
        if user_id is not None:
            stmt = stmt.where(RefreshTokenSession.user_id == user_id)
        result = await self.db.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount > 0

    async def delete_expired(self, user_id: Optional[str] = None) -> int:
        """
        Remove sessions past expiry, for one user or globally.

        Runs in its own savepoint so a failure never poisons the caller's
        transaction. Safe to run repeatedly and concurrently.
        """
        stmt = delete(RefreshTokenSession).where(RefreshTokenSession.expires_at < _utcnow())
        if user_id is not None:
            stmt = stmt.where(RefreshTokenSession.user_id == user_id)
        async with self.db.begin_nested():
            result = await self.db.execute(stmt.execution_options(synchronize_session=False))
        count = result.rowcount
        if count > 0:
            logger.info(f"Cleaned up {count} expired refresh token sessions")
        return count

    # ─── Rotation ───────────────────────────────
    async def replace(
        self,
        old_session_id: str,
        new_session: RefreshTokenSession,
    ) -> Optional[RefreshTokenSession]:
        """
        Swap a live session for a new one in a single savepoint.

        The old row is only deleted while still unrevoked. If another
        request already consumed it, nothing is created and None is
        returned. If the insert fails, the delete is rolled back too.
        """
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(
                    delete(RefreshTokenSession)
                    .where(
                        RefreshTokenSession.id == old_session_id,
                        RefreshTokenSession.revoked_at.is_(None),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    return None
                self.db.add(new_session)
                await self.db.flush()
        except IntegrityError:
            raise ConflictError("Refresh token session already exists")
        return new_session
