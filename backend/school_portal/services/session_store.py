"""Persisted login sessions.

Every successful login creates one session row. Rows back the "active
sessions" list and session termination. They are *not* what gates requests:
deleting a row leaves the paired token valid until it expires, so callers
must treat termination as "remove from the session list", not "force
logout".
"""

import uuid
from datetime import datetime, timedelta, timezone

from core.logging import logger
from models.auth import Session as SessionModel
from models.principals import PrincipalKind
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class SessionStore:
    """CRUD over the ``sessions`` table; each call is its own unit of work."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create(
        self,
        user_id: str,
        user_type: PrincipalKind,
        ip_address: str | None,
        user_agent: str | None,
        ttl: timedelta,
        session_id: str | None = None,
        expires_at: datetime | None = None,
    ) -> SessionModel:
        """Persist a new session expiring ``ttl`` from now.

        Args:
            user_id: Principal id.
            user_type: Principal kind.
            ip_address: Originating client IP.
            user_agent: Client user-agent.
            ttl: Session lifetime; should match the paired token's.
            session_id: Pre-generated id (embedded in the token), or None.
            expires_at: Expiry of the paired token; overrides ``ttl``.

        Returns:
            SessionModel: The stored row.
        """
        now = datetime.now(timezone.utc)
        record = SessionModel(
            id=session_id or str(uuid.uuid4()),
            user_id=user_id,
            user_type=PrincipalKind(user_type).value,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=now,
            last_active=now,
            expires_at=expires_at or now + ttl,
        )
        async with self.session_factory() as db:
            db.add(record)
            await db.commit()
        logger.info("Created session id={} for user_id={}", record.id, user_id)
        return record

    async def get(self, session_id: str) -> SessionModel | None:
        async with self.session_factory() as db:
            return await db.get(SessionModel, session_id)

    async def touch(self, session_id: str) -> None:
        """Record activity on a session. Unknown ids are ignored."""

        async with self.session_factory() as db:
            await db.execute(
                update(SessionModel)
                .where(SessionModel.id == session_id)
                .values(last_active=datetime.now(timezone.utc))
            )
            await db.commit()

    async def list_active(self, user_id: str) -> list[SessionModel]:
        """Return unexpired sessions of a user, most recently active first."""

        async with self.session_factory() as db:
            result = await db.execute(
                select(SessionModel)
                .filter(
                    SessionModel.user_id == user_id,
                    SessionModel.expires_at > datetime.now(timezone.utc),
                )
                .order_by(SessionModel.last_active.desc())
            )
            return list(result.scalars().all())

    async def terminate(
        self,
        user_id: str,
        session_ids: list[str] | None = None,
        keep: str | None = None,
    ) -> int:
        """Delete sessions of ``user_id``.

        Args:
            user_id: Owner of the sessions; other users' rows are never touched.
            session_ids: Only delete these ids. ``None`` means all of them.
            keep: Session id to preserve (the caller's current session).

        Returns:
            int: Number of rows deleted.
        """
        stmt = delete(SessionModel).where(SessionModel.user_id == user_id)
        if session_ids is not None:
            if not session_ids:
                return 0
            stmt = stmt.where(SessionModel.id.in_(session_ids))
        if keep:
            stmt = stmt.where(SessionModel.id != keep)
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()
        logger.info(
            "Terminated sessions for user_id={} (count={})", user_id, result.rowcount
        )
        return result.rowcount

    async def terminate_all(self, user_id: str) -> int:
        return await self.terminate(user_id)
