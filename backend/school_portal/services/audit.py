"""Append-only audit trail of security-relevant actions.

Audit writes are best-effort: they run in their own unit of work after the
action they describe, and a failed write is logged and dropped rather than
failing the request.
"""

from typing import Any

from core.logging import logger
from models.auth import AuditLog
from models.principals import PrincipalKind
from schemas.auth import AuditEntry
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

LOGIN = "LOGIN"
LOGIN_FAILED = "LOGIN_FAILED"
LOGOUT = "LOGOUT"
CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"
TERMINATE_SESSIONS = "TERMINATE_SESSIONS"
TERMINATE_ALL_SESSIONS = "TERMINATE_ALL_SESSIONS"
PASSWORD_RESET_REQUESTED = "PASSWORD_RESET_REQUESTED"
PASSWORD_RESET_COMPLETED = "PASSWORD_RESET_COMPLETED"

# Actor recorded when a failed login matches no principal.
ANONYMOUS_USER_ID = "anonymous"


class AuditLogWriter:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record(
        self,
        user_id: str,
        user_type: PrincipalKind | str,
        action: str,
        entity: str,
        entity_id: str | None = None,
        changes: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> bool:
        """Append one audit entry.

        Returns:
            bool: False when the entry could not be written. Never raises.
        """
        try:
            entry = AuditLog(
                user_id=user_id,
                user_type=getattr(user_type, "value", user_type),
                action=action,
                entity=entity,
                entity_id=str(entity_id) if entity_id is not None else None,
                changes=changes,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            async with self.session_factory() as db:
                db.add(entry)
                await db.commit()
        except Exception:
            logger.exception(
                "Failed to write audit entry action={} user_id={}", action, user_id
            )
            return False
        logger.debug("Audit {} {} user_id={}", action, entity, user_id)
        return True

    async def list_for(self, user_id: str, action: str | None = None) -> list[AuditEntry]:
        """Return a user's audit entries, oldest first."""

        stmt = select(AuditLog).filter(AuditLog.user_id == user_id).order_by(AuditLog.id)
        if action:
            stmt = stmt.filter(AuditLog.action == action)
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [AuditEntry.model_validate(row) for row in result.scalars().all()]
