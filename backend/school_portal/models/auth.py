"""Authentication models: login sessions and the audit trail.

Sessions record each login for multi-device visibility and termination;
audit log rows record security-relevant actions and are never updated.
"""

import uuid
from datetime import datetime, timezone

from db.session import Base
from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.sql import func


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Session(Base):
    """Persisted record of one login.

    A session is not consulted to gate requests (the signed token is); it
    backs the "active sessions" listing and session termination.

    Attributes:
        id: Primary key, also embedded in the token as ``sid``.
        user_id: Principal id (string; principals live in four tables).
        user_type: Principal kind.
        ip_address: Originating client IP.
        user_agent: Client user-agent string.
        created_at: Login timestamp.
        last_active: Last time the session was seen by an API handler.
        expires_at: Expiry of the paired token.
    """

    __tablename__ = "sessions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    user_type = Column(String, nullable=False)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_active = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)


class AuditLog(Base):
    """Append-only audit entry.

    Attributes:
        id: Primary key.
        user_id: Acting principal id.
        user_type: Acting principal kind.
        action: e.g. ``LOGIN``, ``LOGIN_FAILED``, ``LOGOUT``, ``CREATE``.
        entity: Affected entity name (``Session``, ``User``, ``Assignment``).
        entity_id: Optional id of the affected row.
        changes: Optional JSON payload describing the change.
        ip_address: Originating client IP.
        user_agent: Client user-agent string.
        created_at: Time of the action.
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    user_type = Column(String, nullable=False)
    action = Column(String, nullable=False)
    entity = Column(String, nullable=False)
    entity_id = Column(String, nullable=True)
    changes = Column(JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
