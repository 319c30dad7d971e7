"""Credential verification and login/logout.

LOGIN FLOW:

1. Find the principal by username. With a user type, only that table is
   searched. Without one, tables are probed ADMIN -> TEACHER -> STUDENT ->
   PARENT and the first username match wins; usernames are only unique
   within a table, so this order is the tie-break.
2. Verify the password. A missing principal still costs one hash
   verification so response time does not reveal which usernames exist.
3. On failure: audit ``LOGIN_FAILED`` with the attempted username and raise
   one generic ``AuthenticationError``.
4. On success: pick a session id, issue a token embedding it, store the
   session row, audit ``LOGIN``.

The session row and the audit entry are separate writes; a crash between
them leaves a session without an audit entry.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from core.errors import AuthenticationError
from core.logging import logger
from core.tokens import TokenCodec
from models.principals import PRINCIPAL_MODELS, PrincipalKind
from schemas.auth import Principal, TokenClaims
from services import audit
from services.audit import AuditLogWriter
from services.principals import (
    PrincipalDirectory,
    get_password_hash,
    to_principal,
    verify_password,
)
from services.session_store import SessionStore

INVALID_CREDENTIALS = "Invalid username or password"


@dataclass
class LoginResult:
    principal: Principal
    token: str
    session_id: str
    expires_at: datetime


class Authenticator:
    """Authenticate principals and manage the session/audit side effects.

    Args:
        principals: Principal lookup across the four tables.
        codec: Token codec used to sign session tokens.
        sessions: Session store receiving one row per login.
        audit_log: Audit writer for LOGIN / LOGIN_FAILED / LOGOUT.
        session_ttl: Default token and session lifetime.
    """

    def __init__(
        self,
        principals: PrincipalDirectory,
        codec: TokenCodec,
        sessions: SessionStore,
        audit_log: AuditLogWriter,
        session_ttl: timedelta = timedelta(hours=24),
    ):
        self.principals = principals
        self.codec = codec
        self.sessions = sessions
        self.audit_log = audit_log
        self.session_ttl = session_ttl
        # NOTE: verified against when no principal matches, to equalize timing.
        self._dummy_hash = get_password_hash(uuid.uuid4().hex)

    async def find_principal(self, username: str, user_type: PrincipalKind | None = None):
        kinds = [PrincipalKind(user_type)] if user_type else list(PRINCIPAL_MODELS)
        for kind in kinds:
            row = await self.principals.find_by_username(kind, username)
            if row is not None:
                return row
        return None

    async def login(
        self,
        username: str,
        password: str,
        user_type: PrincipalKind | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        ttl: timedelta | None = None,
    ) -> LoginResult:
        """Verify credentials and open a session.

        Args:
            username: Login name.
            password: Clear-text password.
            user_type: Restrict the lookup to one principal kind.
            ip_address: Client IP, stored on the session and audit entry.
            user_agent: Client user-agent, stored likewise.
            ttl: Token/session lifetime; defaults to ``session_ttl``.

        Returns:
            LoginResult: The principal, signed token and session details.

        Raises:
            AuthenticationError: For every kind of credential failure.
        """
        row = await self.find_principal(username, user_type)
        if row is None:
            verify_password(password, self._dummy_hash)
            valid = False
        else:
            valid = verify_password(password, row.hashed_password)

        if not valid:
            logger.warning("Failed login attempt for username={}", username)
            await self.audit_log.record(
                user_id=row.id if row is not None else audit.ANONYMOUS_USER_ID,
                user_type=row.kind if row is not None else (user_type or "UNKNOWN"),
                action=audit.LOGIN_FAILED,
                entity="Session",
                changes={"username": username},
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise AuthenticationError(INVALID_CREDENTIALS)

        principal = to_principal(row)
        ttl = ttl or self.session_ttl
        session_id = str(uuid.uuid4())
        token, expires_at = self.codec.issue(
            principal.id,
            principal.user_type,
            principal.username,
            ttl,
            session_id=session_id,
        )
        await self.sessions.create(
            principal.id,
            principal.user_type,
            ip_address,
            user_agent,
            ttl,
            session_id=session_id,
            expires_at=expires_at,
        )
        await self.audit_log.record(
            user_id=principal.id,
            user_type=principal.user_type,
            action=audit.LOGIN,
            entity="Session",
            entity_id=session_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(
            "User {} logged in as {}", principal.username, principal.user_type.value
        )
        return LoginResult(principal, token, session_id, expires_at)

    async def logout(
        self,
        claims: TokenClaims,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Delete the session paired with ``claims`` and audit the logout."""

        if claims.session_id:
            await self.sessions.terminate(claims.user_id, [claims.session_id])
        await self.audit_log.record(
            user_id=claims.user_id,
            user_type=claims.user_type,
            action=audit.LOGOUT,
            entity="Session",
            entity_id=claims.session_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info("User {} logged out", claims.username)
