"""Password reset flow: request code, verify code, set new password.

The verification step is a demo: any account accepts one fixed 6-digit
code. A successful verification yields a short-lived signed reset token
bound to the email, which the final step requires.

Completing a reset deletes every session of the principal. Tokens already
issued stay valid until they expire.
"""

import re
from datetime import timedelta

from core.errors import ValidationError
from core.logging import logger
from core.tokens import TokenCodec
from services import audit
from services.audit import AuditLogWriter
from services.principals import PrincipalDirectory
from services.session_store import SessionStore

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CODE_PATTERN = re.compile(r"^\d{6}$")
MIN_PASSWORD_LENGTH = 8

RESET_REQUESTED_MESSAGE = (
    "If an account with this email exists, a verification code has been sent."
)


class PasswordResetService:
    def __init__(
        self,
        principals: PrincipalDirectory,
        codec: TokenCodec,
        sessions: SessionStore,
        audit_log: AuditLogWriter,
        demo_code: str = "123456",
        reset_ttl: timedelta = timedelta(minutes=15),
    ):
        self.principals = principals
        self.codec = codec
        self.sessions = sessions
        self.audit_log = audit_log
        self.demo_code = demo_code
        self.reset_ttl = reset_ttl

    async def request_reset(
        self, email: str, ip_address: str | None = None, user_agent: str | None = None
    ) -> str:
        """Start a reset for ``email``.

        The returned message is the same whether or not an account matches,
        so the endpoint cannot be used to enumerate emails.

        Raises:
            ValidationError: If the email is empty or malformed.
        """
        if not email:
            raise ValidationError("Email is required")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format")

        row = await self.principals.find_by_email(email)
        if row is not None:
            await self.audit_log.record(
                user_id=row.id,
                user_type=row.kind,
                action=audit.PASSWORD_RESET_REQUESTED,
                entity="User",
                entity_id=row.id,
                changes={"email": email},
                ip_address=ip_address,
                user_agent=user_agent,
            )
            # TODO: deliver the code through a mail backend instead of the log.
            logger.info("Password reset code issued for {}", email)
        return RESET_REQUESTED_MESSAGE

    def verify_code(self, email: str, code: str) -> str:
        """Exchange a verification code for a signed reset token.

        Raises:
            ValidationError: On a missing field, a malformed or a wrong code.
        """
        if not email or not code:
            raise ValidationError("Email and verification code are required")
        if not CODE_PATTERN.match(code):
            raise ValidationError("Invalid verification code format")
        if code != self.demo_code:
            raise ValidationError("Invalid or expired verification code")
        return self.codec.issue_reset(email, self.reset_ttl)

    async def reset_password(
        self,
        email: str,
        reset_token: str,
        new_password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> int:
        """Set a new password and delete all sessions of the principal.

        Returns:
            int: Number of sessions deleted.

        Raises:
            ValidationError: On a weak password, a bad reset token, or an
                unknown email.
        """
        if not email or not reset_token or not new_password:
            raise ValidationError("Email, reset token, and new password are required")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        if self.codec.verify_reset(reset_token) != email:
            raise ValidationError("Invalid reset token or user not found")

        row = await self.principals.find_by_email(email)
        if row is None:
            raise ValidationError("Invalid reset token or user not found")

        await self.principals.set_password(row.kind, row.id, new_password)
        terminated = await self.sessions.terminate_all(row.id)
        await self.audit_log.record(
            user_id=row.id,
            user_type=row.kind,
            action=audit.PASSWORD_RESET_COMPLETED,
            entity="User",
            entity_id=row.id,
            changes={"email": email, "terminatedSessions": terminated},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return terminated
