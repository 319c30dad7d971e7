"""Signed session tokens.

A session token is an HS256 JWT carrying the principal's id, kind and
username, the id of the paired session record (``sid``) and an expiry.
Tokens are stateless: validity is signature plus expiry and nothing else,
so deleting the session record does not invalidate a token.

:meth:`TokenCodec.verify` never raises. A tampered token, a malformed
payload and an expired token all come back as ``None`` and callers must not
try to tell them apart.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from core.logging import logger
from jwt.exceptions import InvalidTokenError
from models.principals import PrincipalKind
from pydantic import ValidationError
from schemas.auth import TokenClaims

SESSION_TOKEN_TYPE = "session"
RESET_TOKEN_TYPE = "password_reset"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Issue and verify signed tokens with a server-held secret.

    Args:
        secret_key: Signing secret.
        algorithm: JWT algorithm; symmetric (HS*) in practice.
        clock: Returns the current aware UTC time. Injected for tests.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret_key:
            raise ValueError("A token signing secret is required")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.clock = clock

    def _encode(self, payload: dict, ttl: timedelta) -> tuple[str, datetime]:
        now = self.clock()
        expires_at = now + ttl
        payload.update({"iat": int(now.timestamp()), "exp": expires_at})
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return token, expires_at

    def _decode(self, token: str) -> dict | None:
        try:
            # NOTE: expiry is checked against the injected clock below, not
            # PyJWT's wall clock.
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["exp"]},
            )
        except InvalidTokenError as e:
            logger.debug("Rejected token: {}", e)
            return None
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            return None
        if self.clock().timestamp() >= exp:
            logger.debug("Rejected token: expired")
            return None
        return payload

    def issue(
        self,
        user_id: str,
        user_type: PrincipalKind,
        username: str,
        ttl: timedelta,
        session_id: str | None = None,
    ) -> tuple[str, datetime]:
        """Create a session token.

        Args:
            user_id: Principal id.
            user_type: Principal kind.
            username: Principal username.
            ttl: Lifetime of the token.
            session_id: Id of the paired session record, if any.

        Returns:
            tuple[str, datetime]: (encoded_token, expires_at)
        """
        payload = {
            "userId": user_id,
            "userType": PrincipalKind(user_type).value,
            "username": username,
            "token_type": SESSION_TOKEN_TYPE,
        }
        if session_id:
            payload["sid"] = session_id
        return self._encode(payload, ttl)

    def verify(self, token: str | None) -> TokenClaims | None:
        """Return the claims of a valid session token, else ``None``."""

        if not token:
            return None
        payload = self._decode(token)
        if payload is None or payload.get("token_type") != SESSION_TOKEN_TYPE:
            return None
        try:
            return TokenClaims(
                user_id=payload["userId"],
                user_type=payload["userType"],
                username=payload["username"],
                session_id=payload.get("sid"),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError, ValidationError):
            logger.debug("Rejected token: malformed payload")
            return None

    def issue_reset(self, email: str, ttl: timedelta) -> str:
        """Create a short-lived token authorizing a password reset for ``email``."""

        token, _ = self._encode({"email": email, "token_type": RESET_TOKEN_TYPE}, ttl)
        return token

    def verify_reset(self, token: str | None) -> str | None:
        """Return the email a valid reset token was issued for, else ``None``."""

        if not token:
            return None
        payload = self._decode(token)
        if payload is None or payload.get("token_type") != RESET_TOKEN_TYPE:
            return None
        email = payload.get("email")
        return email if isinstance(email, str) else None
