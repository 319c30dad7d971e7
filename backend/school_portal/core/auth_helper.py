"""Authentication helpers for API routes.

API routes are not covered by the request gate (it lets ``/api/*`` through),
so they resolve identity themselves through :func:`get_current_claims`,
which answers with a JSON 401 instead of a redirect.

Identity comes from the session cookie, or from an ``Authorization: Bearer``
header for non-browser clients.
"""

from typing import Annotated, Optional

from core.dependencies import get_session_store, get_token_codec
from core.errors import AuthenticationError, AuthorizationError
from core.gate import ADMIN_SESSION_COOKIE, SESSION_COOKIE, token_from_request
from core.logging import logger
from core.policy import has_permission
from core.tokens import TokenCodec
from fastapi import Depends, Request, Response
from fastapi.security import OAuth2PasswordBearer
from schemas.auth import TokenClaims
from services.session_store import SessionStore

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_device_info(request: Request) -> str:
    """Extract the user-agent from a request, truncated to 255 characters."""

    user_agent = request.headers.get("user-agent", "Unknown")
    return user_agent[:255]


def get_client_ip(request: Request) -> str:
    """Determine the client's IP address from the request.

    Prefers the `X-Forwarded-For` header when present (typical when
    the app is behind a proxy/load-balancer), otherwise falls back to the
    direct client address exposed by the ASGI server.

    Args:
        request: FastAPI request object.

    Returns:
        str: Client IP address or "unknown" if it cannot be determined.
    """

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def set_session_cookie(
    response: Response,
    token: str,
    max_age: int,
    secure: bool,
    key: str = SESSION_COOKIE,
) -> None:
    """Attach a session token cookie (HttpOnly, SameSite=Lax, path /)."""

    response.set_cookie(
        key=key,
        value=token,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=max_age,
        path="/",
    )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(ADMIN_SESSION_COOKIE, path="/")


async def get_current_claims(
    request: Request,
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    sessions: Annotated[SessionStore, Depends(get_session_store)],
    bearer: Annotated[Optional[str], Depends(oauth2_scheme)] = None,
) -> TokenClaims:
    """Validate the caller's token and return its claims.

    The paired session's ``last_active`` is refreshed when it still exists;
    a deleted session does not reject the token.

    Raises:
        AuthenticationError: If no valid token is presented.
    """
    token = token_from_request(request) or bearer
    claims = codec.verify(token)
    if claims is None:
        if token:
            logger.warning("Invalid session token on {}", request.url.path)
        raise AuthenticationError("Not authenticated")
    if claims.session_id:
        await sessions.touch(claims.session_id)
    return claims


CurrentClaims = Annotated[TokenClaims, Depends(get_current_claims)]


def require_permission(resource: str, action: str):
    """Build a dependency that admits callers whose role may ``action`` ``resource``.

    Usage:
        claims: TokenClaims = Depends(require_permission("users", "create"))
    """

    async def dependency(claims: CurrentClaims) -> TokenClaims:
        if not has_permission(claims.user_type, resource, action):
            logger.warning(
                "Permission denied role={} resource={} action={}",
                claims.user_type.value,
                resource,
                action,
            )
            raise AuthorizationError()
        return claims

    return dependency
