"""Request gate: authentication and role-route middleware.

Every request is evaluated on its own, with no database access:

1. Public pages and the login/logout endpoints pass.
2. Static assets, API docs and API routes pass (API handlers authorize
   themselves), except ``/api/auth/me``.
3. No token cookie: redirect to ``/sign-in``.
4. Token fails verification: redirect to ``/sign-in`` and clear cookies.
5. Role not allowed on the path prefix: redirect to the role's own
   dashboard.
6. Otherwise forward, with the identity on ``request.state``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.logging import logger
from core.policy import home_path, matches_prefix, required_roles
from core.tokens import TokenCodec
from fastapi import Request
from fastapi.responses import RedirectResponse
from schemas.auth import TokenClaims
from starlette.middleware.base import BaseHTTPMiddleware

SESSION_COOKIE = "session-token"
ADMIN_SESSION_COOKIE = "admin-session"
SIGN_IN_PATH = "/sign-in"

PUBLIC_ROUTES = (
    "/sign-in",
    "/sign-up",
    "/forgot-password",
    "/api/auth/login",
    "/api/auth/logout",
    "/",
    "/admin-login",
)

ASSET_PREFIXES = ("/static", "/docs", "/redoc", "/openapi.json")

GATED_API_ROUTES = ("/api/auth/me",)


class Outcome(str, Enum):
    FORWARD = "forward"
    SIGN_IN = "sign_in"
    HOME = "home"


@dataclass
class GateDecision:
    outcome: Outcome
    location: Optional[str] = None
    clear_cookie: bool = False
    claims: Optional[TokenClaims] = None


def is_public(path: str) -> bool:
    return any(matches_prefix(path, route) for route in PUBLIC_ROUTES)


def is_passthrough(path: str) -> bool:
    """Assets and API routes that authorize themselves."""

    if any(matches_prefix(path, prefix) for prefix in ASSET_PREFIXES):
        return True
    # top-level files only (favicon.ico, robots.txt); nested paths stay gated
    if path.count("/") == 1 and "." in path:
        return True
    if path.startswith("/api/"):
        return not any(matches_prefix(path, route) for route in GATED_API_ROUTES)
    return False


def evaluate(path: str, token: Optional[str], codec: TokenCodec) -> GateDecision:
    """Decide what to do with a request for ``path`` carrying ``token``."""

    if is_public(path) or is_passthrough(path):
        return GateDecision(Outcome.FORWARD)

    if not token:
        return GateDecision(Outcome.SIGN_IN, location=SIGN_IN_PATH)

    claims = codec.verify(token)
    if claims is None:
        return GateDecision(Outcome.SIGN_IN, location=SIGN_IN_PATH, clear_cookie=True)

    roles = required_roles(path)
    if roles is not None and claims.user_type not in roles:
        return GateDecision(
            Outcome.HOME, location=home_path(claims.user_type), claims=claims
        )

    return GateDecision(Outcome.FORWARD, claims=claims)


def token_from_request(request: Request) -> Optional[str]:
    return request.cookies.get(SESSION_COOKIE) or request.cookies.get(
        ADMIN_SESSION_COOKIE
    )


class RequestGateMiddleware(BaseHTTPMiddleware):
    """Apply :func:`evaluate` to every HTTP request."""

    def __init__(self, app, codec: TokenCodec):
        super().__init__(app)
        self.codec = codec

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        decision = evaluate(path, token_from_request(request), self.codec)

        if decision.outcome is Outcome.FORWARD:
            if decision.claims is not None:
                request.state.claims = decision.claims
                request.state.user_id = decision.claims.user_id
                request.state.user_type = decision.claims.user_type
            return await call_next(request)

        if decision.outcome is Outcome.HOME:
            logger.info(
                "Role {} not allowed on {}, redirecting to {}",
                decision.claims.user_type.value,
                path,
                decision.location,
            )
        else:
            logger.debug("Unauthenticated request to {}, redirecting", path)

        response = RedirectResponse(url=decision.location)
        if decision.clear_cookie:
            response.delete_cookie(SESSION_COOKIE, path="/")
            response.delete_cookie(ADMIN_SESSION_COOKIE, path="/")
        return response
