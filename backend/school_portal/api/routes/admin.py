"""Legacy admin login.

Kept for the old ``/admin-login`` page. Only admins are accepted; the
session lasts 7 days and travels in the ``admin-session`` cookie, which the
request gate honours when ``session-token`` is absent.
"""

from typing import Annotated

from core.auth_helper import get_client_ip, get_device_info, set_session_cookie
from core.dependencies import admin_session_ttl, get_authenticator, secure_cookies
from core.gate import ADMIN_SESSION_COOKIE
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from models.principals import PrincipalKind
from schemas.auth import AdminIdentity, AdminLoginRequest, AdminLoginResponse
from services.authenticator import Authenticator

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/login", response_model=AdminLoginResponse)
async def admin_login(
    request: Request,
    body: AdminLoginRequest,
    authenticator: Annotated[Authenticator, Depends(get_authenticator)],
):
    ttl = admin_session_ttl()
    result = await authenticator.login(
        body.username,
        body.password,
        user_type=PrincipalKind.ADMIN,
        ip_address=get_client_ip(request),
        user_agent=get_device_info(request),
        ttl=ttl,
    )
    payload = AdminLoginResponse(
        admin=AdminIdentity(id=result.principal.id, username=result.principal.username)
    )
    resp = JSONResponse(content=payload.model_dump(mode="json", by_alias=True))
    set_session_cookie(
        resp,
        result.token,
        max_age=int(ttl.total_seconds()),
        secure=secure_cookies(),
        key=ADMIN_SESSION_COOKIE,
    )
    return resp
