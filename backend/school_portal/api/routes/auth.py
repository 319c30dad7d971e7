"""Authentication routes: login, logout, identity, sessions, password reset.

Endpoints:
    - POST /api/auth/login: Verify credentials, set the session cookie
    - POST /api/auth/logout: Delete the current session, clear cookies
    - GET /api/auth/me: Current principal
    - GET /api/auth/session-info: Current and active sessions
    - POST /api/auth/terminate-sessions: Delete other sessions
    - POST /api/auth/forgot-password: Start a password reset
    - POST /api/auth/verify-reset-code: Exchange the code for a reset token
    - POST /api/auth/reset-password: Set a new password, drop all sessions

Terminating a session only removes it from the session list: the token
held by that device keeps working until it expires.
"""

from typing import Annotated

from core.auth_helper import (
    CurrentClaims,
    clear_session_cookies,
    get_client_ip,
    get_device_info,
    set_session_cookie,
)
from core.dependencies import (
    get_audit_writer,
    get_authenticator,
    get_password_reset_service,
    get_principal_directory,
    get_session_store,
    get_token_codec,
    secure_cookies,
    session_ttl,
)
from core.errors import AuthenticationError, ValidationError
from core.gate import token_from_request
from core.logging import logger
from core.tokens import TokenCodec
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from schemas.auth import (
    DeviceInfo,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    ResetPasswordRequest,
    SecurityInfo,
    SessionInfoResponse,
    SessionOut,
    SessionUser,
    TerminateSessionsRequest,
    TerminateSessionsResponse,
    VerifyResetCodeRequest,
    VerifyResetCodeResponse,
)
from services import audit
from services.audit import AuditLogWriter
from services.authenticator import Authenticator
from services.password_reset import PasswordResetService
from services.principals import PrincipalDirectory
from services.session_store import SessionStore

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    body: LoginRequest,
    authenticator: Annotated[Authenticator, Depends(get_authenticator)],
):
    """Authenticate a principal and open a session.

    Returns:
        JSONResponse: ``{user, token, security}`` with the token also set as
            the HttpOnly ``session-token`` cookie.

    Raises:
        AuthenticationError: On any credential failure (one generic message).
    """
    ip_address = get_client_ip(request)
    user_agent = get_device_info(request)
    result = await authenticator.login(
        body.username,
        body.password,
        user_type=body.user_type,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    payload = LoginResponse(
        user=result.principal,
        token=result.token,
        security=SecurityInfo(
            session_id=result.session_id,
            expires_at=result.expires_at,
            device_info=DeviceInfo(ip_address=ip_address, user_agent=user_agent),
        ),
    )
    resp = JSONResponse(content=payload.model_dump(mode="json", by_alias=True))
    set_session_cookie(
        resp,
        result.token,
        max_age=int(session_ttl().total_seconds()),
        secure=secure_cookies(),
    )
    return resp


@router.post("/logout")
async def logout(
    request: Request,
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    authenticator: Annotated[Authenticator, Depends(get_authenticator)],
):
    """Delete the caller's session (if the token is still valid) and clear cookies.

    Always succeeds so a client with a stale cookie can still log out.
    """
    claims = codec.verify(token_from_request(request))
    if claims is not None:
        await authenticator.logout(
            claims, ip_address=get_client_ip(request), user_agent=get_device_info(request)
        )
    else:
        logger.debug("Logout without a valid session token")

    resp = JSONResponse(content={"success": True})
    clear_session_cookies(resp)
    return resp


@router.get("/me", response_model=MeResponse)
async def read_current_user(
    claims: CurrentClaims,
    principals: Annotated[PrincipalDirectory, Depends(get_principal_directory)],
):
    """Return the current principal's profile."""

    principal = await principals.get(claims.user_type, claims.user_id)
    if principal is None:
        # NOTE: token outlived the account it was issued for
        raise AuthenticationError("Not authenticated")
    return MeResponse(user=principal)


@router.get("/session-info", response_model=SessionInfoResponse)
async def session_info(
    claims: CurrentClaims,
    sessions: Annotated[SessionStore, Depends(get_session_store)],
):
    """Return the current user, current session and all active sessions."""

    current = await sessions.get(claims.session_id) if claims.session_id else None
    active = await sessions.list_active(claims.user_id)
    return SessionInfoResponse(
        user=SessionUser(
            id=claims.user_id, user_type=claims.user_type, username=claims.username
        ),
        current_session=SessionOut.model_validate(current) if current else None,
        active_sessions=[SessionOut.model_validate(s) for s in active],
        session_count=len(active),
    )


@router.post("/terminate-sessions", response_model=TerminateSessionsResponse)
async def terminate_sessions(
    request: Request,
    body: TerminateSessionsRequest,
    claims: CurrentClaims,
    sessions: Annotated[SessionStore, Depends(get_session_store)],
    audit_log: Annotated[AuditLogWriter, Depends(get_audit_writer)],
):
    """Delete the caller's other sessions, or the listed ones.

    ``terminateAll`` keeps the current session. Listed ids are deleted as
    given, so the current session goes only when it is named explicitly.
    """
    if body.terminate_all:
        count = await sessions.terminate(claims.user_id, keep=claims.session_id)
        action = audit.TERMINATE_ALL_SESSIONS
        changes = {"terminatedCount": count}
    elif body.session_ids is not None:
        count = await sessions.terminate(claims.user_id, session_ids=body.session_ids)
        action = audit.TERMINATE_SESSIONS
        changes = {"sessionIds": body.session_ids, "terminatedCount": count}
    else:
        raise ValidationError("Invalid request parameters")

    await audit_log.record(
        user_id=claims.user_id,
        user_type=claims.user_type,
        action=action,
        entity="Session",
        changes=changes,
        ip_address=get_client_ip(request),
        user_agent=get_device_info(request),
    )
    return TerminateSessionsResponse(
        message=f"Terminated {count} sessions successfully", terminated_count=count
    )


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    resets: Annotated[PasswordResetService, Depends(get_password_reset_service)],
):
    """Start a password reset. The response does not reveal whether the email exists."""

    message = await resets.request_reset(
        body.email.strip(),
        ip_address=get_client_ip(request),
        user_agent=get_device_info(request),
    )
    return MessageResponse(message=message)


@router.post("/verify-reset-code", response_model=VerifyResetCodeResponse)
async def verify_reset_code(
    body: VerifyResetCodeRequest,
    resets: Annotated[PasswordResetService, Depends(get_password_reset_service)],
):
    reset_token = resets.verify_code(body.email.strip(), body.code.strip())
    return VerifyResetCodeResponse(
        message="Verification code verified successfully", reset_token=reset_token
    )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    resets: Annotated[PasswordResetService, Depends(get_password_reset_service)],
):
    """Set a new password and invalidate all of the principal's sessions."""

    await resets.reset_password(
        body.email.strip(),
        body.reset_token,
        body.new_password,
        ip_address=get_client_ip(request),
        user_agent=get_device_info(request),
    )
    return MessageResponse(message="Password reset successfully")
