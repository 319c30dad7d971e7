"""Pydantic schemas for authentication and session endpoints.

Wire names are camelCase (``userType``, ``sessionId``); Python code uses
the snake_case field names.
"""

from datetime import datetime
from typing import Any, Optional

from models.principals import PrincipalKind
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class TokenClaims(CamelModel):
    """Claims carried by a verified session token.

    Attributes:
        user_id: Principal id.
        user_type: Principal kind (also the role).
        username: Principal username.
        session_id: Id of the paired session record, when one was created.
        expires_at: Token expiry.
    """

    user_id: str
    user_type: PrincipalKind
    username: str
    session_id: Optional[str] = None
    expires_at: datetime


class Principal(CamelModel):
    """Public identity of any principal kind."""

    id: str
    username: str
    user_type: PrincipalKind
    email: Optional[str] = None
    name: str = ""
    surname: str = ""


class LoginRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    user_type: Optional[PrincipalKind] = None


class AdminLoginRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class DeviceInfo(CamelModel):
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class SecurityInfo(CamelModel):
    session_id: str
    expires_at: datetime
    device_info: DeviceInfo


class LoginResponse(CamelModel):
    user: Principal
    token: str
    security: SecurityInfo


class AdminIdentity(CamelModel):
    id: str
    username: str
    role: str = "admin"


class AdminLoginResponse(CamelModel):
    success: bool = True
    admin: AdminIdentity


class SessionOut(CamelModel):
    """A session as shown in the "active sessions" list."""

    id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    last_active: datetime
    expires_at: datetime


class SessionUser(CamelModel):
    id: str
    user_type: PrincipalKind
    username: str


class SessionInfoResponse(CamelModel):
    user: SessionUser
    current_session: Optional[SessionOut] = None
    active_sessions: list[SessionOut]
    session_count: int


class TerminateSessionsRequest(CamelModel):
    session_ids: Optional[list[str]] = None
    terminate_all: bool = False


class TerminateSessionsResponse(CamelModel):
    message: str
    terminated_count: int


class MeResponse(CamelModel):
    user: Principal


class ForgotPasswordRequest(CamelModel):
    email: str


class VerifyResetCodeRequest(CamelModel):
    email: str
    code: str


class VerifyResetCodeResponse(CamelModel):
    message: str
    reset_token: str
    success: bool = True


class ResetPasswordRequest(CamelModel):
    email: str
    reset_token: str
    new_password: str


class MessageResponse(CamelModel):
    message: str
    success: bool = True


class AuditEntry(CamelModel):
    user_id: str
    user_type: str
    action: str
    entity: str
    entity_id: Optional[str] = None
    changes: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None
