"""Component wiring.

This is the one place, besides ``main``, that reads ``settings``: each
provider builds a component from explicit configuration and the shared
sessionmaker. Routes receive components through ``Depends`` so tests can
swap them with ``app.dependency_overrides``.
"""

from datetime import timedelta
from functools import lru_cache

from config.config import settings
from core.tokens import TokenCodec
from db.session import AsyncSessionLocal
from services.assignments import AssignmentService
from services.audit import AuditLogWriter
from services.authenticator import Authenticator
from services.password_reset import PasswordResetService
from services.principals import PrincipalDirectory
from services.session_store import SessionStore


def session_ttl() -> timedelta:
    return timedelta(hours=settings.SESSION_TTL_HOURS)


def admin_session_ttl() -> timedelta:
    return timedelta(days=settings.ADMIN_SESSION_TTL_DAYS)


def secure_cookies() -> bool:
    return settings.is_production


@lru_cache
def get_token_codec() -> TokenCodec:
    return TokenCodec(settings.JWT_SECRET, settings.JWT_ALGORITHM)


@lru_cache
def get_principal_directory() -> PrincipalDirectory:
    return PrincipalDirectory(AsyncSessionLocal)


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore(AsyncSessionLocal)


@lru_cache
def get_audit_writer() -> AuditLogWriter:
    return AuditLogWriter(AsyncSessionLocal)


@lru_cache
def get_authenticator() -> Authenticator:
    return Authenticator(
        principals=get_principal_directory(),
        codec=get_token_codec(),
        sessions=get_session_store(),
        audit_log=get_audit_writer(),
        session_ttl=session_ttl(),
    )


@lru_cache
def get_password_reset_service() -> PasswordResetService:
    return PasswordResetService(
        principals=get_principal_directory(),
        codec=get_token_codec(),
        sessions=get_session_store(),
        audit_log=get_audit_writer(),
        demo_code=settings.RESET_DEMO_CODE,
        reset_ttl=timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
    )


@lru_cache
def get_assignment_service() -> AssignmentService:
    return AssignmentService(AsyncSessionLocal, get_audit_writer())
