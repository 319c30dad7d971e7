"""Principal management routes (admin only)."""

from typing import Annotated

from core.auth_helper import get_client_ip, get_device_info, require_permission
from core.dependencies import get_audit_writer, get_principal_directory
from core.errors import ValidationError
from core.logging import logger
from fastapi import APIRouter, Depends, Query, Request, status
from models.principals import PrincipalKind
from schemas.auth import Principal, TokenClaims
from schemas.school import PrincipalCreate, PrincipalList
from services import audit
from services.audit import AuditLogWriter
from services.principals import PrincipalDirectory

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=PrincipalList)
async def list_users(
    claims: Annotated[TokenClaims, Depends(require_permission("users", "read"))],
    principals: Annotated[PrincipalDirectory, Depends(get_principal_directory)],
    user_type: PrincipalKind = Query(alias="userType"),
    search: str = "",
    limit: int = Query(default=50, ge=1, le=200),
):
    """List principals of one kind, optionally filtered by username or name."""

    return PrincipalList(users=await principals.search(user_type, search, limit))


@router.post("", response_model=Principal, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: Request,
    body: PrincipalCreate,
    claims: Annotated[TokenClaims, Depends(require_permission("users", "create"))],
    principals: Annotated[PrincipalDirectory, Depends(get_principal_directory)],
    audit_log: Annotated[AuditLogWriter, Depends(get_audit_writer)],
):
    """Create a principal.

    A username (or email) already present in the kind's table surfaces as a
    database constraint violation and is answered with 409.
    """
    profile = {"email": body.email, "name": body.name, "surname": body.surname}
    if body.user_type is PrincipalKind.STUDENT:
        profile.update(class_id=body.class_id, parent_id=body.parent_id)
    elif body.class_id is not None or body.parent_id is not None:
        raise ValidationError("classId and parentId apply to students only")

    principal = await principals.create(
        body.user_type, body.username, body.password, **profile
    )
    await audit_log.record(
        user_id=claims.user_id,
        user_type=claims.user_type,
        action=audit.CREATE,
        entity="User",
        entity_id=principal.id,
        changes={"userType": principal.user_type.value, "username": principal.username},
        ip_address=get_client_ip(request),
        user_agent=get_device_info(request),
    )
    logger.info("Admin {} created {}", claims.username, principal.username)
    return principal
