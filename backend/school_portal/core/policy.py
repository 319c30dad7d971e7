"""Role-based authorization policy.

Two layers, both static:

- :func:`can_enter_route` is the coarse path-prefix check the request gate
  applies to dashboard pages.
- :func:`has_permission` / :func:`can_perform` are the finer checks API
  handlers apply once identity is known. ``can_perform`` also takes the
  row ownership the handler computed, so a teacher allowed to update
  lessons is still refused a lesson that is not theirs.

Narrowing list queries to the rows a principal may see is the handler's
job (see ``services.assignments``); this module only answers yes or no.
"""

from enum import Enum
from typing import Optional

from models.principals import PrincipalKind


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


WILDCARD = "*"

ALL = {WILDCARD}
READ = {Action.READ}
READ_UPDATE = {Action.READ, Action.UPDATE}
READ_WRITE = {Action.READ, Action.CREATE, Action.UPDATE}
FULL = {Action.READ, Action.CREATE, Action.UPDATE, Action.DELETE}

PERMISSIONS: dict[PrincipalKind, dict[str, set]] = {
    PrincipalKind.ADMIN: {
        WILDCARD: ALL,
    },
    PrincipalKind.TEACHER: {
        "students": READ_WRITE,
        "classes": READ_UPDATE,
        "lessons": FULL,
        "exams": FULL,
        "assignments": FULL,
        "results": READ_WRITE,
        "attendance": READ_WRITE,
        "announcements": READ,
        "events": READ,
        "teachers": READ,
        "subjects": READ,
        "parents": READ,
    },
    PrincipalKind.STUDENT: {
        "profile": READ_UPDATE,
        "lessons": READ,
        "exams": READ,
        "assignments": READ,
        "results": READ,
        "attendance": READ,
        "announcements": READ,
        "events": READ,
        "students": READ,
    },
    PrincipalKind.PARENT: {
        "children": READ,
        "students": READ,
        "attendance": READ,
        "results": READ,
        "announcements": READ,
        "events": READ,
        "fees": READ,
        "assignments": READ,
        "teachers": READ,
        "classes": READ,
    },
}

# Path prefix -> roles allowed in. Checked in order; first match wins.
ROLE_ROUTES: tuple[tuple[str, frozenset], ...] = (
    ("/admin", frozenset({PrincipalKind.ADMIN})),
    ("/teacher", frozenset({PrincipalKind.TEACHER, PrincipalKind.ADMIN})),
    ("/student", frozenset({PrincipalKind.STUDENT, PrincipalKind.ADMIN})),
    ("/parent", frozenset({PrincipalKind.PARENT, PrincipalKind.ADMIN})),
    ("/list", frozenset({PrincipalKind.ADMIN, PrincipalKind.TEACHER})),
)


def matches_prefix(path: str, prefix: str) -> bool:
    """True when ``path`` is ``prefix`` or lies below it segment-wise.

    ``/admin/users`` matches ``/admin``; ``/admin-login`` does not.
    """
    if prefix == "/":
        return path == "/"
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def home_path(role: PrincipalKind) -> str:
    """Default landing page of a role, e.g. ``/teacher``."""
    return f"/{PrincipalKind(role).value.lower()}"


def required_roles(path: str) -> Optional[frozenset]:
    """Roles allowed on ``path``, or None when no prefix restricts it."""
    for prefix, roles in ROLE_ROUTES:
        if matches_prefix(path, prefix):
            return roles
    return None


def can_enter_route(role: PrincipalKind, path: str) -> bool:
    roles = required_roles(path)
    return roles is None or PrincipalKind(role) in roles


def has_permission(role: PrincipalKind, resource: str, action: str) -> bool:
    """Look up ``(role, resource, action)`` in the permission matrix.

    Unknown roles, resources and actions are denied.
    """
    try:
        role_permissions = PERMISSIONS.get(PrincipalKind(role))
    except ValueError:
        return False
    if not role_permissions:
        return False
    if WILDCARD in role_permissions.get(WILDCARD, ()):
        return True
    allowed = role_permissions.get(resource, ())
    return any(a == action for a in allowed)


def can_perform(
    role: PrincipalKind,
    resource: str,
    action: str,
    ownership: Optional[bool] = None,
) -> bool:
    """Permission check including row ownership.

    Args:
        role: The principal's kind.
        resource: Resource name, e.g. ``assignments``.
        action: One of :class:`Action`.
        ownership: None when the action is not about a specific row;
            otherwise whether the row belongs to the principal (a teacher's
            lesson, a parent's child).

    Returns:
        bool: True when allowed. Admins ignore ownership.
    """
    if not has_permission(role, resource, action):
        return False
    if PrincipalKind(role) is PrincipalKind.ADMIN:
        return True
    return ownership is not False
