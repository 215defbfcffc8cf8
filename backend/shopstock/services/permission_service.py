# Overview: Service-layer operations for permission; role-based access checks.

"""
Permission Checking

Roles are fixed (Admin, Editor, Viewer) and map to permission codes in
permissions.roles. Checks fail closed: an unknown role or code is denied.
Denials are logged; grants are not.
"""
from __future__ import annotations

import logging

from ..models import User
from ..permissions import can_perform, get_role_permissions


logger = logging.getLogger(__name__)


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def get_user_permissions(user: User) -> set[str]:
    if user is None or not user.is_active:
        return set()
    return set(get_role_permissions(user.role))


def user_has_permission(user: User, permission_code: str) -> bool:
    return user is not None and user.is_active and can_perform(user.role, permission_code)


def require_permission(user: User, permission_code: str, *, resource: str | None = None) -> None:
    """
    Raises PermissionDeniedError if the user's role does not hold the permission.
    """
    if user_has_permission(user, permission_code):
        return

    logger.warning(
        "Permission denied: user=%s role=%s permission=%s resource=%s",
        user.id if user is not None else None,
        user.role if user is not None else None,
        permission_code,
        resource,
    )
    raise PermissionDeniedError(f"Role {user.role if user is not None else None!s} lacks {permission_code}")
