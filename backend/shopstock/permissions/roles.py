# Overview: Fixed role-to-permission mapping.

from ..models.auth import ROLE_ADMIN, ROLE_EDITOR, ROLE_VIEWER
from .definitions import PERMISSION_DEFINITIONS


_READ_PERMISSIONS = [
    "VIEW_INVENTORY",
    "VIEW_REPORTS",
]

_EDITOR_PERMISSIONS = _READ_PERMISSIONS + [
    "RECEIVE_INVENTORY",
    "TRANSFER_INVENTORY",
    "ISSUE_INVENTORY",
    "ADJUST_INVENTORY",
    "MANAGE_MATERIALS",
]


DEFAULT_ROLE_PERMISSIONS = {
    # Admin: everything
    ROLE_ADMIN: [perm[0] for perm in PERMISSION_DEFINITIONS],
    # Editor: movements and material upkeep, no deletes, locations or rebuilds
    ROLE_EDITOR: _EDITOR_PERMISSIONS,
    # Viewer: read-only
    ROLE_VIEWER: _READ_PERMISSIONS,
}
