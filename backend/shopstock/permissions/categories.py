# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    INVENTORY = "INVENTORY"
    REFERENCE = "REFERENCE"
    REPORTS = "REPORTS"
    SYSTEM = "SYSTEM"
