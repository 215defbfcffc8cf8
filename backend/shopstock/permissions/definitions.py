# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View balances, materials, locations and the transaction history",
        PermissionCategory.INVENTORY,
    ),
    (
        "RECEIVE_INVENTORY",
        "Receive Inventory",
        "Create RECEIVE transactions (incoming stock into the SHOP)",
        PermissionCategory.INVENTORY,
    ),
    (
        "TRANSFER_INVENTORY",
        "Transfer Inventory",
        "Create TRANSFER transactions (SHOP to JOB)",
        PermissionCategory.INVENTORY,
    ),
    (
        "ISSUE_INVENTORY",
        "Issue Inventory",
        "Create ISSUE transactions (consumption at a JOB)",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Create ADJUSTMENT transactions (counted corrections, damage, etc.)",
        PermissionCategory.INVENTORY,
    ),
]


# -- REFERENCE DATA --

REFERENCE_PERMISSIONS = [
    (
        "MANAGE_MATERIALS",
        "Manage Materials",
        "Create and edit materials",
        PermissionCategory.REFERENCE,
    ),
    (
        "DELETE_MATERIALS",
        "Delete Materials",
        "Delete materials that have no transaction history",
        PermissionCategory.REFERENCE,
    ),
    (
        "MANAGE_LOCATIONS",
        "Manage Locations",
        "Create JOB locations and open or close them",
        PermissionCategory.REFERENCE,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "View the dashboard and inventory, usage and purchase reports",
        PermissionCategory.REPORTS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "REBUILD_TOTALS",
        "Rebuild Totals",
        "Recompute running totals from the ledger and inspect discrepancies",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + REFERENCE_PERMISSIONS
    + REPORT_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
