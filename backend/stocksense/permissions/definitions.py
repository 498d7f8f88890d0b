# Overview: All operation definitions organized by category.
# Each operation is defined as: (code, name, description, category)

from .categories import PermissionCategory


class Operation:
    """Operation codes consulted by the access policy."""
    MANAGE_USERS = "manage-users"
    MANAGE_CATALOG = "manage-catalog"
    RECORD_SALE = "record-sale"
    VIEW_SALES = "view-sales"
    VIEW_ANALYTICS_BASIC = "view-analytics-basic"
    VIEW_ANALYTICS_ADVANCED = "view-analytics-advanced"
    MANAGE_LOW_STOCK_ALERTS = "manage-low-stock-alerts"


# -- USERS --

USER_PERMISSIONS = [
    (
        Operation.MANAGE_USERS,
        "Manage Users",
        "Create users, change roles and passwords, delete users",
        PermissionCategory.USERS,
    ),
]


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        Operation.MANAGE_CATALOG,
        "Manage Catalog",
        "Create, edit, and delete products",
        PermissionCategory.CATALOG,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        Operation.RECORD_SALE,
        "Record Sale",
        "Record sales against stock and reverse them",
        PermissionCategory.SALES,
    ),
    (
        Operation.VIEW_SALES,
        "View Sales",
        "View the sales ledger",
        PermissionCategory.SALES,
    ),
]


# -- ANALYTICS --

ANALYTICS_PERMISSIONS = [
    (
        Operation.VIEW_ANALYTICS_BASIC,
        "View Basic Analytics",
        "Today's sales, inventory value and low-stock count",
        PermissionCategory.ANALYTICS,
    ),
    (
        Operation.VIEW_ANALYTICS_ADVANCED,
        "View Advanced Analytics",
        "Sales trend, category breakdown, top products and reorder predictions",
        PermissionCategory.ANALYTICS,
    ),
]


# -- ALERTS --

ALERT_PERMISSIONS = [
    (
        Operation.MANAGE_LOW_STOCK_ALERTS,
        "Manage Low Stock Alerts",
        "View low-stock and out-of-stock product lists",
        PermissionCategory.ALERTS,
    ),
]


PERMISSION_DEFINITIONS = (
    USER_PERMISSIONS
    + CATALOG_PERMISSIONS
    + SALES_PERMISSIONS
    + ANALYTICS_PERMISSIONS
    + ALERT_PERMISSIONS
)
