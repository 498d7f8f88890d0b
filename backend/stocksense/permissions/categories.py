# Overview: Permission category constants for grouping related operations.


class PermissionCategory:
    """Operation categories for organization and UI display."""
    USERS = "USERS"
    CATALOG = "CATALOG"
    SALES = "SALES"
    ANALYTICS = "ANALYTICS"
    ALERTS = "ALERTS"
