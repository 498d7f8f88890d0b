# Overview: Role enumeration and the default role -> operation table.

from enum import Enum

from .definitions import Operation


class Role(str, Enum):
    """Fixed set of caller roles."""
    ADMIN = "Admin"
    MANAGER = "Manager"
    STAFF = "Staff"

    @classmethod
    def parse(cls, value) -> "Role":
        """Accept a Role or its name/value in any case ("manager", "MANAGER")."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for role in cls:
                if role.value.lower() == wanted or role.name.lower() == wanted:
                    return role
        raise ValueError(f"Unknown role: {value!r}")


# WHY these mappings:
# - Admin: user administration; may ring up sales
# - Manager: catalog, all analytics, low-stock alerts, sales
# - Staff: POS only plus the home dashboard

DEFAULT_ROLE_PERMISSIONS = {
    Role.ADMIN.value: [
        Operation.MANAGE_USERS,
        Operation.RECORD_SALE,
        Operation.VIEW_SALES,
    ],
    Role.MANAGER.value: [
        Operation.MANAGE_CATALOG,
        Operation.RECORD_SALE,
        Operation.VIEW_SALES,
        Operation.VIEW_ANALYTICS_BASIC,
        Operation.VIEW_ANALYTICS_ADVANCED,
        Operation.MANAGE_LOW_STOCK_ALERTS,
    ],
    Role.STAFF.value: [
        Operation.RECORD_SALE,
        Operation.VIEW_SALES,
        Operation.VIEW_ANALYTICS_BASIC,
    ],
}
