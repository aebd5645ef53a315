"""User roles and role sets.

Learn: Roles are a closed enum rather than free strings, so a typo in an
allowed-role set is an AttributeError at import time instead of a silent
grant or denial at request time.
"""

from enum import Enum


class Role(str, Enum):
    GLOBAL_ADMINISTRATOR = "GlobalAdministrator"
    COMPANY_ADMINISTRATOR = "CompanyAdministrator"
    USER = "User"
    VENDOR = "Vendor"


# Roles allowed to manage a tenant (create projects, list company users,
# rename the company).
ADMIN_ROLES: frozenset[Role] = frozenset(
    {Role.GLOBAL_ADMINISTRATOR, Role.COMPANY_ADMINISTRATOR}
)


def is_admin(role: Role) -> bool:
    return role in ADMIN_ROLES
