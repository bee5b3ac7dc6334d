"""
Role model and role assignment decision table.

Roles form a closed enumeration ordered by privilege. Assignment at
registration is an explicit table lookup instead of a default buried
in record construction.
"""

from enum import Enum


class Role(str, Enum):
    """Closed set of account roles."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    USER = "USER"

    @property
    def privilege(self) -> int:
        return _PRIVILEGE[self]


_PRIVILEGE = {
    Role.USER: 0,
    Role.MANAGER: 1,
    Role.ADMIN: 2,
}


class RegistrationContext(str, Enum):
    """How an identity enters a company."""

    COMPANY_OWNER = "company_owner"
    # Used by the company invitation flow, which lives outside this service
    INVITED_MEMBER = "invited_member"


ROLE_BY_CONTEXT: dict[RegistrationContext, Role] = {
    RegistrationContext.COMPANY_OWNER: Role.MANAGER,
    RegistrationContext.INVITED_MEMBER: Role.USER,
}


def role_for(context: RegistrationContext, existing: Role | None = None) -> Role:
    """
    Resolve the role for a registration attempt.

    A re-registration never downgrades an existing role that is more
    permissive than the one the table assigns.

    Args:
        context: Registration context of the attempt
        existing: Role currently stored for a pending identity, if any

    Returns:
        Role to persist
    """
    assigned = ROLE_BY_CONTEXT[context]
    if existing is not None and existing.privilege > assigned.privilege:
        return existing
    return assigned
