"""
Role hierarchy and bitmask evaluation shared by the organization and
project validators.

Roles are powers of two in ascending privilege order. A requirement is itself
a bitmask, so one declaration can accept several roles ("Manager or Member").
A member satisfies a requirement iff ``role_bit & mask != 0``.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class OrganizationRole(str, Enum):
    OWNER = "owner"
    MANAGER = "manager"
    MEMBER = "member"


class ProjectRole(str, Enum):
    MANAGER = "manager"
    MEMBER = "member"


# Ordered lowest → highest privilege
ROLE_ORDER: list[str] = ["member", "manager", "owner"]

ROLE_BITS: dict[str, int] = {role: 1 << i for i, role in enumerate(ROLE_ORDER)}

OWNER_BIT = ROLE_BITS["owner"]


def role_bit(role: str | Enum) -> int:
    """Return the bit for a role; unknown roles map to 0 and satisfy nothing."""
    key = role.value if isinstance(role, Enum) else role
    return ROLE_BITS.get(str(key).lower(), 0)


def access_mask(*roles: str | Enum) -> int:
    """Build a requirement mask accepting ``roles``.

    The Owner bit is always included, so an organization Owner satisfies
    every mask built here.
    """
    mask = OWNER_BIT
    for role in roles:
        mask |= role_bit(role)
    return mask


class MethodAccessRole(IntEnum):
    """Predefined organization requirement masks for operations."""

    OWNER = access_mask(OrganizationRole.OWNER)
    MANAGER = access_mask(OrganizationRole.MANAGER)
    MEMBER = access_mask(OrganizationRole.MANAGER, OrganizationRole.MEMBER)


def satisfies(role: str | Enum, required_mask: int) -> bool:
    """Pure bitmask check: does ``role`` hold any bit of ``required_mask``?"""
    return bool(role_bit(role) & int(required_mask))


def project_access_mask(required: ProjectRole | str) -> int:
    """Project roles accepted for a requirement.

    Manager always qualifies; Member qualifies only when the requirement is
    exactly Member. Organization Owners never reach this check.
    """
    mask = ROLE_BITS["manager"]
    if ProjectRole(required) is ProjectRole.MEMBER:
        mask |= ROLE_BITS["member"]
    return mask


def is_owner(role: str | Enum) -> bool:
    return role_bit(role) == OWNER_BIT
