"""
Hierarchical Resource-Authorization Guard

Decides whether an actor may perform an operation inside an
organization → project → environment hierarchy, based on memberships,
roles, soft-delete visibility and tenant-type feature gates.
"""

from .errors import ErrorClass, ErrorKind, GuardError, GuardFailureType, GuardValidationFailed
from .guard import (
    AccessDecision,
    AccessGuard,
    GuardRequest,
    GuardState,
    authorization_guard,
    environment_authorization_guard,
)
from .policy import DeletedStatus, FetchDeletedRecordsLevel, PolicyMetadata, PolicyRegistry
from .roles import MethodAccessRole, OrganizationRole, ProjectRole, access_mask, satisfies

__version__ = "0.1.0"

__all__ = [
    "AccessDecision",
    "AccessGuard",
    "DeletedStatus",
    "ErrorClass",
    "ErrorKind",
    "FetchDeletedRecordsLevel",
    "GuardError",
    "GuardFailureType",
    "GuardRequest",
    "GuardState",
    "GuardValidationFailed",
    "MethodAccessRole",
    "OrganizationRole",
    "PolicyMetadata",
    "PolicyRegistry",
    "ProjectRole",
    "access_mask",
    "authorization_guard",
    "environment_authorization_guard",
    "satisfies",
]
