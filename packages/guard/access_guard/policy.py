"""
Per-operation policy metadata and soft-delete visibility resolution.

A ``PolicyMetadata`` record is attached to each operation when it is
registered. Absent fields fall back to the least restrictive default.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .roles import MethodAccessRole, ProjectRole


class DeletedStatus(str, Enum):
    NOT_DELETED = "not-deleted"
    WITH_DELETED = "with-deleted"
    ONLY_DELETED = "only-deleted"


class FetchDeletedRecordsLevel(str, Enum):
    ORGANIZATION = "organization"
    PROJECT = "project"
    ENVIRONMENT = "environment"


# Value used when fetch-deleted is set at the declared tier
_FETCH_DELETED_STATUS: dict[FetchDeletedRecordsLevel, DeletedStatus] = {
    FetchDeletedRecordsLevel.ORGANIZATION: DeletedStatus.WITH_DELETED,
    FetchDeletedRecordsLevel.PROJECT: DeletedStatus.ONLY_DELETED,
    FetchDeletedRecordsLevel.ENVIRONMENT: DeletedStatus.WITH_DELETED,
}


class PolicyMetadata(BaseModel):
    """Requirements of one operation. Immutable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    access_role: Optional[int] = Field(default=None, alias="accessRole")
    project_access_role: Optional[ProjectRole] = Field(default=None, alias="projectAccessRole")
    fetch_deleted_records: bool = Field(default=False, alias="FetchDeletedRecords")
    fetch_deleted_records_level: Optional[FetchDeletedRecordsLevel] = Field(
        default=None, alias="FetchDeletedRecordsLevel"
    )
    disable_for_restricted_tenant: bool = Field(
        default=False, alias="DisableFeatureForSalesforceType"
    )
    project_validation_optional: bool = Field(
        default=False, alias="isProjectValidationOptional"
    )

    @field_validator("access_role", mode="before")
    @classmethod
    def _parse_access_role(cls, value: Any) -> Any:
        # YAML tables may name a predefined mask instead of an integer
        if isinstance(value, str) and not value.isdigit():
            try:
                return int(MethodAccessRole[value.upper()])
            except KeyError:
                raise ValueError(f"Unknown access role '{value}'") from None
        return value

    @field_validator("project_access_role", mode="before")
    @classmethod
    def _parse_project_role(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value


class PolicyRegistry:
    """Static operation → policy table, populated at route registration."""

    def __init__(self, policies: dict[str, PolicyMetadata] | None = None):
        self._policies: dict[str, PolicyMetadata] = dict(policies or {})

    def register(self, operation: str, policy: PolicyMetadata | None = None, **fields: Any) -> PolicyMetadata:
        """Attach a policy to ``operation``; keyword fields build one inline."""
        if policy is None:
            policy = PolicyMetadata(**fields)
        self._policies[operation] = policy
        return policy

    def resolve(self, operation: str) -> PolicyMetadata:
        """Pure lookup; unknown operations get the default policy."""
        return self._policies.get(operation, PolicyMetadata())

    def __contains__(self, operation: str) -> bool:
        return operation in self._policies

    def __len__(self) -> int:
        return len(self._policies)


def load_policies(path: str | Path) -> PolicyRegistry:
    """Load a policy table from a YAML file of ``{operation: {key: value}}``."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Policy file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return PolicyRegistry(
        {op: PolicyMetadata.model_validate(fields or {}) for op, fields in raw.items()}
    )


def resolve_deleted_status(
    tier: FetchDeletedRecordsLevel,
    level: FetchDeletedRecordsLevel | None,
    fetch_deleted: bool | None,
    override: Any = None,
) -> DeletedStatus | Any:
    """Soft-delete filter for one hierarchy tier.

    - default ``not-deleted``
    - declared tier + fetch-deleted: ``with-deleted``, except the Project tier
      which yields ``only-deleted``
    - declared tier + caller override: the override verbatim
    """
    if level is None or FetchDeletedRecordsLevel(level) is not tier:
        return DeletedStatus.NOT_DELETED
    if fetch_deleted:
        return _FETCH_DELETED_STATUS[tier]
    if override is not None:
        return override
    return DeletedStatus.NOT_DELETED
