"""Records exchanged with the lookup collaborators."""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from .policy import DeletedStatus
from .roles import OrganizationRole, ProjectRole

T = TypeVar("T")


class TenantType(str, Enum):
    NORMAL = "normal"
    RESTRICTED = "restricted"


class Organization(BaseModel):
    id: str
    name: Optional[str] = None
    type: TenantType = TenantType.NORMAL


class OrganizationMembership(BaseModel):
    organization_id: str
    user_id: str
    role: OrganizationRole
    organization: Optional[Organization] = None  # present when expanded
    deleted: bool = False

    @property
    def organization_type(self) -> Optional[TenantType]:
        """Tenant type of the organization; None when it was not expanded."""
        if self.organization is None:
            return None
        return self.organization.type


class Project(BaseModel):
    id: str
    organization_id: str
    name: Optional[str] = None
    type: TenantType = TenantType.NORMAL


class ProjectMembership(BaseModel):
    project_id: str
    user_id: str
    role: ProjectRole
    deleted: bool = False


class Environment(BaseModel):
    id: str
    project_id: str
    organization_id: str
    name: Optional[str] = None


class Page(BaseModel, Generic[T]):
    """A page of lookup results with the unpaginated total."""

    data: List[T] = Field(default_factory=list)
    total_count: int = 0


class PaginationFilters(BaseModel):
    page: int = 1
    per_page: int = 25


class OrganizationMemberFilters(BaseModel):
    organization_id: str
    user_id: str
    # Caller overrides pass through unvalidated
    deleted_status: Any = DeletedStatus.NOT_DELETED
    expand_organization: bool = False


class ProjectMemberFilters(BaseModel):
    project_id: str
    user_id: str
    deleted_status: Any = DeletedStatus.NOT_DELETED
