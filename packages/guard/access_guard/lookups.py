"""
Collaborator contracts consumed by the guard.

Storage is not part of this package: services implementing these protocols
are injected into the validators. Implementations must be async and are
expected to return at most one membership per (resource, actor) pair.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional, Protocol, TypeVar, runtime_checkable

from .models import (
    Environment,
    OrganizationMemberFilters,
    OrganizationMembership,
    Page,
    PaginationFilters,
    Project,
    ProjectMemberFilters,
    ProjectMembership,
)

T = TypeVar("T")


@runtime_checkable
class OrganizationMembershipLookup(Protocol):
    async def find_organization_members(
        self, filters: OrganizationMemberFilters, pagination: PaginationFilters
    ) -> Page[OrganizationMembership]:
        ...


@runtime_checkable
class ProjectLookup(Protocol):
    async def find_project(self, project_id: str) -> Optional[Project]:
        """Return the project or ``None`` when it does not exist."""
        ...


@runtime_checkable
class ProjectMembershipLookup(Protocol):
    async def find_project_members(
        self, filters: ProjectMemberFilters, pagination: PaginationFilters
    ) -> Page[ProjectMembership]:
        ...


@runtime_checkable
class EnvironmentLookup(Protocol):
    async def find_environment(
        self,
        environment_id: str,
        project_id: str,
        organization_id: str,
        deleted_status: Any = None,
    ) -> Optional[Environment]:
        """Return the environment under (project, organization) or ``None``."""
        ...


async def bounded(call: Awaitable[T], timeout: float | None) -> T:
    """Await a collaborator call, bounded by ``timeout`` seconds if set."""
    if timeout is None:
        return await call
    return await asyncio.wait_for(call, timeout=timeout)
