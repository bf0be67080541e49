"""
Project and environment access validation.

An organization Owner holds every right in the organization's projects, so
the project role requirement is only evaluated for non-Owners.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from .errors import ErrorKind, Outcome
from .lookups import EnvironmentLookup, ProjectLookup, ProjectMembershipLookup, bounded
from .models import Environment, PaginationFilters, Project, ProjectMemberFilters, TenantType
from .organization import OrganizationAccess
from .roles import ProjectRole, is_owner, project_access_mask, satisfies


class ProjectAccessValidator:
    def __init__(
        self,
        projects: ProjectLookup,
        members: ProjectMembershipLookup,
        environments: Optional[EnvironmentLookup] = None,
        *,
        timeout: float | None = None,
        log: Any = None,
    ):
        self._projects = projects
        self._members = members
        self._environments = environments
        self._timeout = timeout
        self._log = log or structlog.get_logger()

    async def get_project(self, project_id: str) -> Outcome[Project]:
        try:
            project = await bounded(self._projects.find_project(project_id), self._timeout)
        except Exception as exc:
            self._log.error("guard.project_lookup_failed", project_id=project_id, error=repr(exc))
            return Outcome.deny(
                ErrorKind.RESOURCE_NOT_FOUND,
                f"Not able to find project (id)=({project_id})",
                cause=exc,
            )
        if project is None:
            return Outcome.deny(
                ErrorKind.RESOURCE_NOT_FOUND, f"Not able to find project (id)=({project_id})"
            )
        return Outcome.success(project)

    async def validate_environment(
        self,
        environment_id: str,
        project_id: str,
        organization_id: str,
        deleted_status: Any = None,
    ) -> Outcome[Environment]:
        """Confirm the environment exists under (project, organization)."""
        if self._environments is None:
            raise RuntimeError("No environment lookup configured")
        try:
            environment = await bounded(
                self._environments.find_environment(
                    environment_id, project_id, organization_id, deleted_status=deleted_status
                ),
                self._timeout,
            )
        except Exception as exc:
            self._log.error(
                "guard.environment_lookup_failed",
                environment_id=environment_id,
                project_id=project_id,
                org_id=organization_id,
                error=repr(exc),
            )
            return Outcome.deny(
                ErrorKind.LOOKUP_FAILURE,
                f"Not able to resolve environment (id)=({environment_id})",
                cause=exc,
            )
        if environment is None:
            return Outcome.deny(
                ErrorKind.RESOURCE_NOT_FOUND,
                f"Project(id)=({project_id}) with environment(id)=({environment_id}) "
                f"in organization(id)=({organization_id}) is not found",
            )
        return Outcome.success(environment)

    async def validate(
        self,
        project_id: str,
        actor_id: str,
        organization: OrganizationAccess,
        deleted_status: Any,
        *,
        tenant_gate: bool = False,
        required_role: ProjectRole | None = None,
    ) -> Outcome[Project]:
        found = await self.get_project(project_id)
        if not found.ok:
            return found
        project = found.value

        filters = ProjectMemberFilters(
            project_id=project_id, user_id=actor_id, deleted_status=deleted_status
        )
        try:
            members = await bounded(
                self._members.find_project_members(filters, PaginationFilters()),
                self._timeout,
            )
        except Exception as exc:
            self._log.error(
                "guard.project_member_lookup_failed",
                project_id=project_id,
                user_id=actor_id,
                error=repr(exc),
            )
            return Outcome.deny(
                ErrorKind.LOOKUP_FAILURE,
                f"Not able to resolve membership in project (id)=({project_id})",
                cause=exc,
            )

        if members.total_count == 1 and tenant_gate and project.type is TenantType.RESTRICTED:
            return Outcome.deny(
                ErrorKind.TENANT_FEATURE_DISABLED,
                f"The user (id)=({actor_id}) is unauthorized to view this feature",
            )

        insufficient_org_role = organization.insufficient_role
        if required_role is not None and not is_owner(organization.role):
            if members.total_count <= 0 or not members.data:
                return Outcome.deny(
                    ErrorKind.NOT_PROJECT_MEMBER,
                    f"The user (id)=({actor_id}) is not a part of the project (id)=({project_id})",
                )
            member_role = members.data[0].role
            if not satisfies(member_role, project_access_mask(required_role)):
                self._log.warning(
                    "guard.project_role_insufficient",
                    project_id=project_id,
                    user_id=actor_id,
                    role=member_role.value,
                    required=ProjectRole(required_role).value,
                )
                return Outcome.deny(
                    ErrorKind.INSUFFICIENT_ROLE,
                    f"The user (id)=({actor_id}) does not have the permission in the project (id)=({project_id})",
                )
            # Project role satisfies what the organization role could not
            insufficient_org_role = False

        if insufficient_org_role:
            self._log.warning(
                "guard.org_role_insufficient",
                org_id=organization.membership.organization_id,
                user_id=actor_id,
                role=organization.role.value,
            )
            return Outcome.deny(
                ErrorKind.INSUFFICIENT_ROLE,
                f"The user (id)=({actor_id}), role=({organization.role.value}) does not have "
                f"the permission in the organization (id)=({organization.membership.organization_id})",
            )

        return Outcome.success(project)
