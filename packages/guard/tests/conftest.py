"""
Shared fixtures: in-memory lookup collaborators that record every call.
"""

from __future__ import annotations

import asyncio

import pytest

from access_guard.config import GuardSettings
from access_guard.guard import GuardRequest, authorization_guard, environment_authorization_guard
from access_guard.models import (
    Environment,
    Organization,
    OrganizationMembership,
    Page,
    Project,
    ProjectMembership,
    TenantType,
)
from access_guard.roles import OrganizationRole, ProjectRole

ORG_ID = "6f1c2d9e-8a4b-4c3d-9e2f-1a2b3c4d5e6f"
PROJECT_ID = "0b7e4a52-3c1d-4f6e-8a9b-c0d1e2f3a4b5"
ENV_ID = "d4c3b2a1-9f8e-4d7c-8b6a-5f4e3d2c1b0a"
ACTOR_ID = "user-42"


class FakeOrganizationMembers:
    def __init__(self):
        self.memberships: list[OrganizationMembership] = []
        self.calls = []
        self.error: Exception | None = None
        self.delay: float = 0

    async def find_organization_members(self, filters, pagination):
        self.calls.append((filters, pagination))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        data = [
            m
            for m in self.memberships
            if m.organization_id == filters.organization_id and m.user_id == filters.user_id
        ]
        return Page(data=data, total_count=len(data))


class FakeProjects:
    def __init__(self):
        self.projects: dict[str, Project] = {}
        self.calls = []
        self.error: Exception | None = None

    async def find_project(self, project_id):
        self.calls.append(project_id)
        if self.error:
            raise self.error
        return self.projects.get(project_id)


class FakeProjectMembers:
    def __init__(self):
        self.memberships: list[ProjectMembership] = []
        self.calls = []

    async def find_project_members(self, filters, pagination):
        self.calls.append((filters, pagination))
        data = [
            m
            for m in self.memberships
            if m.project_id == filters.project_id and m.user_id == filters.user_id
        ]
        return Page(data=data, total_count=len(data))


class FakeEnvironments:
    def __init__(self):
        self.environments: list[Environment] = []
        self.calls = []

    async def find_environment(self, environment_id, project_id, organization_id, deleted_status=None):
        self.calls.append((environment_id, project_id, organization_id, deleted_status))
        for env in self.environments:
            if (env.id, env.project_id, env.organization_id) == (
                environment_id,
                project_id,
                organization_id,
            ):
                return env
        return None


class Directory:
    """Bundle of fake collaborators with helpers to seed them."""

    def __init__(self):
        self.org_members = FakeOrganizationMembers()
        self.projects = FakeProjects()
        self.project_members = FakeProjectMembers()
        self.environments = FakeEnvironments()

    def add_org_member(
        self,
        role: OrganizationRole,
        org_type: TenantType = TenantType.NORMAL,
        org_id: str = ORG_ID,
        user_id: str = ACTOR_ID,
    ) -> OrganizationMembership:
        membership = OrganizationMembership(
            organization_id=org_id,
            user_id=user_id,
            role=role,
            organization=Organization(id=org_id, type=org_type),
        )
        self.org_members.memberships.append(membership)
        return membership

    def add_project(
        self, project_type: TenantType = TenantType.NORMAL, project_id: str = PROJECT_ID
    ) -> Project:
        project = Project(id=project_id, organization_id=ORG_ID, name="Apollo", type=project_type)
        self.projects.projects[project_id] = project
        return project

    def add_project_member(self, role: ProjectRole, user_id: str = ACTOR_ID) -> ProjectMembership:
        membership = ProjectMembership(project_id=PROJECT_ID, user_id=user_id, role=role)
        self.project_members.memberships.append(membership)
        return membership

    def add_environment(self) -> Environment:
        env = Environment(id=ENV_ID, project_id=PROJECT_ID, organization_id=ORG_ID, name="prod")
        self.environments.environments.append(env)
        return env

    @property
    def lookup_count(self) -> int:
        return (
            len(self.org_members.calls)
            + len(self.projects.calls)
            + len(self.project_members.calls)
            + len(self.environments.calls)
        )


@pytest.fixture
def directory():
    return Directory()


@pytest.fixture
def settings():
    return GuardSettings(lookup_timeout_seconds=1.0)


@pytest.fixture
def env_guard(directory, settings):
    return environment_authorization_guard(
        directory.org_members,
        directory.projects,
        directory.project_members,
        directory.environments,
        settings=settings,
    )


@pytest.fixture
def auth_guard(directory, settings):
    return authorization_guard(
        directory.org_members,
        directory.projects,
        directory.project_members,
        settings=settings,
    )


def make_request(
    org_id: str | None = ORG_ID,
    project_id: str | None = PROJECT_ID,
    environment_id: str | None = ENV_ID,
    actor_id: str = ACTOR_ID,
    query: dict | None = None,
) -> GuardRequest:
    headers = {}
    if org_id is not None:
        headers["x-organization-id"] = org_id
    if project_id is not None:
        headers["x-project-id"] = project_id
    if environment_id is not None:
        headers["x-environment-id"] = environment_id
    return GuardRequest(
        actor_id=actor_id,
        headers=headers,
        query=query or {},
        url="http://test/api/v1/releases",
        method="GET",
    )
