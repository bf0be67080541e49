"""Tests for the project and environment access validator."""

from __future__ import annotations

import pytest

from access_guard.errors import ErrorKind
from access_guard.models import TenantType
from access_guard.organization import OrganizationAccess
from access_guard.policy import DeletedStatus
from access_guard.project import ProjectAccessValidator
from access_guard.roles import OrganizationRole, ProjectRole

from conftest import ACTOR_ID, ENV_ID, ORG_ID, PROJECT_ID


@pytest.fixture
def validator(directory):
    return ProjectAccessValidator(
        directory.projects, directory.project_members, directory.environments, timeout=1.0
    )


def org_access(directory, role, insufficient=False) -> OrganizationAccess:
    membership = directory.add_org_member(role)
    return OrganizationAccess(membership, insufficient_role=insufficient)


async def validate(validator, organization, **kwargs):
    kwargs.setdefault("deleted_status", DeletedStatus.NOT_DELETED)
    return await validator.validate(PROJECT_ID, ACTOR_ID, organization, **kwargs)


class TestProjectResolution:
    async def test_project_not_found(self, directory, validator):
        outcome = await validate(validator, org_access(directory, OrganizationRole.MEMBER))
        assert outcome.error.kind is ErrorKind.RESOURCE_NOT_FOUND
        assert PROJECT_ID in outcome.error.message

    async def test_project_lookup_error_wrapped_as_not_found(self, directory, validator):
        directory.projects.error = RuntimeError("boom")
        outcome = await validate(validator, org_access(directory, OrganizationRole.MEMBER))
        assert outcome.error.kind is ErrorKind.RESOURCE_NOT_FOUND
        assert isinstance(outcome.error.cause, RuntimeError)

    async def test_project_returned_on_success(self, directory, validator):
        project = directory.add_project()
        outcome = await validate(validator, org_access(directory, OrganizationRole.MEMBER))
        assert outcome.value == project

    async def test_member_filters_carry_deleted_status(self, directory, validator):
        directory.add_project()
        await validate(
            validator,
            org_access(directory, OrganizationRole.MEMBER),
            deleted_status=DeletedStatus.ONLY_DELETED,
        )
        filters, _ = directory.project_members.calls[0]
        assert filters.project_id == PROJECT_ID
        assert filters.user_id == ACTOR_ID
        assert filters.deleted_status is DeletedStatus.ONLY_DELETED


class TestProjectGate:
    async def test_restricted_project_with_membership(self, directory, validator):
        directory.add_project(TenantType.RESTRICTED)
        directory.add_project_member(ProjectRole.MANAGER)
        outcome = await validate(
            validator, org_access(directory, OrganizationRole.OWNER), tenant_gate=True
        )
        assert outcome.error.kind is ErrorKind.TENANT_FEATURE_DISABLED

    async def test_restricted_project_without_membership_is_not_gated(self, directory, validator):
        directory.add_project(TenantType.RESTRICTED)
        outcome = await validate(
            validator, org_access(directory, OrganizationRole.OWNER), tenant_gate=True
        )
        assert outcome.ok


class TestProjectRole:
    async def test_owner_bypasses_project_role(self, directory, validator):
        directory.add_project()
        outcome = await validate(
            validator,
            org_access(directory, OrganizationRole.OWNER),
            required_role=ProjectRole.MANAGER,
        )
        assert outcome.ok

    async def test_non_member_of_project(self, directory, validator):
        directory.add_project()
        outcome = await validate(
            validator,
            org_access(directory, OrganizationRole.MANAGER),
            required_role=ProjectRole.MEMBER,
        )
        assert outcome.error.kind is ErrorKind.NOT_PROJECT_MEMBER

    @pytest.mark.parametrize(
        "member_role,required,allowed",
        [
            (ProjectRole.MEMBER, ProjectRole.MEMBER, True),
            (ProjectRole.MANAGER, ProjectRole.MEMBER, True),
            (ProjectRole.MANAGER, ProjectRole.MANAGER, True),
            (ProjectRole.MEMBER, ProjectRole.MANAGER, False),
        ],
    )
    async def test_project_role_matrix(self, directory, validator, member_role, required, allowed):
        directory.add_project()
        directory.add_project_member(member_role)
        outcome = await validate(
            validator, org_access(directory, OrganizationRole.MEMBER), required_role=required
        )
        assert outcome.ok is allowed
        if not allowed:
            assert outcome.error.kind is ErrorKind.INSUFFICIENT_ROLE

    async def test_project_role_clears_pending_org_flag(self, directory, validator):
        directory.add_project()
        directory.add_project_member(ProjectRole.MANAGER)
        outcome = await validate(
            validator,
            org_access(directory, OrganizationRole.MEMBER, insufficient=True),
            required_role=ProjectRole.MANAGER,
        )
        assert outcome.ok

    async def test_pending_org_flag_without_project_role(self, directory, validator):
        directory.add_project()
        directory.add_project_member(ProjectRole.MANAGER)
        outcome = await validate(
            validator, org_access(directory, OrganizationRole.MEMBER, insufficient=True)
        )
        assert outcome.error.kind is ErrorKind.INSUFFICIENT_ROLE


class TestEnvironment:
    async def test_environment_found(self, directory, validator):
        env = directory.add_environment()
        outcome = await validator.validate_environment(ENV_ID, PROJECT_ID, ORG_ID)
        assert outcome.value == env

    async def test_environment_not_found(self, validator):
        outcome = await validator.validate_environment(ENV_ID, PROJECT_ID, ORG_ID)
        assert outcome.error.kind is ErrorKind.RESOURCE_NOT_FOUND

    async def test_environment_under_other_project(self, directory, validator):
        directory.add_environment()
        other_project = "11111111-2222-4333-8444-555555555555"
        outcome = await validator.validate_environment(ENV_ID, other_project, ORG_ID)
        assert outcome.error.kind is ErrorKind.RESOURCE_NOT_FOUND

    async def test_deleted_status_forwarded(self, directory, validator):
        directory.add_environment()
        await validator.validate_environment(
            ENV_ID, PROJECT_ID, ORG_ID, deleted_status=DeletedStatus.WITH_DELETED
        )
        assert directory.environments.calls[0][3] is DeletedStatus.WITH_DELETED

    async def test_missing_environment_lookup(self, directory):
        validator = ProjectAccessValidator(directory.projects, directory.project_members)
        with pytest.raises(RuntimeError):
            await validator.validate_environment(ENV_ID, PROJECT_ID, ORG_ID)
