"""
The access guard pipeline.

One request flows through:

    START → IDENTIFIERS_VALIDATED → (OPTIONAL_SHORT_CIRCUIT_ALLOW | ENVIRONMENT_VALIDATED)
          → ORG_MEMBERSHIP_RESOLVED → ORG_GATE_EVALUATED
          → PROJECT_MEMBERSHIP_RESOLVED → PROJECT_GATE_EVALUATED → ALLOW

and any step may end in DENY. Identifier formats are checked before any
collaborator is called. The environment check and the organization membership
lookup are issued concurrently; their outcomes are evaluated in order.

Two call patterns share this pipeline:
- authorization guard: the organization role failure is deferred to the
  project stage, where a sufficient project role can still grant access
- environment + authorization guard: the environment is validated and an
  organization role failure denies immediately
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

import structlog

from .config import GuardSettings, get_settings
from .errors import ErrorKind, GuardError, classify
from .identifiers import is_valid_identifier, validate_identifier
from .lookups import EnvironmentLookup, OrganizationMembershipLookup, ProjectLookup, ProjectMembershipLookup
from .models import Environment, Project
from .organization import OrganizationAccess, OrganizationAccessValidator
from .policy import FetchDeletedRecordsLevel, PolicyMetadata, resolve_deleted_status
from .project import ProjectAccessValidator


class GuardState(str, Enum):
    START = "start"
    IDENTIFIERS_VALIDATED = "identifiers_validated"
    OPTIONAL_SHORT_CIRCUIT_ALLOW = "optional_short_circuit_allow"
    ENVIRONMENT_VALIDATED = "environment_validated"
    ORG_MEMBERSHIP_RESOLVED = "org_membership_resolved"
    ORG_GATE_EVALUATED = "org_gate_evaluated"
    PROJECT_MEMBERSHIP_RESOLVED = "project_membership_resolved"
    PROJECT_GATE_EVALUATED = "project_gate_evaluated"
    ALLOW = "allow"
    DENY = "deny"


_ALLOW_STATES = {GuardState.ALLOW, GuardState.OPTIONAL_SHORT_CIRCUIT_ALLOW}


@dataclass
class GuardRequest:
    """The inbound fields the guard reads, plus the context it writes."""

    actor_id: str
    headers: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    url: str = ""
    method: str = ""
    # Attached on allow for downstream handlers
    project: Optional[Project] = None

    def header(self, name: str) -> Optional[str]:
        value = self.headers.get(name)
        if value is None:
            lowered = name.lower()
            for key, candidate in self.headers.items():
                if key.lower() == lowered:
                    value = candidate
                    break
        return None if value is None else str(value)


@dataclass(frozen=True)
class AccessDecision:
    state: GuardState
    last_state: GuardState
    error: Optional[GuardError] = None
    organization: Optional[OrganizationAccess] = None
    project: Optional[Project] = None
    environment: Optional[Environment] = None

    @property
    def allowed(self) -> bool:
        return self.state in _ALLOW_STATES


class AccessGuard:
    """Parameterized organization → project → environment access pipeline."""

    def __init__(
        self,
        organization_members: OrganizationMembershipLookup,
        projects: ProjectLookup,
        project_members: ProjectMembershipLookup,
        environments: Optional[EnvironmentLookup] = None,
        *,
        defer_organization_role: bool = False,
        validate_environment: bool = True,
        settings: GuardSettings | None = None,
        log: Any = None,
    ):
        if validate_environment and environments is None:
            raise ValueError("validate_environment requires an environment lookup")
        self._settings = settings or get_settings()
        self._log = log or structlog.get_logger()
        self._defer_organization_role = defer_organization_role
        self._validate_environment = validate_environment
        timeout = self._settings.lookup_timeout_seconds
        self._organizations = OrganizationAccessValidator(
            organization_members, timeout=timeout, log=self._log
        )
        self._projects = ProjectAccessValidator(
            projects, project_members, environments, timeout=timeout, log=self._log
        )

    @property
    def settings(self) -> GuardSettings:
        return self._settings

    def _deny(
        self, request: GuardRequest, last_state: GuardState, error: GuardError, **context: Any
    ) -> AccessDecision:
        self._log.warning(
            "guard.access_denied",
            user_id=request.actor_id,
            kind=error.kind.value,
            reason=error.message,
            state=last_state.value,
            url=request.url,
            method=request.method,
        )
        return AccessDecision(GuardState.DENY, last_state, error=error, **context)

    async def evaluate(self, request: GuardRequest, policy: PolicyMetadata) -> AccessDecision:
        """Run the pipeline and return the decision without raising."""
        settings = self._settings
        organization_id = request.header(settings.organization_header)
        project_id = request.header(settings.project_header)
        environment_id = request.header(settings.environment_header)
        override = request.query.get(settings.deleted_status_param)
        actor_id = request.actor_id

        self._log.info(
            "guard.check_started",
            user_id=actor_id,
            org_id=organization_id,
            project_id=project_id,
            environment_id=environment_id,
            url=request.url,
            method=request.method,
        )

        # --- Identifiers (no collaborator calls before this passes) ---
        checked = validate_identifier(organization_id, "Organization")
        if not checked.ok:
            return self._deny(request, GuardState.START, checked.error)
        organization_id = checked.value

        if project_id and not is_valid_identifier(project_id):
            return self._deny(
                request,
                GuardState.START,
                GuardError(ErrorKind.INVALID_IDENTIFIER_FORMAT, "Invalid Project id"),
            )

        if policy.project_validation_optional and not project_id:
            self._log.info(
                "guard.project_validation_skipped", user_id=actor_id, org_id=organization_id
            )
            return AccessDecision(
                GuardState.OPTIONAL_SHORT_CIRCUIT_ALLOW, GuardState.IDENTIFIERS_VALIDATED
            )

        if not project_id:
            return self._deny(
                request,
                GuardState.START,
                GuardError(ErrorKind.INVALID_IDENTIFIER_FORMAT, "Invalid Project id"),
            )

        if self._validate_environment:
            checked = validate_identifier(environment_id, "Environment")
            if not checked.ok:
                return self._deny(request, GuardState.START, checked.error)
            environment_id = checked.value

        state = GuardState.IDENTIFIERS_VALIDATED

        # --- Soft-delete filters, one per tier ---
        level = policy.fetch_deleted_records_level
        fetch_deleted = policy.fetch_deleted_records
        org_status = resolve_deleted_status(
            FetchDeletedRecordsLevel.ORGANIZATION, level, fetch_deleted, override
        )
        project_status = resolve_deleted_status(
            FetchDeletedRecordsLevel.PROJECT, level, fetch_deleted, override
        )

        # --- Environment + organization membership ---
        membership_lookup = self._organizations.resolve_membership(
            organization_id, actor_id, org_status
        )
        environment = None
        if self._validate_environment:
            env_status = resolve_deleted_status(
                FetchDeletedRecordsLevel.ENVIRONMENT, level, fetch_deleted, override
            )
            env_outcome, membership = await asyncio.gather(
                self._projects.validate_environment(
                    environment_id, project_id, organization_id, deleted_status=env_status
                ),
                membership_lookup,
            )
            if not env_outcome.ok:
                return self._deny(request, state, env_outcome.error)
            environment = env_outcome.value
            state = GuardState.ENVIRONMENT_VALIDATED
        else:
            membership = await membership_lookup

        if not membership.ok:
            return self._deny(request, state, membership.error, environment=environment)
        single = self._organizations.single_membership(membership.value, organization_id, actor_id)
        if not single.ok:
            return self._deny(request, state, single.error, environment=environment)
        state = GuardState.ORG_MEMBERSHIP_RESOLVED

        org_access = self._organizations.evaluate(
            membership.value,
            organization_id,
            actor_id,
            tenant_gate=policy.disable_for_restricted_tenant,
            required_mask=policy.access_role,
        )
        if not org_access.ok:
            return self._deny(request, state, org_access.error, environment=environment)
        organization = org_access.value

        if organization.insufficient_role and not self._defer_organization_role:
            return self._deny(
                request,
                state,
                GuardError(
                    ErrorKind.INSUFFICIENT_ROLE,
                    f"The user (id)=({actor_id}), role=({organization.role.value}) does not have "
                    f"the permission in the organization (id)=({organization_id})",
                ),
                organization=organization,
                environment=environment,
            )
        state = GuardState.ORG_GATE_EVALUATED

        # --- Project membership + gate ---
        self._log.info(
            "guard.project_check_started",
            user_id=actor_id,
            project_id=project_id,
            org_role=organization.role.value,
        )
        project = await self._projects.validate(
            project_id,
            actor_id,
            organization,
            project_status,
            tenant_gate=policy.disable_for_restricted_tenant,
            required_role=policy.project_access_role,
        )
        if not project.ok:
            if project.error.kind in (ErrorKind.RESOURCE_NOT_FOUND, ErrorKind.LOOKUP_FAILURE):
                failed_at = state
            else:
                failed_at = GuardState.PROJECT_MEMBERSHIP_RESOLVED
            return self._deny(
                request, failed_at, project.error, organization=organization, environment=environment
            )

        request.project = project.value
        self._log.info(
            "guard.access_granted",
            user_id=actor_id,
            org_id=organization_id,
            project_id=project_id,
            url=request.url,
            method=request.method,
        )
        return AccessDecision(
            GuardState.ALLOW,
            GuardState.PROJECT_GATE_EVALUATED,
            organization=organization,
            project=project.value,
            environment=environment,
        )

    async def check(self, request: GuardRequest, policy: PolicyMetadata) -> AccessDecision:
        """Run the pipeline; raise ``GuardValidationFailed`` on denial."""
        decision = await self.evaluate(request, policy)
        if not decision.allowed:
            raise classify(decision.error) from decision.error.cause
        return decision


def authorization_guard(
    organization_members: OrganizationMembershipLookup,
    projects: ProjectLookup,
    project_members: ProjectMembershipLookup,
    **kwargs: Any,
) -> AccessGuard:
    """Guard where a project role can make up for an organization role."""
    return AccessGuard(
        organization_members,
        projects,
        project_members,
        defer_organization_role=True,
        validate_environment=False,
        **kwargs,
    )


def environment_authorization_guard(
    organization_members: OrganizationMembershipLookup,
    projects: ProjectLookup,
    project_members: ProjectMembershipLookup,
    environments: EnvironmentLookup,
    **kwargs: Any,
) -> AccessGuard:
    """Guard that also validates the environment, with inline role checks."""
    return AccessGuard(
        organization_members,
        projects,
        project_members,
        environments,
        defer_organization_role=False,
        validate_environment=True,
        **kwargs,
    )
