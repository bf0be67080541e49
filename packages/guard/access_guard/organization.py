"""
Organization access validation.

Resolves the caller's single membership in the target organization and
evaluates the tenant-type gate and the organization role requirement.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import structlog

from .errors import ErrorKind, Outcome
from .lookups import OrganizationMembershipLookup, bounded
from .models import (
    OrganizationMemberFilters,
    OrganizationMembership,
    Page,
    PaginationFilters,
    TenantType,
)
from .roles import OrganizationRole, satisfies


@dataclass(frozen=True)
class OrganizationAccess:
    membership: OrganizationMembership
    # Role requirement failed; final only after the project stage
    insufficient_role: bool = False

    @property
    def role(self) -> OrganizationRole:
        return self.membership.role


class OrganizationAccessValidator:
    def __init__(
        self,
        members: OrganizationMembershipLookup,
        *,
        timeout: float | None = None,
        log: Any = None,
    ):
        self._members = members
        self._timeout = timeout
        self._log = log or structlog.get_logger()

    async def resolve_membership(
        self, organization_id: str, actor_id: str, deleted_status: Any
    ) -> Outcome[Page[OrganizationMembership]]:
        filters = OrganizationMemberFilters(
            organization_id=organization_id,
            user_id=actor_id,
            deleted_status=deleted_status,
            expand_organization=True,
        )
        try:
            page = await bounded(
                self._members.find_organization_members(filters, PaginationFilters()),
                self._timeout,
            )
        except Exception as exc:
            self._log.error(
                "guard.org_lookup_failed",
                org_id=organization_id,
                user_id=actor_id,
                error=repr(exc),
            )
            return Outcome.deny(
                ErrorKind.LOOKUP_FAILURE,
                f"Not able to resolve membership in organization (id)=({organization_id})",
                cause=exc,
            )
        return Outcome.success(page)

    @staticmethod
    def single_membership(
        page: Page[OrganizationMembership], organization_id: str, actor_id: str
    ) -> Outcome[OrganizationMembership]:
        """The actor's membership, provided exactly one was found."""
        if page.total_count != 1 or len(page.data) != 1:
            return Outcome.deny(
                ErrorKind.NOT_ORGANIZATION_MEMBER,
                f"The user with (id)=({actor_id}) is not a part of the organization (id)=({organization_id})",
            )
        return Outcome.success(page.data[0])

    def evaluate(
        self,
        page: Page[OrganizationMembership],
        organization_id: str,
        actor_id: str,
        *,
        tenant_gate: bool = False,
        required_mask: Optional[int] = None,
    ) -> Outcome[OrganizationAccess]:
        """Apply the membership count, tenant gate and role mask rules."""
        single = self.single_membership(page, organization_id, actor_id)
        if not single.ok:
            return Outcome(error=single.error)

        membership = single.value
        if tenant_gate:
            tenant_type = membership.organization_type
            if tenant_type is None:
                # Gate cannot be evaluated without the expanded organization
                self._log.error(
                    "guard.org_type_missing", org_id=organization_id, user_id=actor_id
                )
                return Outcome.deny(
                    ErrorKind.LOOKUP_FAILURE,
                    f"Not able to resolve the type of organization (id)=({organization_id})",
                )
            if tenant_type is TenantType.RESTRICTED:
                return Outcome.deny(
                    ErrorKind.TENANT_FEATURE_DISABLED,
                    f"The user (id)=({actor_id}) is unauthorized to view this feature",
                )

        insufficient = required_mask is not None and not satisfies(membership.role, required_mask)
        if insufficient:
            self._log.debug(
                "guard.org_role_insufficient",
                org_id=organization_id,
                user_id=actor_id,
                role=membership.role.value,
                required_mask=int(required_mask),
            )
        return Outcome.success(OrganizationAccess(membership, insufficient_role=insufficient))

    async def validate(
        self,
        organization_id: str,
        actor_id: str,
        deleted_status: Any,
        *,
        tenant_gate: bool = False,
        required_mask: Optional[int] = None,
    ) -> Outcome[OrganizationAccess]:
        resolved = await self.resolve_membership(organization_id, actor_id, deleted_status)
        if not resolved.ok:
            return Outcome(error=resolved.error)
        return self.evaluate(
            resolved.value,
            organization_id,
            actor_id,
            tenant_gate=tenant_gate,
            required_mask=required_mask,
        )
