"""
FastAPI binding for the access guard.

Each route declares its policy when it is registered:

    @router.get("/", dependencies=[Depends(GuardDependency(guard, access_role=MethodAccessRole.MEMBER))])

The actor must already be authenticated upstream and exposed on
``request.state.actor_id`` (or ``request.state.auth.user_id``).
"""

# Annotations stay evaluated: FastAPI resolves them on GuardDependency.__call__
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from starlette.responses import JSONResponse

from .config import GuardSettings, configure_logging
from .errors import GuardValidationFailed
from .guard import AccessDecision, AccessGuard, GuardRequest
from .policy import PolicyMetadata, PolicyRegistry


def _actor_id(request: Request) -> Optional[str]:
    actor_id = getattr(request.state, "actor_id", None)
    if actor_id is None:
        auth = getattr(request.state, "auth", None)
        actor_id = getattr(auth, "user_id", None)
    return None if actor_id is None else str(actor_id)


class GuardDependency:
    """Route dependency running ``guard`` against a fixed policy."""

    def __init__(self, guard: AccessGuard, policy: Optional[PolicyMetadata] = None, **fields: Any):
        self._guard = guard
        self.policy = policy if policy is not None else PolicyMetadata(**fields)

    @classmethod
    def from_registry(
        cls, guard: AccessGuard, registry: PolicyRegistry, operation: str
    ) -> "GuardDependency":
        return cls(guard, registry.resolve(operation))

    async def __call__(self, request: Request) -> AccessDecision:
        actor_id = _actor_id(request)
        if actor_id is None:
            raise HTTPException(status_code=401, detail="Authentication required")

        guard_request = GuardRequest(
            actor_id=actor_id,
            headers=request.headers,
            query=request.query_params,
            url=str(request.url),
            method=request.method,
        )
        decision = await self._guard.check(guard_request, self.policy)
        request.state.project = guard_request.project
        request.state.access = decision
        return decision


async def guard_validation_exception_handler(
    request: Request, exc: GuardValidationFailed
) -> JSONResponse:
    error = {
        "code": f"GUARD_{exc.failure_type.value}",
        "message": exc.message,
        "status": exc.status_code,
    }
    if exc.kind is not None:
        error["kind"] = exc.kind.value
    return JSONResponse(status_code=exc.status_code, content={"error": error})


def install_exception_handlers(app: FastAPI, settings: Optional[GuardSettings] = None) -> None:
    """Register the denial handler and configure guard logging."""
    configure_logging(settings)
    app.add_exception_handler(GuardValidationFailed, guard_validation_exception_handler)
