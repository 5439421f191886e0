# app/core/permissions.py
# Role → capability table and the request-scoped caller context.
#
# Handlers never compare role strings. They declare the capability they need:
#
#   @router.post("/")
#   def create(ctx: CallerContext = Depends(require_capability(Capability.POST_REQUEST))):
#
# require_capability() (app/core/dependencies.py) calls authorize() before
# the handler body runs and raises Forbidden on a denied result.

import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional
from uuid import UUID

from app.models.user import UserRole


class Capability(str, enum.Enum):
    POST_REQUEST = "post_request"
    MANAGE_OWN_REQUESTS = "manage_own_requests"
    REVIEW_APPLICATIONS = "review_applications"
    APPLY_TO_REQUEST = "apply_to_request"
    VIEW_OWN_APPLICATIONS = "view_own_applications"
    RESPOND_TO_CONNECTION = "respond_to_connection"
    VIEW_OWN_CONNECTIONS = "view_own_connections"
    UPLOAD_DOCUMENTS = "upload_documents"
    VIEW_DOCUMENTS = "view_documents"
    REVIEW_VERIFICATIONS = "review_verifications"


ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[Capability]] = {
    UserRole.STUDENT: frozenset({
        Capability.POST_REQUEST,
        Capability.MANAGE_OWN_REQUESTS,
        Capability.REVIEW_APPLICATIONS,
        Capability.VIEW_OWN_CONNECTIONS,
        Capability.UPLOAD_DOCUMENTS,
        Capability.VIEW_DOCUMENTS,
    }),
    UserRole.TUTOR: frozenset({
        Capability.APPLY_TO_REQUEST,
        Capability.VIEW_OWN_APPLICATIONS,
        Capability.RESPOND_TO_CONNECTION,
        Capability.VIEW_OWN_CONNECTIONS,
        Capability.UPLOAD_DOCUMENTS,
        Capability.VIEW_DOCUMENTS,
    }),
    UserRole.ADMIN: frozenset({
        Capability.REVIEW_VERIFICATIONS,
        Capability.VIEW_DOCUMENTS,
    }),
}


@dataclass(frozen=True)
class CallerContext:
    """
    Identity of the caller for one HTTP request.
    Built once from the bearer token by get_caller_context() and passed
    explicitly into services -- there is no ambient session state.
    """
    user_id: UUID
    email: str
    role: UserRole
    student_profile_id: Optional[UUID] = None
    tutor_profile_id: Optional[UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class AuthorizationResult:
    allowed: bool
    reason: str = ""


def authorize(ctx: CallerContext, capability: Capability) -> AuthorizationResult:
    """Check whether the caller's role grants a capability."""
    if capability in ROLE_CAPABILITIES.get(ctx.role, frozenset()):
        return AuthorizationResult(allowed=True)

    if capability in (Capability.POST_REQUEST, Capability.MANAGE_OWN_REQUESTS,
                      Capability.REVIEW_APPLICATIONS):
        reason = "Student access only."
    elif capability in (Capability.APPLY_TO_REQUEST, Capability.VIEW_OWN_APPLICATIONS,
                        Capability.RESPOND_TO_CONNECTION):
        reason = "Tutor access only."
    elif capability == Capability.REVIEW_VERIFICATIONS:
        reason = "Admin access required."
    else:
        reason = "You do not have permission to perform this action."
    return AuthorizationResult(allowed=False, reason=reason)
