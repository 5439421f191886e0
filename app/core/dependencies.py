# app/core/dependencies.py
# FastAPI dependency functions for authentication and authorization
#
# Key design rules:
#   1. The bearer token is decoded exactly once per call into a CallerContext
#   2. Role checks go through authorize() -- never inline role comparisons
#   3. Public endpoints (browse, stats, health) take no auth dependency at all

from typing import Callable, Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import and_
from sqlalchemy.orm import Session

from app.core.exceptions import Forbidden, Unauthenticated
from app.core.permissions import Capability, CallerContext, authorize
from app.core.security import decode_token
from app.db.session import get_db
from app.models.user import User

# Bearer token extractor -- auto_error=False so we can handle 401 ourselves
bearer_scheme = HTTPBearer(auto_error=False)


# ── Token Extraction ──────────────────────────────────────────────────────────

def _extract_user_from_token(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: Session,
) -> Optional[User]:
    """
    Internal helper: decode Bearer token and load user from DB.
    Returns None if no token, invalid token, or user not found/inactive.
    """
    if not credentials:
        return None

    payload = decode_token(credentials.credentials)
    if not payload:
        return None

    if payload.get("type") != "access":
        return None

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        return None

    return db.query(User).filter(
        and_(User.id == user_id, User.is_active == True)  # noqa: E712
    ).first()


def build_caller_context(user: User) -> CallerContext:
    return CallerContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        student_profile_id=user.student_profile.id if user.student_profile else None,
        tutor_profile_id=user.tutor_profile.id if user.tutor_profile else None,
    )


# ── Auth Dependencies ─────────────────────────────────────────────────────────

def get_caller_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> CallerContext:
    """
    Requires a valid JWT token. Raises 401 if not authenticated.

    Use for: any endpoint requiring login but not a specific capability.
    """
    user = _extract_user_from_token(credentials, db)
    if not user:
        raise Unauthenticated()
    return build_caller_context(user)


def require_capability(capability: Capability) -> Callable[..., CallerContext]:
    """
    Dependency factory: authenticate, then check the capability.
    Raises 401 for anonymous callers and 403 when the role lacks it.
    """

    def _dependency(ctx: CallerContext = Depends(get_caller_context)) -> CallerContext:
        result = authorize(ctx, capability)
        if not result.allowed:
            raise Forbidden(result.reason)
        return ctx

    return _dependency
