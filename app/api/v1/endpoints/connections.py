# app/api/v1/endpoints/connections.py
# Connection endpoints
#
#   GET   /connections/me         → caller's connections (student or tutor side)
#   PATCH /connections/{id}       → tutor accepts / declines

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import require_capability
from app.core.permissions import Capability, CallerContext
from app.db.session import get_db
from app.models.tutoring_request import ConnectionRequest
from app.models.user import UserRole
from app.schemas.matching import (
    ConnectionAction,
    ConnectionListItem,
    ConnectionListResponse,
    ConnectionResponse,
)
from app.services import matching_service

router = APIRouter()


def build_connection_items(
    connections: List[ConnectionRequest],
    viewer_role: UserRole,
) -> List[ConnectionListItem]:
    """Attach the name of whoever is on the other side of each connection."""
    items = []
    for conn in connections:
        counterparty = conn.tutor if viewer_role == UserRole.STUDENT else conn.student
        items.append(ConnectionListItem(
            id=conn.id,
            student_id=conn.student_id,
            tutor_id=conn.tutor_id,
            tutoring_request_id=conn.tutoring_request_id,
            status=conn.status,
            notes=conn.notes,
            created_at=conn.created_at,
            counterparty_name=counterparty.full_name if counterparty else "",
        ))
    return items


@router.get(
    "/me",
    response_model=ConnectionListResponse,
    summary="Caller's connections",
)
def list_my_connections(
    ctx: CallerContext = Depends(require_capability(Capability.VIEW_OWN_CONNECTIONS)),
    db: Session = Depends(get_db),
):
    if ctx.role == UserRole.STUDENT:
        connections = matching_service.list_connections(db, student_id=ctx.student_profile_id)
    else:
        connections = matching_service.list_connections(db, tutor_id=ctx.tutor_profile_id)
    return ConnectionListResponse(connections=build_connection_items(connections, ctx.role))


@router.patch(
    "/{connection_id}",
    response_model=ConnectionResponse,
    summary="Tutor accepts or declines a connection",
)
def respond_to_connection(
    connection_id: UUID,
    payload: ConnectionAction,
    ctx: CallerContext = Depends(require_capability(Capability.RESPOND_TO_CONNECTION)),
    db: Session = Depends(get_db),
):
    connection = matching_service.respond_to_connection(
        db, ctx.tutor_profile_id, connection_id, accept=payload.action == "accept"
    )
    return ConnectionResponse.model_validate(connection)
