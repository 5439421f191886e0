# app/api/v1/endpoints/documents.py
# Verification document endpoints
#
#   POST /documents/upload      → multipart "files", keys appended to own profile
#   POST /documents/signed-url  → short-lived GET URL (admin or document owner)

import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.config import settings
from app.core.dependencies import require_capability
from app.core.exceptions import Forbidden, InvalidInput
from app.core.permissions import Capability, CallerContext
from app.db.session import get_db
from app.models.user import UserRole
from app.schemas.document import DocumentUploadResponse, SignedUrlRequest, SignedUrlResponse
from app.services import matching_service, storage_service

logger = logging.getLogger("freetutor.documents")

router = APIRouter()


@router.post(
    "/upload",
    response_model=DocumentUploadResponse,
    summary="Upload verification documents",
)
def upload_documents(
    files: List[UploadFile] = File(..., description="PDF, JPG or PNG, max 10MB each"),
    ctx: CallerContext = Depends(require_capability(Capability.UPLOAD_DOCUMENTS)),
    db: Session = Depends(get_db),
):
    """
    Every file is validated before any is uploaded, so a bad file
    in the batch uploads nothing.
    """
    if not files:
        raise InvalidInput("No files uploaded.")

    if ctx.role == UserRole.STUDENT:
        profile = matching_service.get_student_profile(db, ctx.student_profile_id)
    else:
        profile = matching_service.get_tutor_profile(db, ctx.tutor_profile_id)

    contents = []
    for upload in files:
        data = upload.file.read()
        storage_service.validate_document(upload.filename, upload.content_type, len(data))
        contents.append((upload, data))

    prefix = ctx.role.value.lower()
    keys = []
    for upload, data in contents:
        key = storage_service.generate_safe_key(upload.filename, ctx.user_id, prefix=prefix)
        storage_service.upload_document(data, key, upload.content_type)
        keys.append(key)

    # Reassign so the ARRAY column change is detected
    profile.verification_documents = list(profile.verification_documents or []) + keys
    db.commit()

    logger.info(f"{len(keys)} document(s) uploaded by user {ctx.user_id}")
    return DocumentUploadResponse(keys=keys, message="Documents uploaded successfully.")


@router.post(
    "/signed-url",
    response_model=SignedUrlResponse,
    summary="Get a time-limited URL for a private document",
)
def get_signed_url(
    payload: SignedUrlRequest,
    ctx: CallerContext = Depends(require_capability(Capability.VIEW_DOCUMENTS)),
):
    if not ctx.is_admin and storage_service.owner_of_key(payload.document_key) != str(ctx.user_id):
        raise Forbidden("You may only access your own documents.")

    expires_in = settings.signed_url_expire_seconds
    url = storage_service.generate_signed_url(payload.document_key, expires_in=expires_in)
    return SignedUrlResponse(signed_url=url, expires_in=expires_in)
