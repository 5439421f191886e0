# app/services/storage_service.py
# Verification documents in a private GCS bucket
#
# Object keys:  <role>/<user_id>/<unix_ms>-<safe_filename>
#   e.g.        tutor/3f0c.../1718000000000-HKDSE_result.pdf
#
# Documents are never public. Admins (and the owner) read them through
# short-lived V4 signed URLs issued by generate_signed_url().
#
# Dev mode: with GCS_PRIVATE_BUCKET unset, uploads are skipped and
# signed URLs point at a placeholder host.

import logging
import re
import time
from datetime import timedelta
from typing import Optional
from uuid import UUID

from google.cloud import storage

from app.core.config import settings
from app.core.exceptions import InvalidInput

logger = logging.getLogger("freetutor.storage")

ALLOWED_DOCUMENT_TYPES = {"application/pdf", "image/jpeg", "image/jpg", "image/png"}
DEV_PLACEHOLDER_HOST = "https://storage.googleapis.com/freetutor-dev"

_client: Optional[storage.Client] = None


def _get_bucket() -> Optional[storage.Bucket]:
    """Return the private bucket, or None when GCS is not configured."""
    global _client
    if not settings.gcs_private_bucket:
        return None
    if _client is None:
        _client = storage.Client()
    return _client.bucket(settings.gcs_private_bucket)


def generate_safe_key(original_filename: str, user_id: UUID, prefix: str = "doc") -> str:
    """Build a unique object key from an untrusted filename."""
    safe_name = re.sub(r"[^a-zA-Z0-9.-]", "_", original_filename or "document")[:50]
    timestamp = int(time.time() * 1000)
    return f"{prefix}/{user_id}/{timestamp}-{safe_name}"


def owner_of_key(key: str) -> Optional[str]:
    """User id segment of an object key, or None if the key is malformed."""
    parts = key.split("/")
    if len(parts) < 3:
        return None
    return parts[1]


def validate_document(filename: str, content_type: Optional[str], size: int) -> None:
    if content_type not in ALLOWED_DOCUMENT_TYPES:
        raise InvalidInput(f"Unsupported file type: {filename}. Only PDF, JPG and PNG are accepted.")
    if size > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise InvalidInput(f"File {filename} exceeds the {limit_mb}MB limit.")


def upload_document(file_bytes: bytes, key: str, content_type: str) -> str:
    """Upload bytes to the private bucket and return the object key."""
    bucket = _get_bucket()
    if bucket is None:
        logger.info(f"[DEV] Upload skipped (no GCS bucket): {key} ({len(file_bytes)} bytes)")
        return key

    blob = bucket.blob(key)
    blob.upload_from_string(file_bytes, content_type=content_type)
    logger.info(f"Uploaded {key} ({len(file_bytes)} bytes)")
    return key


def generate_signed_url(key: str, expires_in: Optional[int] = None) -> str:
    """Time-limited GET URL for a private document."""
    expires_in = expires_in or settings.signed_url_expire_seconds
    bucket = _get_bucket()
    if bucket is None:
        return f"{DEV_PLACEHOLDER_HOST}/{key}"

    blob = bucket.blob(key)
    return blob.generate_signed_url(
        version="v4",
        expiration=timedelta(seconds=expires_in),
        method="GET",
    )
