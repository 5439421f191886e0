# app/schemas/document.py

from typing import List

from pydantic import BaseModel, field_validator


class DocumentUploadResponse(BaseModel):
    keys: List[str]
    message: str


class SignedUrlRequest(BaseModel):
    document_key: str

    @field_validator("document_key")
    @classmethod
    def key_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("document_key cannot be empty")
        return v.strip()


class SignedUrlResponse(BaseModel):
    signed_url: str
    expires_in: int  # seconds
