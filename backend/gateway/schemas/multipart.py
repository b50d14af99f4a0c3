"""
Pydantic schemas for the multipart upload endpoints.
"""
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class MultipartUploadHandle(BaseModel):
    """Caller-held resumption token for an in-progress upload."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str
    upload_id: str = Field(..., alias="uploadId")


class UploadedPart(BaseModel):
    """A part acknowledged by the store."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    part_number: int = Field(..., ge=1, alias="partNumber")
    etag: str


class CompleteUploadRequest(BaseModel):
    """Body of an ``mpu-complete`` request: the full ordered part list."""
    parts: List[UploadedPart]
