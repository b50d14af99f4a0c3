"""
Pydantic schemas for token claims and multipart upload payloads.
"""
from gateway.schemas.order import (
    OrderStatus,
    OrderMetadata,
    MayAct,
    Claims,
)
from gateway.schemas.multipart import (
    MultipartUploadHandle,
    UploadedPart,
    CompleteUploadRequest,
)

__all__ = [
    "OrderStatus",
    "OrderMetadata",
    "MayAct",
    "Claims",
    "MultipartUploadHandle",
    "UploadedPart",
    "CompleteUploadRequest",
]
